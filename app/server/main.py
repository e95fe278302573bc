import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.server.routers.auth_routes import auth_router
from app.server.routers.chat_routes import chat_router
from app.server.routers.collaboration_routes import collaboration_router
from app.server.routers.me_routes import me_router
from app.server.routers.notification_routes import notification_router
from app.server.routers.rating_routes import rating_router
from app.server.routers.request_routes import request_router
from app.services.firestore_service import FirestoreService
from config import ALLOWED_ORIGINS, FIRESTORE_DATABASE

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    firestore_service: FirestoreService = app.state.firestore_service
    firestore_service.init()
    try:
        yield
    finally:
        firestore_service.close()


def create_app(firestore_service: Optional[FirestoreService] = None) -> FastAPI:
    """Build the API; the Firestore handle is created here unless one is given."""
    app = FastAPI(title="Creator Connect", lifespan=lifespan)
    app.state.firestore_service = firestore_service or FirestoreService(
        FIRESTORE_DATABASE
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,  # Allows requests from these origins
        allow_credentials=True,
        allow_methods=["*"],  # Allows all methods (GET, POST, etc.)
        allow_headers=["*"],  # Allows all headers
    )

    @app.get("/", tags=["root"])
    def root():
        return {"message": "success"}

    # Include the routers in the main app with a prefix
    app.include_router(auth_router, prefix="/auth")
    app.include_router(me_router, prefix="/me")
    app.include_router(request_router, prefix="/requests")
    app.include_router(collaboration_router, prefix="/collaborations")
    app.include_router(rating_router, prefix="/ratings")
    app.include_router(notification_router, prefix="/notifications")
    app.include_router(chat_router, prefix="/chats")

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
