import logging
from traceback import format_exc
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth

from app.models.users import AuthenticatedUser
from app.server.dependencies import get_firestore_service
from app.services.firestore_service import FirestoreService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for authentication operations
auth_router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
    firestore_service: Annotated[FirestoreService, Depends(get_firestore_service)],
) -> AuthenticatedUser:
    """Resolve the caller from a Firebase ID token in the Authorization header."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        claims = auth.verify_id_token(
            credentials.credentials, app=firestore_service.app, check_revoked=True
        )
    except auth.UserDisabledError:
        logger.error(f"Disabled user attempted access\n{format_exc()}")
        raise HTTPException(status_code=400, detail="Inactive user")
    except (auth.InvalidIdTokenError, auth.CertificateFetchError, ValueError):
        logger.error(f"Invalid token error\n{format_exc()}")
        raise credentials_exception

    return AuthenticatedUser(
        uid=claims["uid"],
        display_name=claims.get("name") or "",
        photo_url=claims.get("picture") or "",
        email=claims.get("email"),
    )


@auth_router.get("/users/me", response_model=AuthenticatedUser)
async def get_users_me(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user
