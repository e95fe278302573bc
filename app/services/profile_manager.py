import logging
from typing import Dict, Iterable, Optional

from app.models.firestore import USERS
from app.models.users import CreatorProfile
from app.services.firestore_service import FirestoreService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ProfileManager:
    """Read access to creator profiles owned by the identity store."""

    def __init__(self, firestore_service: FirestoreService):
        self.firestore_service = firestore_service

    async def get_profile(self, uid: str) -> Optional[CreatorProfile]:
        """Get a creator profile, or None if the user has no profile document."""
        return await self.firestore_service.get_document(
            collection_name=USERS,
            document_id=uid,
            model_class=CreatorProfile,
        )

    async def get_profiles(self, uids: Iterable[str]) -> Dict[str, CreatorProfile]:
        """Get several profiles keyed by uid; missing profiles are left out."""
        profiles = {}
        for uid in set(uids):
            profile = await self.get_profile(uid)
            if profile is None:
                logger.warning(f"Profile not found for user {uid}")
                continue
            profiles[uid] = profile
        return profiles
