"""
Rating Manager

This module records collaboration ratings and keeps each creator's running
rating average up to date. A submission writes the rating, marks the
collaboration as rated by the rater, updates the ratee's aggregate and notifies
the ratee, all in one transaction.

Ratings are keyed by (rater, collaboration). A repeated submission is detected
during the read phase, either by that key or by the rater already being in the
collaboration's ratedBy, and leaves everything untouched.
"""

import hashlib
import logging
import math
from traceback import format_exc
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException
from google.cloud.firestore import ArrayUnion

from app.models.collaborations import Collaboration, CollaborationStatus
from app.models.firestore import COLLABORATIONS, NOTIFICATIONS, RATINGS, USERS
from app.models.notifications import (
    NotificationType,
    RatingReceivedData,
    RatingReceivedNotification,
)
from app.models.ratings import (
    RatedRating,
    Rating,
    RatingResult,
    RatingStatus,
    RatingSubmission,
)
from app.services.firestore_service import (
    DocumentWrite,
    FirestoreService,
    Snapshots,
    Unsubscribe,
    WriteKind,
    utcnow,
)
from app.services.profile_manager import ProfileManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def rating_id_for(rater_id: str, collab_id: str) -> str:
    """Deterministic rating id: one rating per rater per collaboration."""
    return hashlib.sha256(f"{rater_id}:{collab_id}".encode("utf-8")).hexdigest()


def updated_average(
    current_rating: Any, current_count: Any, rating_value: int
) -> Tuple[float, int]:
    """
    Fold one more rating into a running average.

    A missing or NaN current rating is treated as 0. The count may be stored
    as a float; anything that is not a non-negative number is treated as 0.

    Returns:
        (new_rating, new_count)
    """
    if not isinstance(current_rating, (int, float)) or math.isnan(current_rating):
        current_rating = 0.0
    if (
        isinstance(current_count, bool)
        or not isinstance(current_count, (int, float))
        or math.isnan(current_count)
        or current_count < 0
    ):
        current_count = 0
    current_count = int(current_count)

    new_count = current_count + 1
    new_rating = (current_rating * current_count + rating_value) / new_count
    return new_rating, new_count


def can_rate_back(notification: Any, collaboration: Collaboration, user_id: str) -> bool:
    """
    Whether a rating_received notification should offer a one-click rate back.

    True when the notification refers to this collaboration, was triggered by
    someone else, and the user has not rated the collaboration yet.
    """
    if getattr(notification, "type", None) != NotificationType.RATING_RECEIVED.value:
        return False
    data = notification.data
    return (
        data.collab_id == collaboration.id
        and data.rater_id != user_id
        and user_id not in collaboration.rated_by
    )


class RatingManager:
    """Records ratings and maintains rating aggregates on creator profiles."""

    def __init__(self, firestore_service: FirestoreService):
        self.firestore_service = firestore_service
        self.profile_manager = ProfileManager(firestore_service)

    async def submit_rating(self, submission: RatingSubmission) -> RatingResult:
        """
        Submit a rating and update the ratee's profile.

        Args:
            submission: The rating to record

        Returns:
            RatingResult with status submitted, already_rated, or failed.
            Backend failures are reported as failed rather than raised, so the
            caller decides how to present them.

        Raises:
            HTTPException: 404 if the collaboration does not exist, 403 if the
                rater and ratee are not its two participants, 409 if it is not
                completed yet
        """
        rating_id = rating_id_for(submission.rater_id, submission.collab_id)
        ratee_key = (USERS, submission.rated_user_id)
        rater_key = (USERS, submission.rater_id)
        collab_key = (COLLABORATIONS, submission.collab_id)
        rating_key = (RATINGS, rating_id)
        result: Dict[str, RatingResult] = {}

        def plan(snapshots: Snapshots) -> List[DocumentWrite]:
            collab_data = snapshots[collab_key]
            if collab_data is None:
                raise HTTPException(status_code=404, detail="Collaboration not found")
            collaboration = Collaboration.model_validate(
                {**collab_data, "id": submission.collab_id}
            )
            self._check_participants(collaboration, submission)
            if collaboration.status != CollaborationStatus.COMPLETED.value:
                raise HTTPException(
                    status_code=409,
                    detail="Only completed collaborations can be rated",
                )

            # Ratings written by other clients use random ids; ratedBy is authoritative
            if (
                snapshots[rating_key] is not None
                or submission.rater_id in collaboration.rated_by
            ):
                result["value"] = RatingResult(
                    status=RatingStatus.ALREADY_RATED, rating_id=rating_id
                )
                return []

            now = utcnow()
            rating = Rating(**submission.model_dump(), id=rating_id, timestamp=now)
            writes = [
                DocumentWrite(
                    kind=WriteKind.CREATE,
                    collection_name=RATINGS,
                    document_id=rating_id,
                    data=rating.to_firestore(exclude={"id"}),
                ),
                DocumentWrite(
                    kind=WriteKind.UPDATE,
                    collection_name=COLLABORATIONS,
                    document_id=submission.collab_id,
                    data={"ratedBy": ArrayUnion([submission.rater_id])},
                ),
            ]

            new_rating: Optional[float] = None
            new_count: Optional[int] = None
            ratee_data = snapshots[ratee_key]
            if ratee_data is not None:
                new_rating, new_count = updated_average(
                    ratee_data.get("rating"),
                    ratee_data.get("ratingCount"),
                    submission.rating_value,
                )
                writes.append(
                    DocumentWrite(
                        kind=WriteKind.UPDATE,
                        collection_name=USERS,
                        document_id=submission.rated_user_id,
                        data={"rating": new_rating, "ratingCount": new_count},
                    )
                )
            else:
                logger.warning(
                    f"Rated user {submission.rated_user_id} has no profile; "
                    f"skipping aggregate update"
                )

            rater_data = snapshots[rater_key] or {}
            rater_name = rater_data.get("displayName") or "Unknown"
            notification_id = self.firestore_service.new_document_id()
            notification = RatingReceivedNotification(
                id=notification_id,
                user_id=submission.rated_user_id,
                title="New Review Received!",
                message=f"{rater_name} has rated your collaboration.",
                data=RatingReceivedData(
                    collab_id=submission.collab_id,
                    rater_id=submission.rater_id,
                    rater_name=rater_name,
                    rater_photo=rater_data.get("photoURL") or "",
                ),
                read=False,
                timestamp=now,
            )
            writes.append(
                DocumentWrite(
                    kind=WriteKind.CREATE,
                    collection_name=NOTIFICATIONS,
                    document_id=notification_id,
                    data=notification.to_firestore(exclude={"id"}),
                )
            )

            result["value"] = RatingResult(
                status=RatingStatus.SUBMITTED,
                rating_id=rating_id,
                new_rating=new_rating,
                new_rating_count=new_count,
            )
            return writes

        try:
            await self.firestore_service.run_transaction(
                [ratee_key, rater_key, collab_key, rating_key], plan
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(
                f"Failed to submit rating by {submission.rater_id} for collaboration "
                f"{submission.collab_id}: {str(e)}\n{format_exc()}"
            )
            return RatingResult(
                status=RatingStatus.FAILED, rating_id=rating_id, detail=str(e)
            )

        outcome = result["value"]
        logger.info(
            f"Rating {rating_id} by {submission.rater_id} on collaboration "
            f"{submission.collab_id}: {outcome.status}"
        )
        return outcome

    async def list_ratings(self, user_id: str) -> List[Rating]:
        """Ratings received by the user, newest first."""
        ratings = await self.firestore_service.query_collection(
            collection_name=RATINGS,
            filters=[("ratedUserId", "==", user_id)],
            model_class=Rating,
        )
        return self.sort_ratings(ratings)

    def subscribe_ratings(
        self, user_id: str, callback: Callable[[List[Rating]], None]
    ) -> Unsubscribe:
        # Sorted here rather than with order_by to avoid needing a composite index
        return self.firestore_service.subscribe(
            collection_name=RATINGS,
            callback=lambda ratings: callback(self.sort_ratings(ratings)),
            filters=[("ratedUserId", "==", user_id)],
            model_class=Rating,
        )

    async def enrich_ratings(self, ratings: List[Rating]) -> List[RatedRating]:
        """Attach each rater's display name and photo."""
        profiles = await self.profile_manager.get_profiles(r.rater_id for r in ratings)
        enriched = []
        for rating in ratings:
            profile = profiles.get(rating.rater_id)
            enriched.append(
                RatedRating(
                    **rating.model_dump(),
                    rater_name=(profile.display_name if profile else "") or "Unknown",
                    rater_photo=profile.photo_url if profile else "",
                )
            )
        return enriched

    @staticmethod
    def sort_ratings(ratings: List[Rating]) -> List[Rating]:
        return sorted(
            ratings,
            key=lambda r: r.timestamp.timestamp() if r.timestamp else 0.0,
            reverse=True,
        )

    @staticmethod
    def _check_participants(
        collaboration: Collaboration, submission: RatingSubmission
    ) -> None:
        if submission.rater_id == submission.rated_user_id:
            raise HTTPException(status_code=403, detail="Cannot rate yourself")
        if collaboration.partner_of(submission.rater_id) != submission.rated_user_id:
            raise HTTPException(
                status_code=403,
                detail="Rater and rated user must be the collaboration's participants",
            )
