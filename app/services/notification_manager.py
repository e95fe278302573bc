"""
Notification Manager

This module exposes the notification feed and its read state. Notifications are
only created as a side effect of other operations (see RatingManager); clients
can list them and flip them to read.
"""

import logging
from traceback import format_exc
from typing import Callable, List

from fastapi import HTTPException

from app.models.firestore import NOTIFICATIONS
from app.models.notifications import AppNotification
from app.services.firestore_service import (
    DocumentWrite,
    FirestoreService,
    Unsubscribe,
    WriteKind,
)
from config import NOTIFICATIONS_LIMIT

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class NotificationManager:
    """Reads notifications and manages their read state."""

    def __init__(self, firestore_service: FirestoreService):
        self.firestore_service = firestore_service

    async def get_notification(self, notification_id: str) -> AppNotification:
        notification = await self.firestore_service.get_document(
            collection_name=NOTIFICATIONS,
            document_id=notification_id,
            model_class=AppNotification,
        )
        if notification is None:
            raise HTTPException(status_code=404, detail="Notification not found")
        return notification

    async def list_notifications(
        self, user_id: str, limit: int = NOTIFICATIONS_LIMIT
    ) -> List[AppNotification]:
        """
        The user's notifications, newest first.

        The query has no order_by, so it needs no composite index. The limit is
        applied in document-id order before sorting, so once a user has more
        than limit notifications the result is not guaranteed to be the newest
        ones.
        """
        notifications = await self.firestore_service.query_collection(
            collection_name=NOTIFICATIONS,
            filters=[("userId", "==", user_id)],
            limit=limit,
            model_class=AppNotification,
        )
        return self.sort_notifications(notifications)

    def subscribe_notifications(
        self,
        user_id: str,
        callback: Callable[[List[AppNotification]], None],
        limit: int = NOTIFICATIONS_LIMIT,
    ) -> Unsubscribe:
        # Sorted client-side so the query needs no composite index
        return self.firestore_service.subscribe(
            collection_name=NOTIFICATIONS,
            callback=lambda notifications: callback(
                self.sort_notifications(notifications)
            ),
            filters=[("userId", "==", user_id)],
            limit=limit,
            model_class=AppNotification,
        )

    async def count_unread(self, user_id: str) -> int:
        return await self.firestore_service.count_documents(
            collection_name=NOTIFICATIONS,
            filters=[("userId", "==", user_id), ("read", "==", False)],
        )

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """
        Mark one notification as read.

        Raises:
            HTTPException: 404 if missing, 403 if the user is not the recipient
        """
        notification = await self.get_notification(notification_id)
        if notification.user_id != user_id:
            logger.error(
                f"User {user_id} attempted to read notification {notification_id}"
            )
            raise HTTPException(status_code=403, detail="Not your notification")

        try:
            await self.firestore_service.update_document(
                collection_name=NOTIFICATIONS,
                document_id=notification_id,
                update_data={"read": True},
            )
        except Exception as e:
            logger.error(
                f"Failed to mark notification {notification_id} read: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(
                status_code=500, detail="Failed to update notification"
            )
        return True

    async def mark_all_read(self, user_id: str) -> int:
        """
        Mark every unread notification of the user as read in batched writes.

        Returns:
            Number of notifications flipped; 0 when nothing was unread
        """
        try:
            unread = await self.firestore_service.query_collection(
                collection_name=NOTIFICATIONS,
                filters=[("userId", "==", user_id), ("read", "==", False)],
                model_class=AppNotification,
            )
            if not unread:
                return 0

            writes = [
                DocumentWrite(
                    kind=WriteKind.UPDATE,
                    collection_name=NOTIFICATIONS,
                    document_id=notification.id,
                    data={"read": True},
                )
                for notification in unread
            ]
            committed = await self.firestore_service.commit_batch(writes)

        except Exception as e:
            logger.error(
                f"Failed to mark notifications read for user {user_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(
                status_code=500, detail="Failed to update notifications"
            )

        logger.info(f"Marked {committed} notifications read for user {user_id}")
        return committed

    @staticmethod
    def sort_notifications(
        notifications: List[AppNotification],
    ) -> List[AppNotification]:
        return sorted(
            notifications,
            key=lambda n: n.timestamp.timestamp() if n.timestamp else 0.0,
            reverse=True,
        )
