"""Tests for NotificationManager."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from app.models.firestore import NOTIFICATIONS
from app.models.notifications import (
    CollabUpdateNotification,
    RatingReceivedNotification,
    SystemNotification,
)
from app.services.firestore_service import MAX_BATCH_SIZE


def _seed_notification(firestore, notification_id, user_id="b1", age=0, read=False, **extra):
    data = {
        "userId": user_id,
        "type": "system",
        "title": f"Title {notification_id}",
        "message": "Hello",
        "read": read,
        "timestamp": datetime.now(timezone.utc) - timedelta(minutes=age),
    }
    data.update(extra)
    firestore.seed(NOTIFICATIONS, notification_id, data)


class TestListNotifications:
    """Tests for listing notifications."""

    @pytest.mark.asyncio
    async def test_newest_first_for_user_only(self, firestore, notification_manager):
        _seed_notification(firestore, "n-old", age=10)
        _seed_notification(firestore, "n-new", age=0)
        _seed_notification(firestore, "n-mid", age=5)
        _seed_notification(firestore, "n-alice", user_id="a1")

        notifications = await notification_manager.list_notifications("b1")

        assert [n.id for n in notifications] == ["n-new", "n-mid", "n-old"]

    @pytest.mark.asyncio
    async def test_documents_parse_by_type(self, firestore, notification_manager):
        _seed_notification(
            firestore,
            "n-rating",
            type="rating_received",
            data={"collabId": "c1", "raterId": "a1"},
        )
        _seed_notification(firestore, "n-update", type="collab_update", data={"collabId": "c1"})
        _seed_notification(firestore, "n-system")

        notifications = {
            n.id: n for n in await notification_manager.list_notifications("b1")
        }

        assert isinstance(notifications["n-rating"], RatingReceivedNotification)
        assert notifications["n-rating"].data.rater_name == "Unknown"
        assert isinstance(notifications["n-update"], CollabUpdateNotification)
        assert isinstance(notifications["n-system"], SystemNotification)

    @pytest.mark.asyncio
    async def test_limit(self, firestore, notification_manager):
        for i in range(5):
            _seed_notification(firestore, f"n{i}", age=i)

        notifications = await notification_manager.list_notifications("b1", limit=2)

        assert len(notifications) == 2

    @pytest.mark.asyncio
    async def test_limit_applies_before_sort(self, firestore, notification_manager):
        """Without an order_by the limit takes documents in id order."""
        _seed_notification(firestore, "n-a", age=10)
        _seed_notification(firestore, "n-b", age=5)
        _seed_notification(firestore, "n-c", age=0)

        notifications = await notification_manager.list_notifications("b1", limit=2)

        assert [n.id for n in notifications] == ["n-b", "n-a"]


class TestReadState:
    """Tests for marking notifications read."""

    @pytest.mark.asyncio
    async def test_mark_read(self, firestore, notification_manager):
        _seed_notification(firestore, "n1")

        await notification_manager.mark_read("n1", "b1")

        assert firestore.doc(NOTIFICATIONS, "n1")["read"] is True
        assert await notification_manager.count_unread("b1") == 0

    @pytest.mark.asyncio
    async def test_mark_read_of_someone_else(self, firestore, notification_manager):
        _seed_notification(firestore, "n1")

        with pytest.raises(HTTPException) as exc_info:
            await notification_manager.mark_read("n1", "a1")

        assert exc_info.value.status_code == 403
        assert firestore.doc(NOTIFICATIONS, "n1")["read"] is False

    @pytest.mark.asyncio
    async def test_mark_read_missing(self, notification_manager):
        with pytest.raises(HTTPException) as exc_info:
            await notification_manager.mark_read("missing", "b1")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_mark_all_read(self, firestore, notification_manager):
        _seed_notification(firestore, "n1")
        _seed_notification(firestore, "n2")
        _seed_notification(firestore, "n3", read=True)
        _seed_notification(firestore, "n-alice", user_id="a1")

        assert await notification_manager.count_unread("b1") == 2
        assert await notification_manager.mark_all_read("b1") == 2

        assert await notification_manager.count_unread("b1") == 0
        assert firestore.doc(NOTIFICATIONS, "n-alice")["read"] is False

    @pytest.mark.asyncio
    async def test_mark_all_read_with_nothing_unread(self, firestore, notification_manager):
        _seed_notification(firestore, "n1", read=True)

        assert await notification_manager.mark_all_read("b1") == 0
        assert firestore.batch_sizes == []

    @pytest.mark.asyncio
    async def test_mark_all_read_chunks_large_feeds(self, firestore, notification_manager):
        for i in range(MAX_BATCH_SIZE + 20):
            _seed_notification(firestore, f"n{i}")

        assert await notification_manager.mark_all_read("b1") == MAX_BATCH_SIZE + 20
        assert firestore.batch_sizes == [MAX_BATCH_SIZE, 20]

    @pytest.mark.asyncio
    async def test_mark_all_read_failure(self, firestore, notification_manager):
        _seed_notification(firestore, "n1")
        firestore.fail_next_commit = RuntimeError("unavailable")

        with pytest.raises(HTTPException) as exc_info:
            await notification_manager.mark_all_read("b1")

        assert exc_info.value.status_code == 500
        assert firestore.doc(NOTIFICATIONS, "n1")["read"] is False
