"""
Notification service & inbox API tests.

Tests cover:
  - Outbox dispatch (delivery, partial failure, disabled by config)
  - Listing / unread count / mark-read
  - Notification blueprint endpoints
"""
import pytest

from training_workflow.models.notification import Notification
from training_workflow.services.notification import NotificationService, Outbox


@pytest.fixture()
def inbox(org):
    """Three notifications for emp-1, one for mgr-1."""
    for i in range(3):
        NotificationService.notify("emp-1", f"Update {i}", f"Message {i}", reference_id=f"req-{i}")
    NotificationService.notify("mgr-1", "Training Approval Required", "Please review")


# ═════════════════════════════════════════════════════════════════════════
# DISPATCH
# ═════════════════════════════════════════════════════════════════════════

class TestDispatch:
    def test_dispatch_delivers_and_clears(self, org):
        outbox = Outbox()
        outbox.add("mgr-1", "Training Approval Required", "Review please", reference_id="r1")
        outbox.add("emp-1", "Training Nomination", "You were nominated", type="request_nominated")
        assert len(outbox) == 2

        assert NotificationService.dispatch(outbox) == 2
        assert len(outbox) == 0
        note = Notification.query.filter_by(user_id="mgr-1").one()
        assert note.reference_type == "training_request"
        assert note.reference_id == "r1"
        assert note.is_read is False

    def test_failed_message_does_not_block_the_rest(self, org):
        outbox = Outbox()
        outbox.add("ghost", "Undeliverable", "unknown recipient")
        outbox.add("emp-1", "Training Request Approved", "done")

        assert NotificationService.dispatch(outbox) == 1
        assert Notification.query.count() == 1
        assert Notification.query.first().user_id == "emp-1"

    def test_disabled_by_config(self, app, org, monkeypatch):
        monkeypatch.setitem(app.config, "NOTIFICATIONS_ENABLED", False)
        outbox = Outbox()
        outbox.add("emp-1", "Training Request Approved", "done")

        assert NotificationService.dispatch(outbox) == 0
        assert len(outbox) == 0
        assert Notification.query.count() == 0


# ═════════════════════════════════════════════════════════════════════════
# QUERY / ACTIONS
# ═════════════════════════════════════════════════════════════════════════

class TestInbox:
    def test_list_newest_first(self, inbox):
        items, total = NotificationService.list_for_user("emp-1")
        assert total == 3
        assert [n.title for n in items] == ["Update 2", "Update 1", "Update 0"]

    def test_pagination(self, inbox):
        items, total = NotificationService.list_for_user("emp-1", limit=2, offset=2)
        assert total == 3
        assert len(items) == 1

    def test_mark_read(self, inbox):
        items, _ = NotificationService.list_for_user("emp-1")
        NotificationService.mark_read(items[0].id)
        assert NotificationService.unread_count("emp-1") == 2
        unread, total = NotificationService.list_for_user("emp-1", unread_only=True)
        assert total == 2
        assert items[0].id not in [n.id for n in unread]

    def test_mark_read_unknown(self, inbox):
        assert NotificationService.mark_read(99999) is None

    def test_mark_all_read_is_per_user(self, inbox):
        assert NotificationService.mark_all_read("emp-1") == 3
        assert NotificationService.unread_count("emp-1") == 0
        assert NotificationService.unread_count("mgr-1") == 1


class TestNotificationAPI:
    def test_list(self, client, inbox):
        res = client.get("/api/v1/notifications?user_id=emp-1&limit=2")
        assert res.status_code == 200
        data = res.get_json()
        assert data["total"] == 3
        assert len(data["items"]) == 2

    def test_list_requires_user(self, client):
        res = client.get("/api/v1/notifications")
        assert res.status_code == 400

    def test_unread_count_from_header(self, client, inbox):
        res = client.get("/api/v1/notifications/unread-count", headers={"X-User": "mgr-1"})
        assert res.status_code == 200
        assert res.get_json()["unread_count"] == 1

    def test_mark_read(self, client, inbox):
        nid = Notification.query.filter_by(user_id="mgr-1").one().id
        res = client.patch(f"/api/v1/notifications/{nid}/read")
        assert res.status_code == 200
        data = res.get_json()
        assert data["is_read"] is True
        assert data["read_at"] is not None

    def test_mark_read_not_found(self, client):
        res = client.patch("/api/v1/notifications/99999/read")
        assert res.status_code == 404

    def test_mark_all_read(self, client, inbox):
        res = client.post("/api/v1/notifications/mark-all-read", json={"user_id": "emp-1"})
        assert res.status_code == 200
        assert res.get_json()["marked_read"] == 3
