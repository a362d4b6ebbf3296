"""
Training Approval Routing Service
Notification Service.

Central service for creating and querying in-app notifications.

The routing engine never notifies inline. It queues messages in an
``Outbox`` while its transaction is open and calls ``dispatch`` after the
commit. Delivery is best-effort: a failure is logged and dropped, and it
can never roll back or block the state transition that produced it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask import current_app

from training_workflow.models import db
from training_workflow.models.notification import Notification

logger = logging.getLogger(__name__)


@dataclass
class OutgoingNotification:
    recipient_id: str
    title: str
    message: str
    type: str = "approval_required"
    reference_type: str = "training_request"
    reference_id: str | None = None


@dataclass
class Outbox:
    """Notifications queued inside a transaction, sent after commit."""

    messages: list = field(default_factory=list)

    def add(self, recipient_id, title, message, type="approval_required",
            reference_type="training_request", reference_id=None):
        self.messages.append(OutgoingNotification(
            recipient_id=recipient_id,
            title=title,
            message=message,
            type=type,
            reference_type=reference_type,
            reference_id=reference_id,
        ))

    def clear(self):
        self.messages.clear()

    def __len__(self):
        return len(self.messages)


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def notify(recipient_id, title, message="", type="approval_required",
               reference_type="training_request", reference_id=None):
        """
        Create a single notification record.

        Returns:
            The created Notification instance (already committed).
        """
        notif = Notification(
            user_id=recipient_id,
            title=title,
            message=message,
            type=type,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        db.session.add(notif)
        db.session.commit()
        return notif

    @staticmethod
    def dispatch(outbox):
        """
        Send every queued notification, each in its own transaction.

        Returns:
            Number of notifications delivered.
        """
        if not current_app.config.get("NOTIFICATIONS_ENABLED", True):
            for msg in outbox.messages:
                logger.info("Notification suppressed for %s: %s", msg.recipient_id, msg.title)
            outbox.clear()
            return 0

        sent = 0
        for msg in outbox.messages:
            try:
                NotificationService.notify(
                    msg.recipient_id,
                    msg.title,
                    msg.message,
                    type=msg.type,
                    reference_type=msg.reference_type,
                    reference_id=msg.reference_id,
                )
                sent += 1
            except Exception:
                db.session.rollback()
                logger.warning(
                    "Notification to %s failed (%s)", msg.recipient_id, msg.title,
                    exc_info=True,
                    extra={"training_request_id": msg.reference_id, "event_type": "notify_failed"},
                )
        outbox.clear()
        return sent

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_user(user_id, unread_only=False, limit=50, offset=0):
        """
        Retrieve notifications for a user, newest first.
        """
        q = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            q = q.filter_by(is_read=False)
        total = q.count()
        items = (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )
        return items, total

    @staticmethod
    def unread_count(user_id):
        """Return count of unread notifications."""
        return Notification.query.filter_by(user_id=user_id, is_read=False).count()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(notification_id):
        """Mark a single notification as read."""
        notif = db.session.get(Notification, notification_id)
        if notif:
            notif.mark_read()
            db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(user_id):
        """Mark all notifications for a user as read."""
        now = datetime.now(timezone.utc)
        count = (
            Notification.query.filter_by(user_id=user_id, is_read=False)
            .update({"is_read": True, "read_at": now}, synchronize_session="fetch")
        )
        db.session.commit()
        return count
