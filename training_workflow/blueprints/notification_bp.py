"""
Training Approval Routing Service
Notification Blueprint.

In-app inbox for the notifications raised by the approval workflow:
    GET    /notifications?user_id=&unread_only=&limit=&offset=
    GET    /notifications/unread-count?user_id=
    PATCH  /notifications/<id>/read
    POST   /notifications/mark-all-read   { user_id }
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from training_workflow.services.notification import NotificationService
from training_workflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notification", __name__, url_prefix="/api/v1")


def _user_id():
    return request.args.get("user_id") or request.headers.get("X-User") or None


@notification_bp.route("/notifications", methods=["GET"])
def list_notifications():
    """List a user's notifications, newest first."""
    user_id = _user_id()
    if not user_id:
        return api_error(E.VALIDATION_REQUIRED, "user_id query parameter is required")

    unread_only = request.args.get("unread_only", "false").lower() == "true"
    limit = min(request.args.get("limit", 50, type=int), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)

    items, total = NotificationService.list_for_user(
        user_id, unread_only=unread_only, limit=limit, offset=offset,
    )
    return jsonify({"items": [n.to_dict() for n in items], "total": total})


@notification_bp.route("/notifications/unread-count", methods=["GET"])
def unread_count():
    user_id = _user_id()
    if not user_id:
        return api_error(E.VALIDATION_REQUIRED, "user_id query parameter is required")
    return jsonify({"user_id": user_id, "unread_count": NotificationService.unread_count(user_id)})


@notification_bp.route("/notifications/<int:nid>/read", methods=["PATCH"])
def mark_read(nid):
    """Mark a single notification as read."""
    notif = NotificationService.mark_read(nid)
    if not notif:
        return api_error(E.NOT_FOUND, "Notification not found")
    return jsonify(notif.to_dict())


@notification_bp.route("/notifications/mark-all-read", methods=["POST"])
def mark_all_read():
    data = request.get_json(silent=True) or {}
    user_id = data.get("user_id") or _user_id()
    if not user_id:
        return api_error(E.VALIDATION_REQUIRED, "user_id is required")
    count = NotificationService.mark_all_read(user_id)
    return jsonify({"user_id": user_id, "marked_read": count})
