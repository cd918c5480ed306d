# bakery/routes/communications.py
from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..services import notification_service
from ..services.concurrency import commit_session
from ..validation import request_json
from ..services.resource_service import parse_pagination

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def list_notifications():
    page, limit = parse_pagination(request.args)
    result = notification_service.list_notifications(
        search=request.args.get("search"),
        type=request.args.get("type"),
        status=request.args.get("status"),
        recipient=request.args.get("recipient"),
        date_range=request.args.get("date_range"),
        page=page,
        limit=limit,
    )
    return result.to_dict("notifications")


@notifications_bp.get("/templates")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def list_templates():
    return {"templates": [t.to_dict() for t in notification_service.NOTIFICATION_TEMPLATES]}


@notifications_bp.post("/templates/<template_id>/render")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def render_template(template_id: str):
    payload = request_json()
    template = notification_service.get_template(template_id)
    return {"rendered": notification_service.render_template(template, payload.get("variables"))}


@notifications_bp.get("/<int:notification_id>")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def get_notification(notification_id: int):
    return {"notification": notification_service.get_notification(notification_id).to_dict()}


@notifications_bp.post("")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def create_notification():
    """
    Body: { type, recipient, message, subject? } or
          { template_id, variables, recipient } to render a template.
    """
    notification = notification_service.create_notification(request_json())
    commit_session()
    return {"message": "Notification created successfully", "notification": notification.to_dict()}, 201


@notifications_bp.post("/bulk")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def bulk_create_notifications():
    # Either {"notifications": [...]} or a bare list
    payload = request.get_json(silent=True)
    rows = payload.get("notifications") if isinstance(payload, dict) else payload
    created = notification_service.bulk_create_notifications(rows)
    commit_session()
    return {
        "message": f"{len(created)} notifications created successfully",
        "notifications": [n.to_dict() for n in created],
    }, 201


@notifications_bp.post("/orders/<int:order_id>")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def notify_order(order_id: int):
    """
    Body: { template_id, recipient?, variables? }
    """
    payload = request_json()
    notification = notification_service.notify_order(
        order_id,
        payload.get("template_id") or "order_confirmation",
        recipient=payload.get("recipient"),
        extra=payload.get("variables") if isinstance(payload.get("variables"), dict) else None,
    )
    commit_session()
    return {"message": "Notification queued successfully", "notification": notification.to_dict()}, 201


@notifications_bp.put("/<int:notification_id>")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def update_notification(notification_id: int):
    notification = notification_service.update_notification(notification_id, request_json())
    commit_session()
    return {"message": "Notification updated successfully", "notification": notification.to_dict()}


@notifications_bp.patch("/<int:notification_id>/status")
@require_auth
@require_permission("MANAGE_NOTIFICATIONS")
def set_notification_status(notification_id: int):
    payload = request_json()
    notification = notification_service.set_notification_status(
        notification_id, payload.get("status"), error_message=payload.get("error_message")
    )
    commit_session()
    return {"message": "Notification status updated successfully", "notification": notification.to_dict()}


@notifications_bp.delete("/<int:notification_id>")
@require_auth
@require_permission("DELETE_NOTIFICATIONS")
def delete_notification(notification_id: int):
    notification_service.delete_notification(notification_id)
    commit_session()
    return {"message": "Notification deleted successfully"}
