from flask import Blueprint, jsonify, g, request
from security.rbac import require_admin
from utils.audit import log_event
from utils.auth_context import current_principal
from models import db
from models.booking import Booking, STATUS_SCHEDULED
from services import approval, settings, time_rules
from services.errors import NotFoundOrAlreadyReviewedError
from services.move import move_booking

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# ---------- ADMIN: approvals ----------
@admin_bp.get("/bookings/pending")
@require_admin
def pending_bookings():
    rows = approval.list_pending()
    return jsonify([b.to_dict(with_details=True) for b in rows]), 200


def _review_failed(booking_id: int, exc: NotFoundOrAlreadyReviewedError):
    # the conditional update can't tell missing from already decided; look again
    booking = db.session.get(Booking, booking_id)
    if not booking:
        return jsonify(error="Booking not found"), 404
    # a cancelled or completed walk is past review whatever its approval says
    state = booking.approval_status if booking.status == STATUS_SCHEDULED else booking.status
    return jsonify(error=f"Booking already {state}"), exc.status_code


@admin_bp.put("/bookings/<int:booking_id>/approve")
@require_admin
def approve_booking(booking_id: int):
    try:
        booking = approval.approve(booking_id, current_principal())
    except NotFoundOrAlreadyReviewedError as exc:
        return _review_failed(booking_id, exc)
    return jsonify(booking.to_dict()), 200


@admin_bp.put("/bookings/<int:booking_id>/reject")
@require_admin
def reject_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    try:
        booking = approval.reject(booking_id, current_principal(), data.get("reason"))
    except NotFoundOrAlreadyReviewedError as exc:
        return _review_failed(booking_id, exc)
    return jsonify(booking.to_dict()), 200


# ---------- ADMIN: reschedule ----------
@admin_bp.put("/bookings/<int:booking_id>/move")
@require_admin
def move(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = move_booking(
        booking_id,
        current_principal(),
        data.get("date"),
        data.get("scheduled_time"),
        data.get("reason"),
    )
    return jsonify(message="Booking moved successfully", booking=booking.to_dict()), 200


# ---------- ADMIN: time rules ----------
@admin_bp.get("/time-rules")
@require_admin
def list_time_rules():
    return jsonify({
        day_type: [r.to_dict() for r in time_rules.rules_for_day_type(day_type)]
        for day_type in ("weekday", "weekend")
    }), 200


@admin_bp.post("/time-rules")
@require_admin
def create_time_rule():
    data = request.get_json(silent=True) or {}
    rule = time_rules.create_rule(
        data.get("day_type"),
        data.get("rule_name"),
        data.get("start_time"),
        data.get("end_time"),
        data.get("is_blocked", False),
    )
    log_event("TIME_RULE_CREATE", user_id=g.user.id, entity="time_rule", entity_id=rule.id)
    return jsonify(rule.to_dict()), 201


@admin_bp.put("/time-rules/<int:rule_id>")
@require_admin
def update_time_rule(rule_id: int):
    data = request.get_json(silent=True) or {}
    rule = time_rules.update_rule(rule_id, data)
    log_event("TIME_RULE_UPDATE", user_id=g.user.id, entity="time_rule", entity_id=rule.id, metadata=data)
    return jsonify(rule.to_dict()), 200


@admin_bp.delete("/time-rules/<int:rule_id>")
@require_admin
def delete_time_rule(rule_id: int):
    time_rules.delete_rule(rule_id)
    log_event("TIME_RULE_DELETE", user_id=g.user.id, entity="time_rule", entity_id=rule_id)
    return jsonify(message="Time rule deleted"), 200


# ---------- ADMIN: system settings ----------
@admin_bp.get("/settings")
@require_admin
def list_settings():
    return jsonify(settings.list_settings()), 200


@admin_bp.put("/settings/<key>")
@require_admin
def update_setting(key: str):
    data = request.get_json(silent=True) or {}
    value = data.get("value")
    if value is None:
        return jsonify(error="value required"), 400

    row = settings.update_setting(key, str(value))
    log_event("SETTING_UPDATE", user_id=g.user.id, entity="setting", entity_id=key, metadata={"value": row.value})
    return jsonify(key=row.key, value=row.value), 200
