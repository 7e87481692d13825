from flask import Blueprint, request, jsonify

from services import blocked_dates
from security.rbac import require_admin
from utils.auth_context import login_required, current_principal

blocked_date_bp = Blueprint("blocked_dates", __name__, url_prefix="/blocked-dates")


@blocked_date_bp.get("")
@login_required
def list_blocked_dates():
    return jsonify([bd.to_dict() for bd in blocked_dates.list_blocked_dates()]), 200


# ---------- ADMIN: block a date (cancels that day's scheduled bookings) ----------
@blocked_date_bp.post("")
@require_admin
def create_blocked_date():
    data = request.get_json(silent=True) or {}
    if not data.get("date"):
        return jsonify(error="date is required"), 400

    report = blocked_dates.block_date(data.get("date"), data.get("reason"), current_principal())
    return jsonify(
        blocked_date=report.blocked_date.to_dict(),
        cancelled_bookings=report.cancelled_count,
        scheduled_bookings=report.scheduled_count,
    ), 201


@blocked_date_bp.delete("/<int:blocked_id>")
@require_admin
def delete_blocked_date(blocked_id: int):
    blocked_dates.unblock_date(blocked_id, current_principal())
    return jsonify(message="Blocked date deleted successfully"), 200
