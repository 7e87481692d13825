from flask import Blueprint, request, jsonify, g

from services import admission, cancellation, time_rules
from services.calendar_view import build_month
from utils.auth_context import login_required, current_principal

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


# ---------- USERS: book a walk (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    booking = admission.create_booking(
        current_principal(),
        data.get("dog_id"),
        data.get("date"),
        data.get("scheduled_time"),
    )
    return jsonify(booking.to_dict()), 201


# ---------- USERS: list bookings (own; admins see all) ----------
@booking_bp.get("")
@login_required
def list_bookings():
    date_from = request.args.get("date_from")
    date_to = request.args.get("date_to")
    rows = cancellation.list_bookings(
        current_principal(),
        user_id=request.args.get("user_id", type=int),
        dog_id=request.args.get("dog_id", type=int),
        date_from=admission.parse_date(date_from, "date_from") if date_from else None,
        date_to=admission.parse_date(date_to, "date_to") if date_to else None,
        status=request.args.get("status"),
    )
    return jsonify([b.to_dict(with_details=True) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = cancellation.get_booking_for(booking_id, current_principal())
    return jsonify(booking.to_dict(with_details=True)), 200


# ---------- cancel booking (notice period for users, reason for admins) ----------
@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    cancellation.cancel_booking(booking_id, current_principal(), data.get("reason"))
    return jsonify(message="Booking cancelled successfully"), 200


@booking_bp.put("/<int:booking_id>/notes")
@login_required
def add_notes(booking_id: int):
    data = request.get_json(silent=True) or {}
    cancellation.add_notes(booking_id, current_principal(), data.get("notes"))
    return jsonify(message="Notes added successfully"), 200


@booking_bp.get("/calendar/<int:year>/<int:month>")
@login_required
def calendar_month(year: int, month: int):
    return jsonify(build_month(year, month, g.user.id)), 200


@booking_bp.get("/available-slots")
@login_required
def available_slots():
    date_str = request.args.get("date")
    if not date_str:
        return jsonify(error="date is required"), 400
    day = admission.parse_date(date_str)
    return jsonify(
        date=day.isoformat(),
        day_type=time_rules.day_type_for(day),
        is_blocked=admission.is_date_blocked(day),
        slots=time_rules.available_slots(day),
    ), 200
