"""
Admin rescheduling of a scheduled booking, in place.

Only the new slot is re-validated: blocked date and double booking.
Identity, tier and time-window checks passed at creation are not re-run.
"""
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking, STATUS_SCHEDULED
from services import conflicts, notifications
from services.admission import is_date_blocked, parse_date, parse_time
from services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from utils.audit import log_event


def move_booking(booking_id: int, principal, new_date, new_time, reason) -> Booking:
    """Move the booking to ``new_date`` at ``new_time``; ``reason`` goes into the audit log and the mail."""
    if not principal.is_admin:
        raise AuthorizationError("Forbidden")

    day = parse_date(new_date)
    t = parse_time(new_time)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Reason is required")

    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    if booking.status != STATUS_SCHEDULED:
        raise ValidationError("Can only move scheduled bookings")

    before = notifications.mail_context(booking)

    if is_date_blocked(day):
        raise ValidationError("The new date is blocked")

    if conflicts.check_double_booking(booking.dog_id, day, t, exclude_booking_id=booking.id):
        raise ConflictError(conflicts.SLOT_TAKEN_MESSAGE)

    old_date, old_time = booking.date, booking.scheduled_time
    booking.date = day
    booking.scheduled_time = t
    booking.updated_at = datetime.utcnow()
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        conflicts.raise_for_integrity_error(exc)

    log_event(
        "BOOKING_MOVE",
        user_id=principal.id,
        entity="booking",
        entity_id=booking.id,
        metadata={
            "from": f"{old_date.isoformat()} {old_time.strftime('%H:%M')}",
            "to": f"{day.isoformat()} {t.strftime('%H:%M')}",
            "reason": reason,
        },
    )
    notifications.send_booking_moved(before, day.isoformat(), t.strftime("%H:%M"), reason)
    return booking
