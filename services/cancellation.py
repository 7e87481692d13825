from datetime import datetime

from models import db
from models.booking import Booking, STATUS_CANCELLED, STATUS_COMPLETED, STATUS_SCHEDULED
from models.user import User
from services import notifications, settings
from services.errors import AuthorizationError, NotFoundError, ValidationError
from utils.audit import log_event

LIST_STATUSES = (STATUS_SCHEDULED, STATUS_COMPLETED, STATUS_CANCELLED)


def get_booking_for(booking_id: int, principal) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    if not principal.is_admin and booking.user_id != principal.id:
        raise AuthorizationError("Access denied")
    return booking


def list_bookings(principal, user_id=None, dog_id=None, date_from=None, date_to=None, status=None):
    q = Booking.query
    # non-admins only ever see their own bookings
    if not principal.is_admin:
        q = q.filter(Booking.user_id == principal.id)
    elif user_id is not None:
        q = q.filter(Booking.user_id == user_id)

    if dog_id is not None:
        q = q.filter(Booking.dog_id == dog_id)
    if date_from is not None:
        q = q.filter(Booking.date >= date_from)
    if date_to is not None:
        q = q.filter(Booking.date <= date_to)
    if status:
        if status not in LIST_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(LIST_STATUSES)}")
        q = q.filter(Booking.status == status)

    return q.order_by(Booking.date.asc(), Booking.scheduled_time.asc()).limit(500).all()


def cancel_booking(booking_id: int, principal, reason=None, now=None) -> Booking:
    """
    Owners may cancel up to ``cancellation_notice_hours`` before the walk.
    Admins may cancel any scheduled booking but must give a reason.
    """
    now = now or datetime.now()
    reason = (reason or "").strip() or None

    booking = get_booking_for(booking_id, principal)
    if booking.status != STATUS_SCHEDULED:
        raise ValidationError(f"Booking is already {booking.status}")

    admin_cancel = principal.is_admin and booking.user_id != principal.id
    if principal.is_admin and not reason:
        raise ValidationError("Reason is required for admin cancellation")

    if not principal.is_admin:
        notice_hours = settings.cancellation_notice_hours()
        hours_left = (booking.starts_at - now).total_seconds() / 3600
        if hours_left < notice_hours:
            raise ValidationError(f"Bookings must be cancelled at least {notice_hours} hours in advance")

    ctx = notifications.mail_context(booking)
    stamp = datetime.utcnow()
    rows = (
        Booking.query
        .filter(Booking.id == booking.id, Booking.status == STATUS_SCHEDULED)
        .update({
            Booking.status: STATUS_CANCELLED,
            Booking.admin_cancellation_reason: reason if principal.is_admin else None,
            Booking.cancelled_at: stamp,
            Booking.updated_at: stamp,
        }, synchronize_session=False)
    )
    db.session.commit()
    if rows == 0:
        raise ValidationError("Booking is no longer scheduled")

    user = db.session.get(User, principal.id)
    if user:
        user.last_activity_at = stamp

    log_event(
        "ADMIN_BOOKING_CANCEL" if principal.is_admin else "BOOKING_CANCEL",
        user_id=principal.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"reason": reason},
    )

    if admin_cancel:
        notifications.send_admin_cancellation(ctx, reason)
    else:
        notifications.send_booking_cancellation(ctx)
    return db.session.get(Booking, booking.id)


def add_notes(booking_id: int, principal, notes) -> Booking:
    notes = (notes or "").strip()
    if not notes:
        raise ValidationError("Notes cannot be empty")

    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    if booking.user_id != principal.id:
        raise AuthorizationError("Access denied")
    if booking.status != STATUS_COMPLETED:
        raise ValidationError("Can only add notes to completed bookings")

    booking.user_notes = notes
    booking.updated_at = datetime.utcnow()
    db.session.commit()
    return booking
