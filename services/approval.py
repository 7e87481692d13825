"""
Pending -> approved / rejected.

Both transitions are single conditional UPDATEs filtered on a pending
approval of a still scheduled booking. Of two concurrent reviews only one
touches the row; the other, or a review of a booking that was cancelled
meanwhile, gets NotFoundOrAlreadyReviewedError.
"""
from datetime import datetime

from models import db
from models.booking import (
    Booking,
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    STATUS_CANCELLED,
    STATUS_SCHEDULED,
)
from services import notifications
from services.errors import NotFoundOrAlreadyReviewedError, ValidationError
from utils.audit import log_event

ALREADY_REVIEWED_MESSAGE = "Booking not found or not pending"


def list_pending():
    return (
        Booking.query
        .filter(Booking.approval_status == APPROVAL_PENDING, Booking.status == STATUS_SCHEDULED)
        .order_by(Booking.date.asc(), Booking.scheduled_time.asc())
        .all()
    )


def _pending_update(booking_id: int, values: dict) -> int:
    rows = (
        Booking.query
        .filter(
            Booking.id == booking_id,
            Booking.approval_status == APPROVAL_PENDING,
            Booking.status == STATUS_SCHEDULED,
        )
        .update(values, synchronize_session=False)
    )
    db.session.commit()
    return rows


def approve(booking_id: int, reviewer) -> Booking:
    now = datetime.utcnow()
    rows = _pending_update(booking_id, {
        Booking.approval_status: APPROVAL_APPROVED,
        Booking.approved_by: reviewer.id,
        Booking.approved_at: now,
        Booking.updated_at: now,
    })
    if rows == 0:
        raise NotFoundOrAlreadyReviewedError(ALREADY_REVIEWED_MESSAGE)

    booking = db.session.get(Booking, booking_id)
    log_event("BOOKING_APPROVE", user_id=reviewer.id, entity="booking", entity_id=booking_id)
    notifications.send_booking_approved(notifications.mail_context(booking))
    return booking


def reject(booking_id: int, reviewer, reason) -> Booking:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Rejection reason is required")

    now = datetime.utcnow()
    rows = _pending_update(booking_id, {
        Booking.approval_status: APPROVAL_REJECTED,
        Booking.approved_by: reviewer.id,
        Booking.approved_at: now,
        Booking.rejection_reason: reason,
        Booking.status: STATUS_CANCELLED,
        Booking.admin_cancellation_reason: reason,
        Booking.cancelled_at: now,
        Booking.updated_at: now,
    })
    if rows == 0:
        raise NotFoundOrAlreadyReviewedError(ALREADY_REVIEWED_MESSAGE)

    booking = db.session.get(Booking, booking_id)
    log_event("BOOKING_REJECT", user_id=reviewer.id, entity="booking", entity_id=booking_id,
              metadata={"reason": reason})
    notifications.send_booking_rejected(notifications.mail_context(booking), reason)
    return booking
