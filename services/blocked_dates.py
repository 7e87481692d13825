"""
Administrative date blocking.

Blocking a date cancels every scheduled booking on it. Each booking is
cancelled and notified on its own; one failing booking is logged and the
cascade carries on with the rest.
"""
from collections import namedtuple
from datetime import datetime
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.blocked_date import BlockedDate
from models.booking import Booking, STATUS_CANCELLED, STATUS_SCHEDULED
from models.dog import Dog
from models.user import User
from services import conflicts, notifications
from services.admission import parse_date
from services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from utils.audit import log_event

logger = logging.getLogger(__name__)

ALREADY_BLOCKED_MESSAGE = "Date is already blocked"

CascadeReport = namedtuple("CascadeReport", ["blocked_date", "cancelled_count", "scheduled_count"])


def cancellation_reason_for(block_reason: str) -> str:
    return f"Date blocked by administration: {block_reason}"


def list_blocked_dates():
    return BlockedDate.query.order_by(BlockedDate.date.asc()).all()


def _cancel_one(booking_id: int, reason: str) -> bool:
    now = datetime.utcnow()
    rows = (
        Booking.query
        .filter(Booking.id == booking_id, Booking.status == STATUS_SCHEDULED)
        .update({
            Booking.status: STATUS_CANCELLED,
            Booking.admin_cancellation_reason: reason,
            Booking.cancelled_at: now,
            Booking.updated_at: now,
        }, synchronize_session=False)
    )
    db.session.commit()
    return rows == 1


def _notify_one(booking_id: int, user_id: int, dog_id: int, reason: str) -> None:
    user = db.session.get(User, user_id)
    if not user:
        raise LookupError(f"user {user_id} not found")
    dog = db.session.get(Dog, dog_id)
    booking = db.session.get(Booking, booking_id)
    notifications.send_admin_cancellation(
        notifications.mail_context(booking, user=user, dog=dog),
        reason,
    )


def block_date(day, reason, admin) -> CascadeReport:
    if not admin.is_admin:
        raise AuthorizationError("Forbidden")

    day = parse_date(day)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Reason is required")

    if BlockedDate.query.filter_by(date=day).first():
        raise ConflictError(ALREADY_BLOCKED_MESSAGE)

    blocked = BlockedDate(date=day, reason=reason, created_by=admin.id)
    db.session.add(blocked)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        conflicts.raise_for_integrity_error(exc, ALREADY_BLOCKED_MESSAGE)

    log_event("BLOCKED_DATE_CREATE", user_id=admin.id, entity="blocked_date", entity_id=blocked.id,
              metadata={"date": day, "reason": reason})

    # snapshot ids first; the per-item updates below commit independently
    targets = [
        (b.id, b.user_id, b.dog_id)
        for b in Booking.query.filter(Booking.date == day, Booking.status == STATUS_SCHEDULED).all()
    ]

    cancel_reason = cancellation_reason_for(reason)
    cancelled = 0
    for booking_id, user_id, dog_id in targets:
        try:
            if not _cancel_one(booking_id, cancel_reason):
                logger.info("Booking %s left scheduled state before cascade reached it", booking_id)
                continue
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Cascade failed to cancel booking %s on %s", booking_id, day)
            continue
        cancelled += 1

        try:
            _notify_one(booking_id, user_id, dog_id, cancel_reason)
        except (LookupError, SQLAlchemyError) as exc:
            db.session.rollback()
            logger.warning("Cascade could not notify for booking %s: %s", booking_id, exc)

    if targets:
        log_event("BLOCKED_DATE_CASCADE", user_id=admin.id, entity="blocked_date", entity_id=blocked.id,
                  metadata={"scheduled": len(targets), "cancelled": cancelled})

    return CascadeReport(blocked_date=blocked, cancelled_count=cancelled, scheduled_count=len(targets))


def unblock_date(blocked_id: int, admin) -> None:
    if not admin.is_admin:
        raise AuthorizationError("Forbidden")
    row = db.session.get(BlockedDate, blocked_id)
    if not row:
        raise NotFoundError("Blocked date not found")
    day = row.date
    db.session.delete(row)
    db.session.commit()
    log_event("BLOCKED_DATE_DELETE", user_id=admin.id, entity="blocked_date", entity_id=blocked_id,
              metadata={"date": day})
