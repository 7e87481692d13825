"""
Booking admission.

Checks run in a fixed order and stop at the first failure so the same bad
request always gets the same error:

    user active -> dog available -> experience tier -> not in the past
    -> within advance window -> date not blocked -> time window -> slot free

The final insert can still lose a race to a concurrent request for the same
walk slot; the unique index rejects it and the caller gets the same 409 as
the pre-check.
"""
import logging
from datetime import date, datetime, time

from sqlalchemy.exc import IntegrityError

from models import db
from models.blocked_date import BlockedDate
from models.booking import Booking, STATUS_SCHEDULED, APPROVAL_APPROVED, APPROVAL_PENDING
from models.dog import Dog
from models.user import User
from services import conflicts, notifications, settings, time_rules
from services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from utils.audit import log_event

logger = logging.getLogger(__name__)

# green < blue < orange
EXPERIENCE_LEVELS = {
    "green": 1,
    "blue": 2,
    "orange": 3,
}


def can_user_access_dog(user_level: str, dog_category: str) -> bool:
    user_rank = EXPERIENCE_LEVELS.get((user_level or "").strip().lower())
    dog_rank = EXPERIENCE_LEVELS.get((dog_category or "").strip().lower())
    if user_rank is None or dog_rank is None:
        return False
    return user_rank >= dog_rank


def parse_date(value, field="date") -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"{field} must be in YYYY-MM-DD format")


def parse_time(value, field="scheduled_time") -> time:
    if isinstance(value, time):
        return value
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"{field} must be in HH:MM format")


def parse_dog_id(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("dog_id is required")
    try:
        dog_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError("dog_id is required")
    if dog_id <= 0:
        raise ValidationError("dog_id is required")
    return dog_id


def is_date_blocked(day: date) -> bool:
    return BlockedDate.query.filter_by(date=day).first() is not None


def check_date_bounds(day: date, today: date) -> None:
    if day < today:
        raise ValidationError("Cannot book dates in the past")

    advance_days = settings.booking_advance_days()
    if (day - today).days > advance_days:
        raise ValidationError(f"Cannot book more than {advance_days} days in advance")


def classify_time(day: date, t: time) -> bool:
    """Returns requires_approval, or raises for blocked / outside windows."""
    window = time_rules.classify(day, t)
    if window.kind in (time_rules.BLOCKED, time_rules.OUTSIDE):
        raise ValidationError(window.reason)
    return window.kind == time_rules.REQUIRES_APPROVAL


def create_booking(principal, dog_id, booking_date, scheduled_time, now=None) -> Booking:
    now = now or datetime.now()
    dog_id = parse_dog_id(dog_id)
    day = parse_date(booking_date)
    t = parse_time(scheduled_time)

    # 1. user
    user = db.session.get(User, principal.id)
    if not user:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise AuthorizationError("Your account is deactivated")

    # 2. dog
    dog = db.session.get(Dog, dog_id)
    if not dog:
        raise NotFoundError("Dog not found")
    if not dog.is_available:
        raise ValidationError("Dog is currently unavailable")

    # 3. experience tier
    if not can_user_access_dog(user.experience_level, dog.category):
        raise AuthorizationError("You don't have the required experience level for this dog")

    # 4 + 5. date bounds
    check_date_bounds(day, now.date())

    # 6. blocked date
    if is_date_blocked(day):
        raise ValidationError("This date is blocked")

    # 7. time window
    needs_approval = classify_time(day, t)

    # 8. optimistic pre-check
    if conflicts.check_double_booking(dog.id, day, t):
        log_event("BOOKING_FAIL_ALREADY_BOOKED", user_id=user.id, entity="dog", entity_id=dog.id,
                  metadata={"date": day, "time": t.strftime("%H:%M")})
        raise ConflictError(conflicts.SLOT_TAKEN_MESSAGE)

    # 9 + 10. insert; the unique index settles races
    booking = Booking(
        user_id=user.id,
        dog_id=dog.id,
        date=day,
        scheduled_time=t,
        status=STATUS_SCHEDULED,
        requires_approval=needs_approval,
        approval_status=APPROVAL_PENDING if needs_approval else APPROVAL_APPROVED,
    )
    db.session.add(booking)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if conflicts.is_unique_violation(exc):
            log_event("BOOKING_FAIL_ALREADY_BOOKED", user_id=principal.id, entity="dog", entity_id=dog_id,
                      metadata={"date": day, "time": t.strftime("%H:%M"), "race": True})
        conflicts.raise_for_integrity_error(exc)

    user.last_activity_at = datetime.utcnow()
    log_event(
        "BOOKING_CREATE",
        user_id=user.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"dog_id": dog.id, "approval_status": booking.approval_status},
    )

    notifications.send_booking_confirmation(
        notifications.mail_context(booking, user=user, dog=dog),
        pending=needs_approval,
    )
    return booking
