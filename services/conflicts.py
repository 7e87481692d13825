"""
Double-booking detection.

``check_double_booking`` is an optimistic pre-check only. Exclusivity of a
walk slot is guaranteed by the partial unique index on
(dog_id, date, scheduled_time) over scheduled rows; the IntegrityError the
index raises is translated to ConflictError by ``raise_for_integrity_error``.
"""
import logging

from models.booking import Booking, ACTIVE_SLOT_INDEX, STATUS_SCHEDULED
from services.errors import ConflictError, TransientStorageError

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "This dog is already booked for this time"

_UNIQUE_MARKERS = (
    "unique constraint",   # sqlite: UNIQUE constraint failed
    "duplicate key",       # postgres: duplicate key value violates unique constraint
    "duplicate entry",     # mysql
    ACTIVE_SLOT_INDEX,
)


def check_double_booking(dog_id: int, day, t, exclude_booking_id=None) -> bool:
    q = Booking.query.filter(
        Booking.dog_id == dog_id,
        Booking.date == day,
        Booking.scheduled_time == t,
        Booking.status == STATUS_SCHEDULED,
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.first() is not None


def is_unique_violation(exc) -> bool:
    text = str(getattr(exc, "orig", None) or exc).lower()
    return any(marker.lower() in text for marker in _UNIQUE_MARKERS)


def raise_for_integrity_error(exc, conflict_message=SLOT_TAKEN_MESSAGE):
    """Re-classify an IntegrityError; never lets driver text reach the caller."""
    if is_unique_violation(exc):
        raise ConflictError(conflict_message) from exc
    logger.error("Unexpected integrity error: %s", exc)
    raise TransientStorageError() from exc
