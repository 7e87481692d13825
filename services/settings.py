import logging
from datetime import datetime, time

from models import db
from models.system_setting import SystemSetting
from services.errors import ValidationError

logger = logging.getLogger(__name__)

BOOKING_ADVANCE_DAYS = "booking_advance_days"
CANCELLATION_NOTICE_HOURS = "cancellation_notice_hours"
MORNING_WALK_REQUIRES_APPROVAL = "morning_walk_requires_approval"
APPROVAL_CUTOFF_TIME = "approval_cutoff_time"
BOOKING_TIME_GRANULARITY = "booking_time_granularity"

DEFAULTS = {
    BOOKING_ADVANCE_DAYS: "14",
    CANCELLATION_NOTICE_HOURS: "12",
    MORNING_WALK_REQUIRES_APPROVAL: "true",
    APPROVAL_CUTOFF_TIME: "12:00",
    BOOKING_TIME_GRANULARITY: "15",
}

# validators used when an admin edits a setting
_INT_KEYS = {BOOKING_ADVANCE_DAYS, CANCELLATION_NOTICE_HOURS, BOOKING_TIME_GRANULARITY}
_BOOL_KEYS = {MORNING_WALK_REQUIRES_APPROVAL}
_TIME_KEYS = {APPROVAL_CUTOFF_TIME}

TRUE_TOKENS = ("true", "1", "yes", "on")
FALSE_TOKENS = ("false", "0", "no", "off")


def get_setting(key: str):
    row = db.session.get(SystemSetting, key)
    return row.value if row else None


def _fallback(key: str, raw, default):
    logger.warning("Setting %s has unusable value %r, falling back to %r", key, raw, default)
    return default


def get_int_setting(key: str, default: int) -> int:
    raw = get_setting(key)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except (TypeError, ValueError):
        return _fallback(key, raw, default)
    if value < 0:
        return _fallback(key, raw, default)
    return value


def get_bool_setting(key: str, default: bool) -> bool:
    raw = get_setting(key)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in TRUE_TOKENS:
        return True
    if val in FALSE_TOKENS:
        return False
    return _fallback(key, raw, default)


def get_time_setting(key: str, default: time) -> time:
    raw = get_setting(key)
    if raw is None:
        return default
    try:
        return datetime.strptime(raw.strip(), "%H:%M").time()
    except (TypeError, ValueError):
        return _fallback(key, raw, default)


def booking_advance_days() -> int:
    return get_int_setting(BOOKING_ADVANCE_DAYS, 14)


def cancellation_notice_hours() -> int:
    return get_int_setting(CANCELLATION_NOTICE_HOURS, 12)


def list_settings():
    rows = {s.key: s for s in SystemSetting.query.order_by(SystemSetting.key.asc()).all()}
    out = []
    for key in sorted(set(rows) | set(DEFAULTS)):
        row = rows.get(key)
        out.append({
            "key": key,
            "value": row.value if row else DEFAULTS.get(key),
            "updated_at": row.updated_at.isoformat() if row and row.updated_at else None,
        })
    return out


def validate_setting_value(key: str, value: str):
    """Returns an error message, or None when the value is acceptable."""
    if key not in DEFAULTS:
        return f"Unknown setting: {key}"
    if key in _INT_KEYS:
        try:
            n = int(value)
        except (TypeError, ValueError):
            return f"{key} must be an integer"
        if n < 0 or (key == BOOKING_TIME_GRANULARITY and n == 0):
            return f"{key} must be positive"
    elif key in _BOOL_KEYS:
        if value.lower() not in ("true", "false"):
            return f"{key} must be true or false"
    elif key in _TIME_KEYS:
        try:
            datetime.strptime(value, "%H:%M")
        except ValueError:
            return f"{key} must be in HH:MM format"
    return None


def update_setting(key: str, value: str) -> SystemSetting:
    value = (value or "").strip()
    error = validate_setting_value(key, value)
    if error:
        raise ValidationError(error)

    row = db.session.get(SystemSetting, key)
    if not row:
        row = SystemSetting(key=key, value=value)
        db.session.add(row)
    else:
        row.value = value
    db.session.commit()
    return row
