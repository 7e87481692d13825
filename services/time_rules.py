"""
Time-window rules: which times of day can be booked.

Each day type (weekday / weekend) has a set of named, non-overlapping
windows. A requested time is either inside a blocked window, inside a
bookable window, or outside every window. Bookable windows before the
approval cutoff need an admin to approve the booking when the
``morning_walk_requires_approval`` setting is on.
"""
from collections import namedtuple
from datetime import date, datetime, time, timedelta

from sqlalchemy.exc import IntegrityError

from models import db
from models.booking_time_rule import BookingTimeRule, DAY_TYPES, DAY_TYPE_WEEKDAY, DAY_TYPE_WEEKEND
from models.custom_holiday import CustomHoliday
from services import settings
from services.errors import ConflictError, NotFoundError, ValidationError

BLOCKED = "blocked"
OUTSIDE = "outside"
REQUIRES_APPROVAL = "requires_approval"
FREELY_BOOKABLE = "freely_bookable"

OUTSIDE_HOURS_REASON = "Requested time is outside allowed hours"

TimeWindow = namedtuple("TimeWindow", ["kind", "reason", "rule"])


def is_holiday(day: date) -> bool:
    return CustomHoliday.query.filter_by(date=day, is_active=True).first() is not None


def day_type_for(day: date) -> str:
    # Saturday/Sunday and active holidays use weekend hours
    if day.weekday() >= 5 or is_holiday(day):
        return DAY_TYPE_WEEKEND
    return DAY_TYPE_WEEKDAY


def rules_for_day_type(day_type: str):
    return (
        BookingTimeRule.query
        .filter_by(day_type=day_type)
        .order_by(BookingTimeRule.start_time.asc())
        .all()
    )


def rules_for_date(day: date):
    return rules_for_day_type(day_type_for(day))


def requires_approval(t: time) -> bool:
    if not settings.get_bool_setting(settings.MORNING_WALK_REQUIRES_APPROVAL, True):
        return False
    cutoff = settings.get_time_setting(settings.APPROVAL_CUTOFF_TIME, time(12, 0))
    return t < cutoff


def classify(day: date, t: time) -> TimeWindow:
    """Classify a requested (date, time) against that day's rules."""
    match = None
    for rule in rules_for_date(day):
        if rule.contains(t):
            match = rule
            break

    if match is None:
        return TimeWindow(OUTSIDE, OUTSIDE_HOURS_REASON, None)

    if match.is_blocked:
        return TimeWindow(BLOCKED, f"Requested time falls in blocked window '{match.rule_name}'", match)

    if requires_approval(t):
        return TimeWindow(REQUIRES_APPROVAL, None, match)
    return TimeWindow(FREELY_BOOKABLE, None, match)


def available_slots(day: date):
    """Start times (HH:MM) inside every bookable window, stepped by the configured granularity."""
    step = settings.get_int_setting(settings.BOOKING_TIME_GRANULARITY, 15) or 15
    out = []
    for rule in rules_for_date(day):
        if rule.is_blocked:
            continue
        cursor = datetime.combine(day, rule.start_time)
        end = datetime.combine(day, rule.end_time)
        while cursor < end:
            out.append({
                "time": cursor.strftime("%H:%M"),
                "rule_name": rule.rule_name,
                "requires_approval": requires_approval(cursor.time()),
            })
            cursor += timedelta(minutes=step)
    return out


# ---------- rule authoring ----------

def _parse_hhmm(value, field):
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be in HH:MM format")


def _parse_flag(value, field):
    # JSON booleans, or the same tokens boolean settings accept
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        token = value.strip().lower()
        if token in settings.TRUE_TOKENS:
            return True
        if token in settings.FALSE_TOKENS:
            return False
    raise ValidationError(f"{field} must be true or false")


def _check_window(day_type, start, end, exclude_id=None):
    if day_type not in DAY_TYPES:
        raise ValidationError("day_type must be 'weekday' or 'weekend'")
    if end <= start:
        raise ValidationError("end_time must be after start_time")

    for other in rules_for_day_type(day_type):
        if other.id == exclude_id:
            continue
        if start < other.end_time and other.start_time < end:
            raise ValidationError(f"Window overlaps existing rule '{other.rule_name}'")


def create_rule(day_type, rule_name, start_time, end_time, is_blocked=False) -> BookingTimeRule:
    name = (rule_name or "").strip()
    if not name:
        raise ValidationError("rule_name required")
    start = _parse_hhmm(start_time, "start_time")
    end = _parse_hhmm(end_time, "end_time")
    _check_window(day_type, start, end)

    rule = BookingTimeRule(
        day_type=day_type,
        rule_name=name,
        start_time=start,
        end_time=end,
        is_blocked=_parse_flag(is_blocked, "is_blocked"),
    )
    db.session.add(rule)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A rule with that name already exists for this day type")
    return rule


def update_rule(rule_id: int, data: dict) -> BookingTimeRule:
    rule = db.session.get(BookingTimeRule, rule_id)
    if not rule:
        raise NotFoundError("Time rule not found")

    day_type = data.get("day_type", rule.day_type)
    start = _parse_hhmm(data["start_time"], "start_time") if "start_time" in data else rule.start_time
    end = _parse_hhmm(data["end_time"], "end_time") if "end_time" in data else rule.end_time
    _check_window(day_type, start, end, exclude_id=rule.id)
    blocked = _parse_flag(data.get("is_blocked"), "is_blocked") if "is_blocked" in data else rule.is_blocked

    if "rule_name" in data:
        name = (data.get("rule_name") or "").strip()
        if not name:
            raise ValidationError("rule_name required")
        rule.rule_name = name
    rule.is_blocked = blocked
    rule.day_type = day_type
    rule.start_time = start
    rule.end_time = end

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A rule with that name already exists for this day type")
    return rule


def delete_rule(rule_id: int) -> None:
    rule = db.session.get(BookingTimeRule, rule_id)
    if not rule:
        raise NotFoundError("Time rule not found")
    db.session.delete(rule)
    db.session.commit()
