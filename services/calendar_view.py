import calendar
from datetime import date

from models.blocked_date import BlockedDate
from models.booking import Booking
from services.errors import ValidationError


def build_month(year: int, month: int, user_id: int) -> dict:
    """Every day of the month with the user's bookings and any block on it."""
    if not 1 <= month <= 12:
        raise ValidationError("Invalid month")
    if not 1 <= year <= 9999:
        raise ValidationError("Invalid year")

    days_in_month = calendar.monthrange(year, month)[1]
    first = date(year, month, 1)
    last = date(year, month, days_in_month)

    bookings = (
        Booking.query
        .filter(Booking.user_id == user_id, Booking.date >= first, Booking.date <= last)
        .order_by(Booking.date.asc(), Booking.scheduled_time.asc())
        .all()
    )
    by_date = {}
    for b in bookings:
        by_date.setdefault(b.date, []).append(b.to_dict())

    blocked = {
        bd.date: bd
        for bd in BlockedDate.query.filter(BlockedDate.date >= first, BlockedDate.date <= last).all()
    }

    days = []
    for n in range(1, days_in_month + 1):
        d = date(year, month, n)
        block = blocked.get(d)
        days.append({
            "date": d.isoformat(),
            "bookings": by_date.get(d, []),
            "is_blocked": block is not None,
            "blocked_reason": block.reason if block else None,
        })

    return {"year": year, "month": month, "days": days}
