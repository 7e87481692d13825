"""
Batch jobs over scheduled bookings, run from cron via the Flask CLI.

Both are safe to re-run: auto_complete only touches rows still scheduled,
and a reminder is only collected while ``reminder_sent_at`` is unset.
"""
from datetime import datetime, timedelta
import logging

from flask import current_app
from sqlalchemy import and_, or_

from models import db
from models.booking import Booking, STATUS_COMPLETED, STATUS_SCHEDULED
from services import notifications

logger = logging.getLogger(__name__)


def auto_complete(now=None) -> int:
    now = now or datetime.now()
    today = now.date()
    current = now.time().replace(second=0, microsecond=0)

    rows = (
        Booking.query
        .filter(
            Booking.status == STATUS_SCHEDULED,
            or_(
                Booking.date < today,
                and_(Booking.date == today, Booking.scheduled_time < current),
            ),
        )
        .update({
            Booking.status: STATUS_COMPLETED,
            Booking.completed_at: now,
            Booking.updated_at: now,
        }, synchronize_session=False)
    )
    db.session.commit()

    if rows:
        logger.info("Auto-completed %d booking(s)", rows)
    return rows


def reminder_window(now):
    start = now + timedelta(minutes=current_app.config.get("REMINDER_WINDOW_START_MINUTES", 60))
    end = now + timedelta(minutes=current_app.config.get("REMINDER_WINDOW_END_MINUTES", 120))
    return start, end


def collect_reminders(now=None):
    """Scheduled bookings starting in [now + 1h, now + 2h) that have no reminder yet."""
    now = now or datetime.now()
    start, end = reminder_window(now)

    candidates = (
        Booking.query
        .filter(
            Booking.status == STATUS_SCHEDULED,
            Booking.reminder_sent_at.is_(None),
            Booking.date >= start.date(),
            Booking.date <= end.date(),
        )
        .order_by(Booking.date.asc(), Booking.scheduled_time.asc())
        .all()
    )
    return [b for b in candidates if start <= b.starts_at < end]


def mark_reminder_sent(booking_id: int, now=None) -> bool:
    rows = (
        Booking.query
        .filter(Booking.id == booking_id, Booking.reminder_sent_at.is_(None))
        .update({Booking.reminder_sent_at: now or datetime.utcnow()}, synchronize_session=False)
    )
    db.session.commit()
    return rows == 1


def send_reminders(now=None) -> int:
    sent = 0
    for booking in collect_reminders(now):
        ctx = notifications.mail_context(booking)
        ok, error = notifications.send_booking_reminder(ctx)
        if not ok:
            logger.warning("Reminder for booking %s not sent: %s", booking.id, error)
            continue
        if mark_reminder_sent(booking.id):
            sent += 1
    if sent:
        logger.info("Sent %d reminder(s)", sent)
    return sent
