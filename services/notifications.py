"""
Outbound booking notifications.

Mails are handed to a per-app ThreadPoolExecutor so a slow or failing SMTP
server never delays or fails the request that triggered them. Each job runs
inside its own app context and only ever logs its failures.
"""
from concurrent.futures import ThreadPoolExecutor
from collections import namedtuple
import logging

from flask import current_app

from utils.emailer import send_email

logger = logging.getLogger(__name__)

EXTENSION_KEY = "notification_executor"

# Plain values copied out of the ORM rows before the request ends
MailContext = namedtuple("MailContext", ["to", "name", "dog_name", "date", "time"])


def init_app(app):
    workers = app.config.get("NOTIFICATION_WORKERS", 4)
    app.extensions[EXTENSION_KEY] = ThreadPoolExecutor(
        max_workers=workers,
        thread_name_prefix="notify",
    )


def _run(app, fn, args, kwargs):
    with app.app_context():
        try:
            sent, error = fn(*args, **kwargs)
        except Exception:
            logger.exception("Notification job %s crashed", getattr(fn, "__name__", fn))
            return False
        if not sent:
            logger.warning("Notification not delivered: %s", error)
        return sent


def dispatch(fn, *args, **kwargs):
    """Fire-and-forget ``fn(*args, **kwargs)``; returns the Future or None when run inline."""
    app = current_app._get_current_object()
    if app.config.get("NOTIFICATIONS_INLINE", False):
        _run(app, fn, args, kwargs)
        return None

    executor = app.extensions.get(EXTENSION_KEY)
    if executor is None:
        init_app(app)
        executor = app.extensions[EXTENSION_KEY]
    try:
        return executor.submit(_run, app, fn, args, kwargs)
    except RuntimeError:
        # executor already shut down (interpreter exit)
        logger.warning("Notification executor unavailable, dropping %s", getattr(fn, "__name__", fn))
        return None


def mail_context(booking, user=None, dog=None) -> MailContext:
    user = user or booking.user
    dog = dog or booking.dog
    return MailContext(
        to=user.email if user else None,
        name=user.name if user else "",
        dog_name=dog.name if dog else "your dog",
        date=booking.date.isoformat(),
        time=booking.scheduled_time.strftime("%H:%M"),
    )


def _deliver(ctx: MailContext, subject: str, body: str):
    if not ctx.to:
        logger.info("Skipping %r mail: recipient has no email address", subject)
        return None
    return dispatch(send_email, ctx.to, subject, body)


def send_booking_confirmation(ctx: MailContext, pending: bool = False):
    if pending:
        subject = "Booking received - awaiting approval"
        status_line = "Your request needs approval by an administrator. We will let you know."
    else:
        subject = "Booking confirmed"
        status_line = "Your walk is confirmed."
    body = (
        f"Hello {ctx.name},\n\n"
        f"you booked a walk with {ctx.dog_name} on {ctx.date} at {ctx.time}.\n"
        f"{status_line}\n"
    )
    return _deliver(ctx, subject, body)


def send_booking_cancellation(ctx: MailContext):
    body = (
        f"Hello {ctx.name},\n\n"
        f"your walk with {ctx.dog_name} on {ctx.date} at {ctx.time} has been cancelled.\n"
    )
    return _deliver(ctx, "Booking cancelled", body)


def send_admin_cancellation(ctx: MailContext, reason: str):
    body = (
        f"Hello {ctx.name},\n\n"
        f"an administrator cancelled your walk with {ctx.dog_name} on {ctx.date} at {ctx.time}.\n"
        f"Reason: {reason}\n"
    )
    return _deliver(ctx, "Booking cancelled by administration", body)


def send_booking_moved(ctx: MailContext, new_date: str, new_time: str, reason: str):
    body = (
        f"Hello {ctx.name},\n\n"
        f"your walk with {ctx.dog_name} has been moved.\n"
        f"Before: {ctx.date} at {ctx.time}\n"
        f"Now:    {new_date} at {new_time}\n"
        f"Reason: {reason}\n"
    )
    return _deliver(ctx, "Booking moved", body)


def send_booking_approved(ctx: MailContext):
    body = (
        f"Hello {ctx.name},\n\n"
        f"your walk with {ctx.dog_name} on {ctx.date} at {ctx.time} has been approved.\n"
    )
    return _deliver(ctx, "Booking approved", body)


def send_booking_rejected(ctx: MailContext, reason: str):
    body = (
        f"Hello {ctx.name},\n\n"
        f"your walk request with {ctx.dog_name} on {ctx.date} at {ctx.time} was not approved.\n"
        f"Reason: {reason}\n"
    )
    return _deliver(ctx, "Booking not approved", body)


def send_booking_reminder(ctx: MailContext):
    """Synchronous: the sweeper marks the reminder only after a successful send."""
    if not ctx.to:
        return False, "No recipient"
    body = (
        f"Hello {ctx.name},\n\n"
        f"reminder: your walk with {ctx.dog_name} starts today at {ctx.time}.\n"
    )
    return send_email(ctx.to, "Walk reminder", body)
