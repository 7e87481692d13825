import logging
from datetime import time

from sqlalchemy.exc import OperationalError, ProgrammingError

from models import db
from models.user import Role
from models.booking_time_rule import BookingTimeRule
from models.system_setting import SystemSetting
from services.settings import DEFAULTS

logger = logging.getLogger(__name__)

DEFAULT_ROLES = ["WALKER", "ADMIN", "SUPER_ADMIN"]

# (day_type, rule_name, start, end, is_blocked)
DEFAULT_TIME_RULES = [
    ("weekday", "Morning walk", time(9, 0), time(12, 0), False),
    ("weekday", "Lunch break", time(13, 0), time(14, 0), True),
    ("weekday", "Afternoon walk", time(14, 0), time(16, 30), False),
    ("weekday", "Feeding time", time(16, 30), time(18, 0), True),
    ("weekday", "Evening walk", time(18, 0), time(19, 30), False),
    ("weekend", "Morning walk", time(9, 0), time(12, 0), False),
    ("weekend", "Feeding time", time(12, 0), time(13, 0), True),
    ("weekend", "Lunch break", time(13, 0), time(14, 0), True),
    ("weekend", "Afternoon walk", time(14, 0), time(17, 0), False),
]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_time_rules():
    # only on an empty table so admin edits survive restarts
    if BookingTimeRule.query.first():
        return
    for day_type, name, start, end, blocked in DEFAULT_TIME_RULES:
        db.session.add(BookingTimeRule(
            day_type=day_type, rule_name=name, start_time=start, end_time=end, is_blocked=blocked,
        ))
    db.session.commit()

def seed_settings():
    existing = {s.key for s in SystemSetting.query.all()}
    for key, value in DEFAULTS.items():
        if key not in existing:
            db.session.add(SystemSetting(key=key, value=value))
    db.session.commit()

def seed_defaults():
    try:
        seed_roles()
        seed_time_rules()
        seed_settings()
    except (OperationalError, ProgrammingError):
        # tables not created yet, e.g. while running `flask db upgrade`
        db.session.rollback()
        logger.warning("Skipping seed: database schema missing, run `flask db upgrade`")
