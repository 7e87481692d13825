from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .dog import Dog
from .booking import Booking
from .blocked_date import BlockedDate
from .booking_time_rule import BookingTimeRule
from .custom_holiday import CustomHoliday
from .system_setting import SystemSetting
