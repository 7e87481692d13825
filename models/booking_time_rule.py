from datetime import datetime
from models.db import db

DAY_TYPE_WEEKDAY = "weekday"
DAY_TYPE_WEEKEND = "weekend"
DAY_TYPES = (DAY_TYPE_WEEKDAY, DAY_TYPE_WEEKEND)


class BookingTimeRule(db.Model):
    __tablename__ = "booking_time_rules"

    id = db.Column(db.Integer, primary_key=True)
    day_type = db.Column(db.String(20), nullable=False, index=True)
    rule_name = db.Column(db.String(100), nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    is_blocked = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("day_type", "rule_name", name="uq_time_rule_day_name"),
    )

    def contains(self, t) -> bool:
        # half-open window [start, end)
        return self.start_time <= t < self.end_time

    def to_dict(self):
        return {
            "id": self.id,
            "day_type": self.day_type,
            "rule_name": self.rule_name,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "is_blocked": self.is_blocked,
        }
