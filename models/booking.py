from datetime import datetime
from models.db import db

# status values
STATUS_SCHEDULED = "scheduled"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

# approval_status values
APPROVAL_APPROVED = "approved"
APPROVAL_PENDING = "pending"
APPROVAL_REJECTED = "rejected"

ACTIVE_SLOT_INDEX = "uq_bookings_active_slot"


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    dog_id = db.Column(db.Integer, db.ForeignKey("dogs.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False, index=True)
    scheduled_time = db.Column(db.Time, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=STATUS_SCHEDULED, index=True)

    # Decided once by the time-rule engine at creation
    requires_approval = db.Column(db.Boolean, nullable=False, default=False)
    approval_status = db.Column(db.String(20), nullable=False, default=APPROVAL_APPROVED, index=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)

    admin_cancellation_reason = db.Column(db.String(255), nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    user_notes = db.Column(db.Text, nullable=True)
    reminder_sent_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User", foreign_keys=[user_id], lazy="joined")
    dog = db.relationship("Dog", lazy="joined")

    __table_args__ = (
        # Only one scheduled booking per walk slot; cancelled/completed rows free it
        db.Index(
            ACTIVE_SLOT_INDEX,
            "dog_id", "date", "scheduled_time",
            unique=True,
            sqlite_where=db.text("status = 'scheduled'"),
            postgresql_where=db.text("status = 'scheduled'"),
        ),
    )

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.scheduled_time)

    def to_dict(self, with_details=False):
        out = {
            "id": self.id,
            "user_id": self.user_id,
            "dog_id": self.dog_id,
            "date": self.date.isoformat(),
            "scheduled_time": self.scheduled_time.strftime("%H:%M"),
            "status": self.status,
            "requires_approval": self.requires_approval,
            "approval_status": self.approval_status,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "rejection_reason": self.rejection_reason,
            "admin_cancellation_reason": self.admin_cancellation_reason,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "user_notes": self.user_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_details:
            out["user"] = {"id": self.user_id, "name": self.user.name if self.user else None}
            out["dog"] = {
                "id": self.dog_id,
                "name": self.dog.name if self.dog else None,
                "category": self.dog.category if self.dog else None,
            }
        return out
