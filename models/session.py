from datetime import datetime, timedelta
from models.db import db

class Session(db.Model):
    """Server-side login session for a walker or admin; the cookie carries the raw token."""
    __tablename__ = "sessions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # sha256 of the cookie value
    token_hash = db.Column(db.String(128), unique=True, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    revoked = db.Column(db.Boolean, default=False, nullable=False)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_idle(self, now: datetime, idle_seconds: int) -> bool:
        last_seen = self.last_seen_at or self.created_at
        return last_seen + timedelta(seconds=idle_seconds) <= now

    def seconds_since_seen(self, now: datetime) -> float:
        return (now - (self.last_seen_at or self.created_at)).total_seconds()
