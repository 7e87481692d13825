from datetime import datetime
from models.db import db

class Dog(db.Model):
    __tablename__ = "dogs"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    breed = db.Column(db.String(120), nullable=True)

    # experience tier required to walk this dog: green, blue, orange
    category = db.Column(db.String(20), nullable=False, default="green")
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
