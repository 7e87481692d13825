import itertools
from datetime import date, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.booking import Booking
from models.dog import Dog
from models.user import User, Role
from security.session import create_session
from services import notifications
from utils.auth_context import Principal

_seq = itertools.count(1)


def next_weekday(start=None, min_offset=1):
    """First Monday-Friday at least ``min_offset`` days after ``start``."""
    day = (start or date.today()) + timedelta(days=min_offset)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def next_weekend_day(start=None, min_offset=1):
    day = (start or date.today()) + timedelta(days=min_offset)
    while day.weekday() < 5:
        day += timedelta(days=1)
    return day


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "walkbook-test.db")

    app = create_app(_Config)
    yield app

    app.extensions[notifications.EXTENSION_KEY].shutdown(wait=True)
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app, ctx):
    return app.test_client()


@pytest.fixture
def sent_mail(monkeypatch):
    """Capture outgoing mail instead of talking to SMTP."""
    outbox = []

    def fake_send(to_email, subject, body):
        outbox.append({"to": to_email, "subject": subject, "body": body})
        return True, None

    monkeypatch.setattr(notifications, "send_email", fake_send)
    return outbox


@pytest.fixture
def make_user(ctx):
    def _make(name=None, experience_level="green", is_active=True, admin=False, email=None):
        n = next(_seq)
        name = name or f"Walker {n}"
        user = User(
            name=name,
            email=email or f"walker{n}@example.com",
            experience_level=experience_level,
            is_active=is_active,
        )
        if admin:
            user.roles.append(Role.query.filter_by(name="ADMIN").one())
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_dog(ctx):
    def _make(name=None, category="green", is_available=True):
        dog = Dog(name=name or f"Dog {next(_seq)}", category=category, is_available=is_available)
        db.session.add(dog)
        db.session.commit()
        return dog
    return _make


@pytest.fixture
def make_booking(ctx):
    """Insert a booking row directly, bypassing admission."""
    def _make(user, dog, day, scheduled_time, **fields):
        booking = Booking(user_id=user.id, dog_id=dog.id, date=day, scheduled_time=scheduled_time, **fields)
        db.session.add(booking)
        db.session.commit()
        return booking
    return _make


@pytest.fixture
def login(app):
    def _login(client, user):
        token = create_session(user.id)
        client.set_cookie(app.config["AUTH_COOKIE_NAME"], token)
        return client
    return _login


@pytest.fixture
def walker(make_user):
    return make_user(name="Uma", experience_level="green")


@pytest.fixture
def admin(make_user):
    return make_user(name="Ada", experience_level="orange", admin=True)


@pytest.fixture
def dog(make_dog):
    return make_dog(name="Bello", category="green")


def principal_for(user):
    return Principal(id=user.id, is_admin=user.is_admin)
