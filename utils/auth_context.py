from collections import namedtuple
from functools import wraps

from flask import g, jsonify
from security.session import get_session_from_request
from models import db
from models.user import User

# Explicit caller identity handed to every service entry point
Principal = namedtuple("Principal", ["id", "is_admin"])


def load_current_user():
    sess = get_session_from_request()
    if not sess:
        g.user = None
        g.session = None
        return
    g.session = sess
    g.user = db.session.get(User, sess.user_id)


def current_principal() -> Principal:
    user = g.user
    return Principal(id=user.id, is_admin=user.is_admin)


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
