from functools import wraps
from flask import g, jsonify

ADMIN_ROLES = ("ADMIN", "SUPER_ADMIN")


def _refuse(user):
    if user is None:
        return jsonify(error="Authentication required"), 401
    # a deactivated admin keeps the role row but loses access
    if not user.is_active:
        return jsonify(error="Your account is deactivated"), 403
    return None


def require_roles(*role_names: str):
    """
    Usage: @require_roles("SUPER_ADMIN")

    SUPER_ADMIN passes every role check.
    """
    wanted = set(role_names)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            refused = _refuse(user)
            if refused:
                return refused

            held = {r.name for r in user.roles}
            if "SUPER_ADMIN" not in held and not held & wanted:
                return jsonify(error="Forbidden"), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def require_admin(fn):
    """Booking administration: approvals, moves, blocked dates, rules, settings, audit trail."""
    return require_roles(*ADMIN_ROLES)(fn)
