import logging

from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from routes import health_bp, booking_bp, admin_bp, blocked_date_bp, audit_bp

from models import db
from services import notifications
from services.errors import BookingError
from utils.seed import seed_defaults
from utils.auth_context import load_current_user

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(blocked_date_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    notifications.init_app(app)

    # Seed roles, time rules and settings at startup (safe & idempotent)
    with app.app_context():
        if app.config.get("TESTING"):
            db.create_all()
        seed_defaults()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        db.session.rollback()
        return jsonify(error=exc.message), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def _storage_error(exc):
        db.session.rollback()
        logger.exception("Unhandled storage error")
        # never leak driver text to the client
        return jsonify(error="Internal storage error"), 500

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
import click
from models.user import User, Role
from security.session import create_session
from services import sweeper

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("issue-session")
    @click.argument("email")
    def issue_session(email):
        """Print a session token for a user (local development)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return
        click.echo(create_session(user.id))

    @app.cli.command("auto-complete")
    def auto_complete():
        """Mark elapsed scheduled bookings as completed (run from cron)."""
        count = sweeper.auto_complete()
        click.echo(f"Auto-completed {count} booking(s)")

    @app.cli.command("send-reminders")
    def send_reminders():
        """Mail reminders for walks starting in the next 1-2 hours (run from cron)."""
        count = sweeper.send_reminders()
        click.echo(f"Sent {count} reminder(s)")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002, threaded=True)
