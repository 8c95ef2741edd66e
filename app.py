import logging
from zoneinfo import ZoneInfo

from flask import Flask, jsonify, current_app
from config import Config
from routes import (
    health_bp,
    auth_bp,
    users_bp,
    station_bp,
    slot_bp,
    booking_bp,
    dashboard_bp,
    audit_bp,
)

from models import db
from flask_migrate import Migrate
from sqlalchemy import inspect
from services.errors import ReservationError
from utils.seed import seed_roles
from utils.auth_context import load_current_user


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # unknown zone names fail here
    ZoneInfo(app.config.get("TIMEZONE", "UTC"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(station_bp)
    app.register_blueprint(slot_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed default roles at startup (safe & idempotent)
    with app.app_context():
        if app.config.get("TESTING"):
            db.create_all()
        # before the first `flask db upgrade` there is nothing to seed
        if inspect(db.engine).has_table("roles"):
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(ReservationError)
    def _reservation_error(err):
        if err.status_code >= 500:
            current_app.logger.error("reservation error: %s", err)
        else:
            current_app.logger.debug("reservation error %s: %s", err.code, err.message)
        return jsonify(err.payload()), err.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
import click
from models.user import User, Role
from services import slot_generator
from utils.roles import BACKOFFICE

def register_cli(app):
    @app.cli.command("make-backoffice")
    @click.argument("username")
    def make_backoffice(username):
        """Grant the Backoffice role to a user and activate the account (bootstrap)."""
        user = User.query.filter_by(username=username.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        role = Role.query.filter_by(name=BACKOFFICE).first()
        if not role:
            role = Role(name=BACKOFFICE)
            db.session.add(role)
            db.session.commit()

        if role not in user.roles:
            user.roles.append(role)
        user.is_active = True
        db.session.commit()

        click.echo(f"{user.username} promoted to {BACKOFFICE}")

    @app.cli.command("init-slots")
    @click.argument("station_id", type=int)
    @click.argument("date")
    def init_slots(station_id, date):
        """Generate the slots of DATE (YYYY-MM-DD) for a station."""
        try:
            slots = slot_generator.initialize(station_id, date)
        except ReservationError as err:
            raise click.ClickException(err.message)
        click.echo(f"Initialized {len(slots)} slots for station {station_id} on {date}")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
