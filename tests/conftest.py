from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.slot import Slot
from models.station import Station
from models.user import Role, User
from security.password import hash_password
from utils.auth_context import AuthContext
from services.window_policy import current_time
from utils.roles import BACKOFFICE, EV_OWNER, STATION_OPERATOR

PASSWORD = "Str0ng-enough"


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    def _make(username: str, role: str = EV_OWNER, active: bool = True) -> User:
        user = User(username=username, password_hash=hash_password(PASSWORD), is_active=active)
        user.roles.append(Role.query.filter_by(name=role).one())
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def backoffice(make_user) -> User:
    return make_user("backoffice", BACKOFFICE)


@pytest.fixture()
def operator(make_user) -> User:
    return make_user("operator", STATION_OPERATOR)


@pytest.fixture()
def owner(make_user) -> User:
    return make_user("alice", EV_OWNER)


@pytest.fixture()
def other_owner(make_user) -> User:
    return make_user("carol", EV_OWNER)


def actor_for(user: User) -> AuthContext:
    return AuthContext.for_user(user)


@pytest.fixture()
def login(client):
    def _login(user: User) -> dict:
        resp = client.post("/auth/login", json={"username": user.username, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}

    return _login


@pytest.fixture()
def make_station(app):
    def _make(name: str = "Colombo Central", active: bool = True, **fields) -> Station:
        address = fields.pop("address", f"{name} road")
        station = Station(
            name=name,
            address=address,
            name_normalized=name.lower(),
            address_normalized=address.lower(),
            is_active=active,
            **fields,
        )
        db.session.add(station)
        db.session.commit()
        return station

    return _make


@pytest.fixture()
def station(make_station) -> Station:
    return make_station()


@pytest.fixture()
def make_slot(app):
    def _make(station: Station, start: datetime, minutes: int = 60, booked: bool = False) -> Slot:
        slot = Slot(
            station_id=station.id,
            slot_date=start.date(),
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            is_booked=booked,
        )
        db.session.add(slot)
        db.session.commit()
        return slot

    return _make


def future_hour(days: int = 2, hour: int = 10) -> datetime:
    day = current_time().date() + timedelta(days=days)
    return datetime(day.year, day.month, day.day, hour, 0)
