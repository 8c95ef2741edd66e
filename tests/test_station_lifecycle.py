from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from conftest import actor_for
from models import db
from models.booking import Booking
from models.slot import Slot
from models.station import Station
from services import booking_machine, station_lifecycle
from services.errors import DependenciesExist, NotFound, StationInactive

START = datetime(2025, 3, 1, 8, 0)
BEFORE = datetime(2025, 2, 28, 12, 0)


def _seed(station, make_slot, users, slots=5):
    made = [make_slot(station, START + timedelta(hours=i)) for i in range(slots)]
    for user, slot in zip(users, made):
        booking_machine.create_booking(actor_for(user), station.id, slot.id, now=BEFORE)
    return made


def test_deactivate_is_idempotent(station) -> None:
    assert station_lifecycle.deactivate(station.id).is_active is False
    assert station_lifecycle.deactivate(station.id).is_active is False
    assert station_lifecycle.activate(station.id).is_active is True


def test_deactivated_station_keeps_bookings_but_refuses_new_ones(station, make_slot, owner, other_owner) -> None:
    slots = _seed(station, make_slot, [owner], slots=2)
    station_lifecycle.deactivate(station.id)

    assert Booking.query.filter_by(station_id=station.id).count() == 1
    with pytest.raises(StationInactive):
        booking_machine.create_booking(actor_for(other_owner), station.id, slots[1].id, now=BEFORE)


def test_dependency_preview_counts(station, make_slot, make_user) -> None:
    users = [make_user(f"driver{i}") for i in range(3)]
    _seed(station, make_slot, users)

    assert station_lifecycle.dependency_preview(station.id) == {"bookingsCount": 3, "slotsCount": 5}


def test_unconfirmed_delete_reports_dependencies(station, make_slot, make_user) -> None:
    users = [make_user(f"driver{i}") for i in range(3)]
    _seed(station, make_slot, users)

    with pytest.raises(DependenciesExist) as exc:
        station_lifecycle.delete(station.id)

    assert exc.value.dependencies == {"bookingsCount": 3, "slotsCount": 5}
    assert exc.value.payload()["dependencies"]["slotsCount"] == 5
    assert db.session.get(Station, station.id) is not None


def test_confirmed_delete_cascades(station, make_station, make_slot, make_user) -> None:
    users = [make_user(f"driver{i}") for i in range(3)]
    _seed(station, make_slot, users)
    neighbour = make_station("Kandy Hub")
    make_slot(neighbour, START)
    station_id = station.id

    deleted = station_lifecycle.delete(station_id, confirm=True)

    assert deleted == {"stations": 1, "slots": 5, "bookings": 3}
    assert db.session.get(Station, station_id) is None
    assert Slot.query.filter_by(station_id=station_id).count() == 0
    assert Booking.query.filter_by(station_id=station_id).count() == 0
    assert Slot.query.filter_by(station_id=neighbour.id).count() == 1


def test_station_without_dependents_deletes_without_confirmation(station) -> None:
    station_id = station.id
    assert station_lifecycle.delete(station_id) == {"stations": 1, "slots": 0, "bookings": 0}
    with pytest.raises(NotFound):
        station_lifecycle.get_station(station_id)


def test_failed_cascade_delete_leaves_everything_in_place(monkeypatch, station, make_slot, make_user) -> None:
    users = [make_user(f"driver{i}") for i in range(3)]
    _seed(station, make_slot, users)
    station_id = station.id

    def _fail(self):
        raise RuntimeError("database went away")

    with monkeypatch.context() as m:
        m.setattr(type(db.session()), "commit", _fail)
        with pytest.raises(RuntimeError):
            station_lifecycle.delete(station_id, confirm=True)

    assert db.session.get(Station, station_id) is not None
    assert Slot.query.filter_by(station_id=station_id).count() == 5
    assert Booking.query.filter_by(station_id=station_id).count() == 3
    assert station_lifecycle.dependency_preview(station_id) == {"bookingsCount": 3, "slotsCount": 5}
