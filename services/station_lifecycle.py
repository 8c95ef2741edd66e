"""
Station activation and dependency-aware deletion.

Deletion is two-phase: an unconfirmed delete only reports how many bookings
and slots reference the station; ``confirm=True`` removes station, slots and
bookings in a single transaction.
"""
from models import db
from models.booking import Booking
from models.slot import Slot
from models.station import Station
from services.errors import DependenciesExist, NotFound


def get_station(station_id: int) -> Station:
    station = db.session.get(Station, station_id)
    if station is None:
        raise NotFound("Station not found")
    return station


def _set_active(station_id: int, active: bool) -> Station:
    station = get_station(station_id)
    if station.is_active == active:
        return station
    station.is_active = active
    db.session.commit()
    return station


def activate(station_id: int) -> Station:
    return _set_active(station_id, True)


def deactivate(station_id: int) -> Station:
    # existing bookings stay valid; new ones are refused by the booking machine
    return _set_active(station_id, False)


def dependency_preview(station_id: int) -> dict:
    get_station(station_id)
    return {
        "bookingsCount": Booking.query.filter(Booking.station_id == station_id).count(),
        "slotsCount": Slot.query.filter(Slot.station_id == station_id).count(),
    }


def delete(station_id: int, confirm: bool = False) -> dict:
    """Delete a station. Returns the removed counts; raises DependenciesExist when unconfirmed."""
    preview = dependency_preview(station_id)
    has_dependents = preview["bookingsCount"] > 0 or preview["slotsCount"] > 0
    if has_dependents and not confirm:
        raise DependenciesExist(preview)

    try:
        bookings = (
            Booking.query
            .filter(Booking.station_id == station_id)
            .delete(synchronize_session=False)
        )
        slots = (
            Slot.query
            .filter(Slot.station_id == station_id)
            .delete(synchronize_session=False)
        )
        stations = (
            Station.query
            .filter(Station.id == station_id)
            .delete(synchronize_session=False)
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()

    return {"stations": stations, "slots": slots, "bookings": bookings}
