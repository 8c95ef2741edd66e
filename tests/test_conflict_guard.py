from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import update

from conftest import actor_for
from models import db
from models.booking import Booking
from models.slot import Slot
from services import booking_machine, conflict_guard
from services.errors import NotFound, SlotAlreadyBooked

START = datetime(2025, 1, 10, 10, 0)
BEFORE = datetime(2025, 1, 9, 12, 0)


def _pending(user, station, slot) -> Booking:
    return Booking(
        user_id=user.id,
        station_id=station.id,
        slot_id=slot.id,
        reservation_time=slot.start_time,
        status="Pending",
    )


def test_claim_marks_slot_and_persists_booking(station, make_slot, owner) -> None:
    slot = make_slot(station, START)
    booking = conflict_guard.claim(slot.id, _pending(owner, station, slot))

    assert booking.id is not None
    assert db.session.get(Slot, slot.id).is_booked is True


def test_second_claim_is_rejected(station, make_slot, owner, other_owner) -> None:
    slot = make_slot(station, START)
    conflict_guard.claim(slot.id, _pending(owner, station, slot))

    with pytest.raises(SlotAlreadyBooked):
        conflict_guard.claim(slot.id, _pending(other_owner, station, slot))

    assert Booking.query.filter_by(slot_id=slot.id).count() == 1


def test_claim_does_not_trust_a_stale_read(station, make_slot, owner, other_owner) -> None:
    slot = make_slot(station, START)
    assert slot.is_booked is False  # loaded into the identity map

    # the row gets booked behind the loaded object's back
    db.session.execute(
        update(Slot).where(Slot.id == slot.id).values(is_booked=True).execution_options(synchronize_session=False)
    )
    assert slot.is_booked is False

    with pytest.raises(SlotAlreadyBooked):
        conflict_guard.claim(slot.id, _pending(other_owner, station, slot))
    assert Booking.query.count() == 0


def test_failed_booking_insert_rolls_back_the_flag(station, make_slot) -> None:
    slot = make_slot(station, START)
    broken = Booking(station_id=station.id, slot_id=slot.id, reservation_time=START, status="Pending")  # no user

    with pytest.raises(Exception):
        conflict_guard.claim(slot.id, broken)

    assert db.session.get(Slot, slot.id).is_booked is False


def test_claim_unknown_slot(app) -> None:
    with pytest.raises(NotFound):
        conflict_guard.claim_slot(424242)
    db.session.rollback()


def test_release_clears_flag_once(station, make_slot) -> None:
    slot = make_slot(station, START, booked=True)
    assert conflict_guard.release(slot.id) is True
    db.session.commit()
    assert conflict_guard.release(slot.id) is False
    assert db.session.get(Slot, slot.id).is_booked is False


def test_at_most_one_active_booking_per_slot(station, make_slot, make_user) -> None:
    slot = make_slot(station, START)
    users = [make_user(f"driver{i}") for i in range(5)]

    winners, losers = [], 0
    for user in users:
        try:
            winners.append(booking_machine.create_booking(actor_for(user), station.id, slot.id, now=BEFORE))
        except SlotAlreadyBooked:
            losers += 1

    assert len(winners) == 1
    assert losers == 4
    active = Booking.query.filter(Booking.slot_id == slot.id, Booking.status != "Canceled").count()
    assert active == 1
