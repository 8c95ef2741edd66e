"""
Reservation conflict guard.

The only code that flips ``Slot.is_booked``. The flag is changed with a
conditional UPDATE so the check and the set happen in one statement; the
row count tells the caller whether it won. A read-then-write on the ORM
object would let two requests both see ``is_booked=False``.
"""
from sqlalchemy import update

from models import db
from models.slot import Slot
from services.errors import NotFound, SlotAlreadyBooked


def claim_slot(slot_id: int) -> None:
    """Mark the slot booked inside the current transaction or raise SlotAlreadyBooked.

    Does not commit: the caller creates the owning booking in the same
    transaction and commits (or rolls back) both together.
    """
    result = db.session.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.is_booked.is_(False))
        .values(is_booked=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        _refresh(slot_id)
        return

    if db.session.get(Slot, slot_id) is None:
        raise NotFound("Slot not found")
    raise SlotAlreadyBooked(slotId=slot_id)


def claim(slot_id: int, booking):
    """Claim the slot and persist ``booking`` as its owner in one commit."""
    try:
        claim_slot(slot_id)
        db.session.add(booking)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return booking


def release(slot_id: int) -> bool:
    """Clear the booked flag. Returns False if the slot was not booked."""
    result = db.session.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.is_booked.is_(True))
        .values(is_booked=False)
        .execution_options(synchronize_session=False)
    )
    _refresh(slot_id)
    return result.rowcount == 1


def _refresh(slot_id: int) -> None:
    # keep an already-loaded Slot in the identity map in step with the row
    slot = db.session.identity_map.get(db.session.identity_key(Slot, slot_id))
    if slot is not None:
        db.session.refresh(slot)
