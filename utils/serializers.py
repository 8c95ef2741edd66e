from datetime import datetime

from services.booking_status import BookingStatus
from services.window_policy import can_cancel, can_reopen, current_time, hours_until
from utils.roles import role_names, primary_role


def _iso(value):
    return value.isoformat() if value else None


def station_to_dict(s):
    return {
        "id": s.id,
        "name": s.name,
        "address": s.address,
        "geoLocation": (
            {"latitude": s.latitude, "longitude": s.longitude}
            if s.latitude is not None or s.longitude is not None else None
        ),
        "type": s.charger_type,
        "connectorTypes": list(s.connector_types or []),
        "numberOfConnectors": s.number_of_connectors,
        "active": s.is_active,
        "isPublic": s.is_public,
        "operatingHours": s.operating_hours,
        "phoneNumber": s.phone_number,
        "email": s.email,
        "amenities": list(s.amenities or []),
        "createdAt": _iso(s.created_at),
        "updatedAt": _iso(s.updated_at),
    }


def slot_to_dict(s):
    return {
        "id": s.id,
        "stationId": s.station_id,
        "date": s.slot_date.isoformat(),
        "startTime": s.start_time.isoformat(),
        "endTime": s.end_time.isoformat(),
        "isBooked": s.is_booked,
    }


def booking_to_dict(b, now: datetime = None):
    now = now or current_time()
    status = BookingStatus(b.status)
    out = {
        "id": b.id,
        "userId": b.user_id,
        "stationId": b.station_id,
        "slotId": b.slot_id,
        "reservationDateTime": _iso(b.reservation_time),
        "status": status.value,
        "createdAt": _iso(b.created_at),
        "updatedAt": _iso(b.updated_at),
        "canceledAt": _iso(b.canceled_at),
        "cancelReason": b.cancel_reason,
        "hoursUntilReservation": round(hours_until(b.reservation_time, now), 2),
        "canCancel": status in (BookingStatus.PENDING, BookingStatus.APPROVED)
        and can_cancel(b.reservation_time, now),
        "canReopen": status is BookingStatus.CANCELED and can_reopen(b.reservation_time, now),
    }
    # read-only view for clients of the older flag-based API
    out.update(status.as_flags())
    return out


def user_to_dict(u):
    return {
        "id": u.id,
        "username": u.username,
        "nic": u.nic,
        "fullName": u.full_name,
        "phoneNumber": u.phone_number,
        "role": primary_role(u.roles),
        "roles": role_names(u.roles),
        "active": u.is_active,
        "createdAt": _iso(u.created_at),
    }
