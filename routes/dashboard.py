from datetime import timedelta

from flask import Blueprint, jsonify, g

from models.booking import Booking
from models.slot import Slot
from models.station import Station
from models.user import User
from security.rbac import has_role
from services.booking_status import BookingStatus
from services.window_policy import current_time
from utils.auth_context import login_required
from utils.roles import BACKOFFICE, EV_OWNER, STATION_OPERATOR

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")

ACTIVE_STATUSES = [s.value for s in BookingStatus if s.is_active and s is not BookingStatus.COMPLETED]


def _upcoming(q, now):
    return q.filter(Booking.reservation_time > now, Booking.status.in_(ACTIVE_STATUSES))


@dashboard_bp.get("/stats")
@login_required
def stats():
    now = current_time()

    if has_role(BACKOFFICE):
        return jsonify(
            role=BACKOFFICE,
            totalBookings=Booking.query.count(),
            upcomingBookingsCount=_upcoming(Booking.query, now).count(),
            pendingUserApprovals=User.query.filter(User.is_active.is_(False)).count(),
            totalStations=Station.query.count(),
            activeStations=Station.query.filter(Station.is_active.is_(True)).count(),
        ), 200

    if has_role(STATION_OPERATOR):
        today = now.date()
        todays_slots = (
            Slot.query
            .join(Station, Slot.station_id == Station.id)
            .filter(Slot.slot_date == today, Station.is_active.is_(True))
        )
        return jsonify(
            role=STATION_OPERATOR,
            upcomingBookingsCount=_upcoming(Booking.query, now).count(),
            availableSlotsToday=todays_slots.filter(Slot.is_booked.is_(False), Slot.start_time > now).count(),
            bookedSlotsToday=todays_slots.filter(Slot.is_booked.is_(True)).count(),
            pendingConfirmations=Booking.query.filter(
                Booking.status == BookingStatus.APPROVED.value,
                Booking.reservation_time >= now - timedelta(hours=1),
            ).count(),
        ), 200

    mine = Booking.query.filter(Booking.user_id == g.auth.user_id)
    return jsonify(
        role=EV_OWNER,
        totalBookings=mine.count(),
        upcomingBookingsCount=_upcoming(mine, now).count(),
        totalCompletedCharges=mine.filter(Booking.status == BookingStatus.COMPLETED.value).count(),
    ), 200
