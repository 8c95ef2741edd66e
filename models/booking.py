from datetime import datetime
from models.db import db

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    # cleared only when the slot record itself is removed
    slot_id = db.Column(db.Integer, db.ForeignKey("slots.id"), nullable=True, index=True)

    reservation_time = db.Column(db.DateTime, nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default="Pending")
    # status values: see services.booking_status.BookingStatus

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    canceled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)
