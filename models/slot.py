from datetime import datetime
from models.db import db

class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    slot_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    # only ever flipped through services.conflict_guard
    is_booked = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # One slot per station and start time
        db.UniqueConstraint("station_id", "start_time", name="uq_station_slot_start"),
    )
