from datetime import datetime
from models.db import db

class Station(db.Model):
    __tablename__ = "stations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    name_normalized = db.Column(db.String(120), nullable=False)
    address_normalized = db.Column(db.String(255), nullable=False)

    # optional, map pin
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    charger_type = db.Column(db.String(10), nullable=False, default="AC")  # AC / DC
    connector_types = db.Column(db.JSON, nullable=False, default=list)
    number_of_connectors = db.Column(db.Integer, nullable=False, default=1)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_public = db.Column(db.Boolean, default=True, nullable=False)

    operating_hours = db.Column(db.String(60), nullable=True)  # e.g. "06:00-22:00"
    phone_number = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    amenities = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("name_normalized", "address_normalized", name="uq_station_name_address"),
    )
