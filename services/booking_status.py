import enum


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELED = "Canceled"

    @property
    def is_active(self) -> bool:
        """Active bookings hold their slot."""
        return self is not BookingStatus.CANCELED

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for status in cls:
                if status.value.lower() == wanted or status.name.lower() == wanted:
                    return status
            if wanted == "cancelled":
                return cls.CANCELED
        return None

    @classmethod
    def from_flags(cls, approved=False, confirmed=False, completed=False, canceled=False):
        """Collapse the legacy four-flag representation: canceled > completed > confirmed > approved."""
        if canceled:
            return cls.CANCELED
        if completed:
            return cls.COMPLETED
        if confirmed:
            return cls.CONFIRMED
        if approved:
            return cls.APPROVED
        return cls.PENDING

    def as_flags(self) -> dict:
        reached = _PROGRESS.index(self) if self in _PROGRESS else -1
        return {
            "approved": reached >= 1,
            "confirmed": reached >= 2,
            "completed": reached >= 3,
            "canceled": self is BookingStatus.CANCELED,
        }


_PROGRESS = [
    BookingStatus.PENDING,
    BookingStatus.APPROVED,
    BookingStatus.CONFIRMED,
    BookingStatus.COMPLETED,
]
