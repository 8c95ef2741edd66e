"""
Typed failures raised by the reservation engine.

Every error carries the HTTP status it maps to and a stable ``code`` so the
error handler in ``app.py`` can render it without knowing the subclass.
"""


class ReservationError(Exception):
    status_code = 400
    code = "RESERVATION_ERROR"

    def __init__(self, message: str = None, **details):
        self.message = message or (self.__doc__ or self.code).strip()
        self.details = details
        super().__init__(self.message)

    def payload(self) -> dict:
        body = {"error": self.message, "code": self.code}
        body.update(self.details)
        return body


class ValidationError(ReservationError):
    """Invalid input"""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFound(ReservationError):
    """Not found"""
    status_code = 404
    code = "NOT_FOUND"


class Unauthorized(ReservationError):
    """Authentication required"""
    status_code = 401
    code = "UNAUTHORIZED"


class Forbidden(ReservationError):
    """Forbidden"""
    status_code = 403
    code = "FORBIDDEN"


class Conflict(ReservationError):
    """Conflict"""
    status_code = 409
    code = "CONFLICT"


class SlotAlreadyBooked(Conflict):
    """Slot already booked"""
    code = "SLOT_ALREADY_BOOKED"


class SlotUnavailable(Conflict):
    """Slot is no longer available"""
    code = "SLOT_UNAVAILABLE"


class StationInactive(Conflict):
    """Station is not active"""
    code = "STATION_INACTIVE"


class AlreadyInitialized(Conflict):
    """Slots already initialized for this station and date"""
    code = "ALREADY_INITIALIZED"


class HasActiveBookings(Conflict):
    """Slots have active bookings"""
    code = "HAS_ACTIVE_BOOKINGS"


class DependenciesExist(Conflict):
    """Station has dependent bookings or slots"""
    code = "DEPENDENCIES_EXIST"

    def __init__(self, dependencies: dict, message: str = None):
        super().__init__(message, dependencies=dependencies)
        self.dependencies = dependencies


class InvalidTransition(ReservationError):
    """Booking transition not allowed"""
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current, attempted, message: str = None):
        current = getattr(current, "value", current)
        attempted = getattr(attempted, "value", attempted)
        super().__init__(
            message or f"Cannot move booking from {current} to {attempted}",
            currentStatus=current,
            attemptedStatus=attempted,
        )
        self.current = current
        self.attempted = attempted


class WindowViolation(ReservationError):
    """Outside the allowed time window"""
    status_code = 409
    code = "WINDOW_VIOLATION"


class CancellationWindowClosed(WindowViolation):
    """Cancellation not allowed within 3 hours of the reservation"""
    code = "CANCELLATION_WINDOW_CLOSED"


class ReopenWindowClosed(WindowViolation):
    """Reservation time has already passed"""
    code = "REOPEN_WINDOW_CLOSED"
