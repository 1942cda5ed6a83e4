"""Booking error taxonomy shared by services, repositories and routers"""

from typing import Optional


class BookingError(Exception):
    """Base class for errors that abort a booking operation"""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "", *, reservation_id: Optional[str] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.reservation_id = reservation_id


class ValidationError(BookingError):
    """Missing or malformed input"""

    status_code = 400
    code = "validation_error"


class NotFound(BookingError):
    status_code = 404
    code = "not_found"


class InvalidState(BookingError):
    """Transition attempted on a reservation that is no longer pending"""

    status_code = 409
    code = "invalid_state"

    def __init__(self, message: str = "", *, reservation_id: Optional[str] = None, current_status: Optional[str] = None):
        super().__init__(message, reservation_id=reservation_id)
        self.current_status = current_status


class Conflict(BookingError):
    """Slot already taken by another confirmed reservation"""

    status_code = 409
    code = "conflict"


class StoreFailure(BookingError):
    """Data store read or write failed"""

    status_code = 500
    code = "store_failure"
