"""Booking error taxonomy.

Three families reach the HTTP layer:

* ``ValidationError``: missing or malformed input. Reported with a specific reason,
  never retried.
* ``PolicyRejection``: the request is well formed but a booking rule refuses it
  (cutoff, shape, alignment, quota, conflict). Expected and user facing.
* ``StoreFailure``: the database was unreachable, timed out or failed
  unexpectedly. Logged, reported generically, safe for the caller to retry.
"""


class BookingError(Exception):
    """Base class; carries the HTTP status and a machine-readable code."""

    status_code: int = 400
    code: str = "booking_error"
    default_message: str = "Booking request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BookingError):
    code = "invalid_request"
    default_message = "Invalid booking request"


class MissingFieldsError(ValidationError):
    code = "missing_fields"
    default_message = "Missing required fields"


class RoomNotFoundError(ValidationError):
    status_code = 404
    code = "room_not_found"
    default_message = "Room not found"


class PolicyRejection(BookingError):
    code = "policy_rejection"


class CutoffNotReachedError(PolicyRejection):
    code = "cutoff_not_reached"
    default_message = "Bookings can only be made after 10pm the previous day"


class BadSlotShapeError(PolicyRejection):
    code = "bad_slot_shape"
    default_message = "Booking slots must be exactly 59 minutes and 59 seconds"


class NotRoundHourError(PolicyRejection):
    code = "not_round_hour"
    default_message = "Bookings must start at round hours (e.g., 7:00, 8:00)"


class QuotaExceededError(PolicyRejection):
    code = "quota_exceeded"
    default_message = "Daily booking quota reached"


class RoomConflictError(PolicyRejection):
    status_code = 409
    code = "room_conflict"
    default_message = "Room is already booked for this time"


class StoreFailure(BookingError):
    status_code = 503
    code = "store_failure"
    default_message = "Booking store unavailable, please retry"
