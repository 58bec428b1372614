from typing import Optional


class TripDomainError(Exception):
    """Base class for all trip domain errors."""

class TripValidationError(TripDomainError):
    """Raised for unparseable dates, unrecognized enum values or missing fields. Never retried."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

class TripNotFoundError(TripDomainError):
    """Raised when an update or delete references a trip id that does not exist."""

    def __init__(self, trip_id: int):
        super().__init__(f"Trip {trip_id} not found.")
        self.trip_id = trip_id

class DatabaseQueryError(TripDomainError):
    """Raised when the store fails mid-operation; the whole transaction has been rolled back."""

class ExportRequestError(TripDomainError):
    """Raised when an export names a missing/unsupported table or an unknown field."""
