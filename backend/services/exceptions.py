"""Error taxonomy shared by every core service.

Each error carries a ``kind`` (used in API payloads) and the HTTP status the
API layer maps it to.
"""


class RideshareError(Exception):
    """Base class for errors reported by the core services."""
    kind = "error"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__

    def as_payload(self):
        return {"kind": self.kind, "message": self.message}


class ValidationError(RideshareError):
    """Raised when input is malformed. Nothing has been mutated."""
    kind = "validation_error"
    status_code = 400


class NotFoundError(RideshareError):
    """Raised when an entity cannot be found."""
    kind = "not_found"
    status_code = 404


class CapacityError(RideshareError):
    """Raised when a ride does not have enough available seats."""
    kind = "capacity_error"
    status_code = 409


class InvalidStateError(RideshareError):
    """Raised when an entity is not in a state that allows the operation."""
    kind = "invalid_state"
    status_code = 409


class DuplicateRequestError(RideshareError):
    """Raised when the passenger already has a pending request on the ride."""
    kind = "duplicate_request"
    status_code = 409


class AlreadyRatedError(RideshareError):
    """Raised when the rater already rated this history entry."""
    kind = "already_rated"
    status_code = 409


class NotParticipantError(RideshareError):
    """Raised when the user is not a participant of the entity."""
    kind = "not_participant"
    status_code = 409
