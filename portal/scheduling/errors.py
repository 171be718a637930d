"""Expected, caller-recoverable scheduling failures."""


class SchedulingError(Exception):
    """Base class carrying a machine-readable kind and a human-readable reason."""

    kind = 'scheduling_error'
    status_code = 500

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NotFoundError(SchedulingError):
    kind = 'not_found'
    status_code = 404


class ValidationError(SchedulingError):
    kind = 'validation'
    status_code = 400


class InvalidStateError(ValidationError):
    kind = 'invalid_state'


class ConflictError(SchedulingError):
    kind = 'conflict'
    status_code = 409
