# datefunnel/scheduling/errors.py


class SchedulingError(ValueError):
    """
    Base error for every rejection raised by the scheduling engine.

    Subclasses ValueError so callers that already translate ValueError
    into a 400 keep working; `code` is a stable machine-readable reason.
    """

    code = "SCHEDULING_ERROR"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self):
        return {"code": self.code, "message": self.message}


class SchedulingValidationError(SchedulingError):
    """Malformed input: bad ranges, out-of-range days, empty submissions."""

    code = "INVALID_INPUT"


class SchedulingConflict(SchedulingError):
    """Business-rule rejection given the trip's current state. Not retryable."""

    code = "STAGE_BLOCKED"
