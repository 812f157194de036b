"""Error taxonomy raised by the scheduling services.

Each error carries the HTTP status the API answers with; route handlers turn
them into ``HTTPException`` instances.
"""


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    status_code = 400


class NotFoundError(SchedulingError):
    status_code = 404


class PolicyViolation(SchedulingError):
    status_code = 409


class SlotNotBookable(PolicyViolation):
    pass


class BookingNotActive(PolicyViolation):
    pass


class DuplicateSlot(PolicyViolation):
    pass


class CancellationWindowClosed(PolicyViolation):
    status_code = 403


class InternalError(SchedulingError):
    status_code = 500
