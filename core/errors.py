"""Exception types raised by the allotment core."""
from typing import Optional


class AllotmentError(Exception):
    """Base class for every failure the allotment core reports."""


class EmptyInputError(AllotmentError):
    """An operation needed at least one element and got none."""


class NoCatchmentError(AllotmentError):
    """Population sampling was requested without any centres."""


class GeoBoundaryError(AllotmentError, ValueError):
    """A geometric conversion is undefined at the requested latitude."""


class WorkflowPreconditionError(AllotmentError):
    """An operation was requested before its workflow milestones were reached."""

    def __init__(self, operation: str, precondition: str):
        self.operation = operation
        self.precondition = precondition
        super().__init__(f"Cannot {operation}: {precondition}")


class DanglingReferenceError(AllotmentError):
    """An assignment points at a student or centre that no longer exists."""

    def __init__(self, student_id: str, centre_id: Optional[str] = None, reason: str = ""):
        self.student_id = student_id
        self.centre_id = centre_id
        detail = reason or f"{student_id} -> {centre_id}"
        super().__init__(f"Dangling assignment reference: {detail}")


class StaleResponseError(AllotmentError):
    """A response arrived for a request that has since been superseded."""

    def __init__(self, operation: str, ticket: int, latest: int):
        self.operation = operation
        self.ticket = ticket
        self.latest = latest
        super().__init__(f"Discarding stale {operation} response (ticket {ticket}, latest {latest})")


class BackendError(AllotmentError):
    """The routing backend failed or reported an error."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        self.operation = operation
        self.message = message
        self.status_code = status_code
        prefix = f"{operation} failed"
        if status_code is not None:
            prefix += f" (HTTP {status_code})"
        super().__init__(f"{prefix}: {message}")
