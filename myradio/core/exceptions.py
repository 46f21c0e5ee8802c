"""
Exception hierarchy for request gating.

Every failure the gate can produce is a MyRadioError carrying a stable code and
the HTTP status it maps to. The FastAPI exception handler in myradio.main turns
them into JSON responses.

Nothing here is retryable: a retry without a change in rule data or principal
permissions yields the same outcome.
"""
from typing import Any


class MyRadioError(Exception):
    """
    Base exception for the request gate.

    Attributes:
        code: Stable error code string (e.g. "FORBIDDEN").
        message: Human-readable error description.
        status_code: HTTP status the error maps to.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"
    status_code: int = 500

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.details = kwargs
        super().__init__(self.message)


class TraversalAttempt(MyRadioError):
    """A module or action name contained a path separator."""

    code = "TRAVERSAL_ATTEMPT"
    message = "Directory traversal thwarted"
    status_code = 404


class ControllerNotFound(MyRadioError):
    """No controller binding exists for the requested module/action."""

    code = "NOT_FOUND"
    message = "The requested page does not exist"
    status_code = 404


class AccessDenied(MyRadioError):
    """The principal holds none of the permissions the action requires."""

    code = "FORBIDDEN"
    message = "You do not have permission to access this page"
    status_code = 403


class MisconfiguredAction(MyRadioError):
    """
    No permission rule exists for an otherwise valid module/action.

    This is an operator error, never an access decision.
    """

    code = "MISCONFIGURED_ACTION"
    status_code = 500


class UnknownPermission(MyRadioError):
    """A symbolic permission name is missing from the loaded vocabulary."""

    code = "UNKNOWN_PERMISSION"
    status_code = 500


class PrincipalNotFound(MyRadioError):
    """No member row exists for the requested member id."""

    code = "MEMBER_NOT_FOUND"
    message = "That member does not exist"
    status_code = 404
