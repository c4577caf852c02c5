"""Exceptions raised by the baseline test and allocation services."""

from typing import Any, Dict, Optional


class BaselineError(Exception):
    """Base exception for all baseline errors."""

    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class InvalidInputError(BaselineError):
    """A required field is missing, empty or malformed."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **kwargs: Any) -> None:
        if field is not None:
            kwargs["field"] = field
        super().__init__(message, kwargs)
        self.field = field


class SessionNotFoundError(BaselineError):
    status_code = 404

    def __init__(self, session_id: str) -> None:
        super().__init__("Session not found", {"session_id": session_id})
        self.session_id = session_id


class SessionAlreadyCompletedError(BaselineError):
    status_code = 409

    def __init__(self, session_id: str) -> None:
        super().__init__("Session already completed", {"session_id": session_id})
        self.session_id = session_id


class SessionNotCompletedError(BaselineError):
    status_code = 409

    def __init__(self, session_id: str) -> None:
        super().__init__(
            "Session not completed - finish all questions first",
            {"session_id": session_id},
        )
        self.session_id = session_id


class UnauthorizedError(BaselineError):
    """Missing or malformed bearer credential."""

    status_code = 401


class IdentityConflictError(BaselineError):
    """The credential is already bound to a different agent."""

    status_code = 403

    def __init__(self, registered_agent_id: str, requested_agent_id: str) -> None:
        super().__init__(
            f'Token already registered to agent "{registered_agent_id}". '
            f'Cannot use for "{requested_agent_id}".',
            {
                "registered_agent_id": registered_agent_id,
                "requested_agent_id": requested_agent_id,
            },
        )
        self.registered_agent_id = registered_agent_id
        self.requested_agent_id = requested_agent_id


class DivisionUndefinedError(BaselineError):
    """Total allocation weight is zero, so no proportional split exists."""

    status_code = 422
