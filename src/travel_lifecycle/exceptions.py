"""Error kinds raised by the travel request lifecycle engine."""

from __future__ import annotations

from collections.abc import Iterable


class LifecycleError(Exception):
    """Base class for every error raised by the lifecycle engine."""

    def __init__(self, message: str, *, request_id: str | None = None) -> None:
        super().__init__(message)
        self.request_id = request_id


class ValidationError(LifecycleError, ValueError):
    """Request data is malformed or incomplete for the attempted action."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        fields: Iterable[str] = (),
    ) -> None:
        super().__init__(message, request_id=request_id)
        self.fields = tuple(fields)


class AuthorizationError(LifecycleError, PermissionError):
    """The acting profile may not perform the action at the current stage."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        actor_id: str | None = None,
    ) -> None:
        super().__init__(message, request_id=request_id)
        self.actor_id = actor_id


class ConcurrentModificationError(LifecycleError):
    """The request status changed between read and conditional write."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message, request_id=request_id)
        self.expected = expected
        self.actual = actual


class IncompleteSubmissionError(LifecycleError):
    """Accountability completion was attempted without mandatory items."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        missing: Iterable[str] = (),
    ) -> None:
        super().__init__(message, request_id=request_id)
        self.missing = tuple(missing)


class NotFoundError(LifecycleError, LookupError):
    """An operation referenced an unknown request or profile."""


class InvalidTransitionError(LifecycleError):
    """The requested status change is not an edge of the lifecycle."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        source: str | None = None,
        target: str | None = None,
    ) -> None:
        super().__init__(message, request_id=request_id)
        self.source = source
        self.target = target
