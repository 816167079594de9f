"""Boundary interfaces consumed by the engine and in-memory implementations.

The production datastore, identity provider, and settings table live outside
this package; the engine only talks to them through the protocols below. The
in-memory classes implement the same contracts for tests and local use.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol

from .exceptions import ConcurrentModificationError, NotFoundError
from .models import (
    ApprovalWorkflowEntry,
    Notification,
    Profile,
    TravelRequest,
    TravelStatus,
)


class TravelStore(Protocol):
    """Read/write record interface over a single consistent backing store."""

    def create_request(self, request: TravelRequest) -> TravelRequest: ...

    def read_request(self, request_id: str) -> TravelRequest: ...

    def update_request(self, request: TravelRequest) -> TravelRequest: ...

    def update_request_status(
        self,
        request_id: str,
        expected_status: TravelStatus,
        new_status: TravelStatus,
    ) -> TravelRequest: ...

    def append_workflow_entry(
        self, entry: ApprovalWorkflowEntry
    ) -> ApprovalWorkflowEntry: ...

    def list_workflow_history(self, request_id: str) -> list[ApprovalWorkflowEntry]: ...

    def list_requests_by_status(self, status: TravelStatus) -> list[TravelRequest]: ...

    def list_requests_by_status_and_return_date(
        self, status: TravelStatus, return_date: date
    ) -> list[TravelRequest]: ...

    def insert_notification(self, notification: Notification) -> bool: ...

    def list_notifications(
        self, recipient_id: str | None = None
    ) -> list[Notification]: ...


class ProfileDirectory(Protocol):
    """Identity/role lookup used for authorization checks."""

    def get_profile(self, profile_id: str) -> Profile: ...


class TemplateProvider(Protocol):
    """Key/value lookup for document templates."""

    def get_template(self, key: str) -> str | None: ...


@dataclass
class InMemoryTravelStore:
    """Thread-safe in-memory implementation of :class:`TravelStore`.

    Records are copied on the way in and out so callers never share mutable
    state with the store.
    """

    requests: dict[str, TravelRequest] = field(default_factory=dict)
    workflow: dict[str, list[ApprovalWorkflowEntry]] = field(default_factory=dict)
    notifications: dict[tuple[str, date], Notification] = field(default_factory=dict)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def create_request(self, request: TravelRequest) -> TravelRequest:
        with self._lock:
            if request.request_id in self.requests:
                raise ValueError(f"Travel request '{request.request_id}' already exists")
            self.requests[request.request_id] = request.model_copy(deep=True)
            return request.model_copy(deep=True)

    def read_request(self, request_id: str) -> TravelRequest:
        with self._lock:
            return self._get(request_id).model_copy(deep=True)

    def update_request(self, request: TravelRequest) -> TravelRequest:
        """Replace the editable fields of a request; status must be unchanged."""

        with self._lock:
            current = self._get(request.request_id)
            if current.status != request.status or current.version != request.version:
                raise ConcurrentModificationError(
                    f"Travel request '{request.request_id}' changed since it was read",
                    request_id=request.request_id,
                    expected=request.status.value,
                    actual=current.status.value,
                )
            stored = request.model_copy(
                deep=True, update={"updated_at": datetime.now(UTC)}
            )
            self.requests[request.request_id] = stored
            return stored.model_copy(deep=True)

    def update_request_status(
        self,
        request_id: str,
        expected_status: TravelStatus,
        new_status: TravelStatus,
    ) -> TravelRequest:
        """Conditionally write a new status; fails if the status moved on."""

        with self._lock:
            current = self._get(request_id)
            if current.status != expected_status:
                raise ConcurrentModificationError(
                    f"Travel request '{request_id}' is '{current.status.value}',"
                    f" expected '{expected_status.value}'",
                    request_id=request_id,
                    expected=expected_status.value,
                    actual=current.status.value,
                )
            stored = current.model_copy(
                update={
                    "status": new_status,
                    "version": current.version + 1,
                    "updated_at": datetime.now(UTC),
                }
            )
            self.requests[request_id] = stored
            return stored.model_copy(deep=True)

    def append_workflow_entry(
        self, entry: ApprovalWorkflowEntry
    ) -> ApprovalWorkflowEntry:
        with self._lock:
            self._get(entry.request_id)
            entries = self.workflow.setdefault(entry.request_id, [])
            stored = entry.model_copy(update={"sequence": len(entries) + 1})
            entries.append(stored)
            return stored

    def list_workflow_history(self, request_id: str) -> list[ApprovalWorkflowEntry]:
        with self._lock:
            self._get(request_id)
            return list(self.workflow.get(request_id, []))

    def list_requests_by_status(self, status: TravelStatus) -> list[TravelRequest]:
        with self._lock:
            return [
                request.model_copy(deep=True)
                for request in self.requests.values()
                if request.status == status
            ]

    def list_requests_by_status_and_return_date(
        self, status: TravelStatus, return_date: date
    ) -> list[TravelRequest]:
        with self._lock:
            return [
                request.model_copy(deep=True)
                for request in self.requests.values()
                if request.status == status and request.return_date == return_date
            ]

    def insert_notification(self, notification: Notification) -> bool:
        """Persist a notification unless its (request, trigger date) key exists."""

        with self._lock:
            if notification.dedupe_key in self.notifications:
                return False
            self.notifications[notification.dedupe_key] = notification
            return True

    def list_notifications(self, recipient_id: str | None = None) -> list[Notification]:
        with self._lock:
            return sorted(
                (
                    notification
                    for notification in self.notifications.values()
                    if recipient_id is None or notification.recipient_id == recipient_id
                ),
                key=lambda notification: notification.created_at,
            )

    def _get(self, request_id: str) -> TravelRequest:
        try:
            return self.requests[request_id]
        except KeyError:
            raise NotFoundError(
                f"Travel request '{request_id}' not found", request_id=request_id
            ) from None


@dataclass
class InMemoryProfileDirectory:
    """In-memory identity directory keyed by profile id."""

    profiles: dict[str, Profile] = field(default_factory=dict)

    @classmethod
    def from_profiles(cls, profiles: Iterable[Profile]) -> InMemoryProfileDirectory:
        return cls({profile.profile_id: profile for profile in profiles})

    def add(self, profile: Profile) -> Profile:
        self.profiles[profile.profile_id] = profile
        return profile

    def get_profile(self, profile_id: str) -> Profile:
        try:
            return self.profiles[profile_id]
        except KeyError:
            raise NotFoundError(f"Profile '{profile_id}' not found") from None


@dataclass
class InMemoryTemplateProvider:
    """In-memory key/value template settings."""

    templates: dict[str, str] = field(default_factory=dict)

    def get_template(self, key: str) -> str | None:
        return self.templates.get(key)
