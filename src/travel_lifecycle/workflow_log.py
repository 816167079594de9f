"""Append-only approval workflow log."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .exceptions import AuthorizationError
from .models import ApprovalWorkflowEntry, TravelStatus
from .storage import TravelStore

logger = logging.getLogger(__name__)


@dataclass
class ApprovalWorkflowLog:
    """Single source of truth for who decided what, and when.

    Entries are only ever appended through the backing store; there is no
    update or delete path.
    """

    store: TravelStore

    def record(self, entry: ApprovalWorkflowEntry) -> ApprovalWorkflowEntry:
        """Append an entry and return it with its assigned sequence number."""

        stored = self.store.append_workflow_entry(entry)
        logger.info(
            "Recorded %s by %s (%s) on request %s: %s -> %s",
            stored.action.value,
            stored.approver_id,
            stored.approver_role.value,
            stored.request_id,
            stored.previous_status.value,
            stored.new_status.value,
        )
        return stored

    def history(self, request_id: str) -> list[ApprovalWorkflowEntry]:
        """Return the entries for a request, oldest first."""

        entries = self.store.list_workflow_history(request_id)
        return sorted(entries, key=lambda entry: (entry.sequence, entry.timestamp))

    def latest(self, request_id: str) -> ApprovalWorkflowEntry | None:
        entries = self.history(request_id)
        return entries[-1] if entries else None

    def assert_can_act(
        self, request_id: str, actor_id: str, current_status: TravelStatus
    ) -> None:
        """Reject a repeat decision by the same approver at an unchanged stage."""

        latest = self.latest(request_id)
        if (
            latest is not None
            and latest.approver_id == actor_id
            and latest.new_status == current_status
        ):
            raise AuthorizationError(
                f"Approver '{actor_id}' already decided request '{request_id}'"
                f" at stage '{current_status.value}'",
                request_id=request_id,
                actor_id=actor_id,
            )
