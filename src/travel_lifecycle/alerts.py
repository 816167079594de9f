"""Scheduled dispatcher for accountability deadline alerts.

The dispatcher is meant to be invoked once a day by an external scheduler.
It only reads request state and writes notifications; it never changes a
request's status, so it can run alongside approval transitions.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from time import monotonic
from typing import Any

from . import deadlines
from .deadlines import DeadlinePolicy
from .models import Notification, TravelRequest, TravelStatus
from .settings import LifecycleSettings
from .storage import ProfileDirectory, TravelStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchFailure:
    """A notification that could not be written."""

    request_id: str
    recipient_id: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {
            "requestId": self.request_id,
            "recipientId": self.recipient_id,
            "error": self.error,
        }


@dataclass
class DispatchResult:
    """Cumulative outcome of one dispatcher run."""

    trigger_date: date
    total_selected: int = 0
    sent: int = 0
    skipped: int = 0
    failed: list[DispatchFailure] = field(default_factory=list)
    timed_out: list[str] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.sent + len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "triggerDate": self.trigger_date.isoformat(),
            "totalSelected": self.total_selected,
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": [failure.to_dict() for failure in self.failed],
            "timedOut": list(self.timed_out),
        }


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class OverdueAlertDispatcher:
    """Emit one near-due warning per request per trigger date."""

    store: TravelStore
    policy: DeadlinePolicy = field(default_factory=DeadlinePolicy)
    legal_reference: str = "Decreto 3.792/2024"
    profiles: ProfileDirectory | None = None
    clock: Callable[[], datetime] = _utcnow
    timeout: float | None = None

    @classmethod
    def from_settings(
        cls,
        store: TravelStore,
        settings: LifecycleSettings,
        **kwargs: Any,
    ) -> OverdueAlertDispatcher:
        return cls(
            store=store,
            policy=settings.deadline,
            legal_reference=settings.legal_reference,
            **kwargs,
        )

    def __call__(self) -> DispatchResult:
        """Scheduler entry point: dispatch for the current day."""

        return self.dispatch()

    def select(self, today: date) -> list[TravelRequest]:
        """Requests whose near-due alert fires on ``today``."""

        target = deadlines.alert_return_date(today, self.policy)
        return self.store.list_requests_by_status_and_return_date(
            TravelStatus.AWAITING_ACCOUNTABILITY, target
        )

    def compose_message(self, request: TravelRequest, today: date) -> str:
        remaining = deadlines.days_remaining(request.return_date, today, self.policy)
        unit = "dia" if remaining == 1 else "dias"
        return (
            f"Atenção, servidor {self._recipient_name(request)}. Faltam {remaining}"
            f" {unit} para o fim do seu prazo legal de prestação de contas conforme"
            f" {self.legal_reference}."
        )

    def dispatch(self, today: date | None = None) -> DispatchResult:
        """Run the batch for ``today``; safe to repeat for the same day."""

        now = self.clock()
        today = today or now.date()
        result = DispatchResult(trigger_date=today)
        selected = self.select(today)
        result.total_selected = len(selected)
        started = monotonic()

        for index, request in enumerate(selected):
            if self.timeout is not None and monotonic() - started > self.timeout:
                result.timed_out = [pending.request_id for pending in selected[index:]]
                logger.warning(
                    "Alert dispatch for %s timed out with %d requests unprocessed",
                    today.isoformat(),
                    len(result.timed_out),
                )
                break

            notification = Notification(
                recipient_id=request.requester_id,
                message=self.compose_message(request, today),
                created_at=now,
                request_id=request.request_id,
                trigger_date=today,
            )
            try:
                inserted = self.store.insert_notification(notification)
            except Exception as exc:
                logger.exception(
                    "Failed to store deadline alert for request %s", request.request_id
                )
                result.failed.append(
                    DispatchFailure(
                        request_id=request.request_id,
                        recipient_id=request.requester_id,
                        error=f"{type(exc).__name__}: {exc}",
                    )
                )
                continue

            if not inserted:
                logger.info(
                    "Deadline alert for request %s on %s already sent",
                    request.request_id,
                    today.isoformat(),
                )
                result.skipped += 1
                continue

            result.sent += 1
            result.notifications.append(notification)

        logger.info(
            "Alert dispatch for %s: %d selected, %d sent, %d skipped, %d failed",
            today.isoformat(),
            result.total_selected,
            result.sent,
            result.skipped,
            len(result.failed),
        )
        return result

    def _recipient_name(self, request: TravelRequest) -> str:
        if self.profiles is not None:
            try:
                profile = self.profiles.get_profile(request.requester_id)
            except LookupError:
                logger.warning("No profile for requester %s", request.requester_id)
                profile = None
            if profile is not None and profile.name:
                return profile.name
        return f"ID-{request.requester_id[:8]}"
