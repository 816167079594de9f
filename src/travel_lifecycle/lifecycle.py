"""Lifecycle state machine for travel requests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from . import deadlines
from .deadlines import DeadlineStatus
from .exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    IncompleteSubmissionError,
    InvalidTransitionError,
    ValidationError,
)
from .models import (
    APPROVAL_STAGES,
    AccountabilityChecklist,
    ApprovalWorkflowEntry,
    Profile,
    ProfileRole,
    TravelRequest,
    TravelStatus,
    WorkflowAction,
)
from .portaria import fill_template, portaria_values, resolve_template
from .settings import LifecycleSettings
from .storage import ProfileDirectory, TemplateProvider, TravelStore
from .workflow_log import ApprovalWorkflowLog

logger = logging.getLogger(__name__)

TRANSITIONS: dict[TravelStatus, frozenset[TravelStatus]] = {
    TravelStatus.DRAFT: frozenset({TravelStatus.AWAITING_DEPT_HEAD}),
    TravelStatus.AWAITING_DEPT_HEAD: frozenset(
        {
            TravelStatus.AWAITING_DEPUTY_SECRETARY,
            TravelStatus.REJECTED,
            TravelStatus.DRAFT,
        }
    ),
    TravelStatus.AWAITING_DEPUTY_SECRETARY: frozenset(
        {TravelStatus.AWAITING_AUDIT, TravelStatus.REJECTED, TravelStatus.DRAFT}
    ),
    TravelStatus.AWAITING_AUDIT: frozenset(
        {TravelStatus.APPROVED, TravelStatus.REJECTED, TravelStatus.DRAFT}
    ),
    TravelStatus.APPROVED: frozenset({TravelStatus.AWAITING_ACCOUNTABILITY}),
    TravelStatus.AWAITING_ACCOUNTABILITY: frozenset(
        {TravelStatus.OVERDUE, TravelStatus.COMPLETED}
    ),
    TravelStatus.OVERDUE: frozenset({TravelStatus.COMPLETED}),
    TravelStatus.REJECTED: frozenset(),
    TravelStatus.COMPLETED: frozenset(),
}

_DRAFT_READONLY_FIELDS = frozenset(
    {"request_id", "requester_id", "status", "version", "created_at", "updated_at"}
)

_PORTARIA_STATUSES = frozenset(
    {
        TravelStatus.APPROVED,
        TravelStatus.AWAITING_ACCOUNTABILITY,
        TravelStatus.OVERDUE,
        TravelStatus.COMPLETED,
    }
)


def is_valid_transition(source: TravelStatus, target: TravelStatus) -> bool:
    return target in TRANSITIONS.get(source, frozenset())


def assert_transition(
    source: TravelStatus, target: TravelStatus, *, request_id: str | None = None
) -> None:
    """Raise when ``source -> target`` is not an edge of the lifecycle."""

    if not is_valid_transition(source, target):
        raise InvalidTransitionError(
            f"Cannot move travel request from '{source.value}' to '{target.value}'",
            request_id=request_id,
            source=source.value,
            target=target.value,
        )


def next_stage(stage: TravelStatus) -> TravelStatus:
    """Status reached when the approver of ``stage`` approves."""

    index = APPROVAL_STAGES.index(stage)
    if index + 1 < len(APPROVAL_STAGES):
        return APPROVAL_STAGES[index + 1]
    return TravelStatus.APPROVED


@dataclass(frozen=True)
class ApproverRequirement:
    """Role, and optionally department, required to decide a stage."""

    role: ProfileRole
    department: str | None = None

    def allows(self, profile: Profile) -> bool:
        if profile.role != self.role:
            return False
        return self.department is None or profile.department == self.department

    def describe(self) -> str:
        if self.department is None:
            return self.role.value
        return f"{self.role.value} of department '{self.department}'"


class ApproverResolver(Protocol):
    """Strategy that decides who may act on a request at a stage."""

    def resolve(
        self, request: TravelRequest, stage: TravelStatus
    ) -> ApproverRequirement: ...


@dataclass
class FlatChainResolver:
    """Same approver role per stage for every department."""

    chain: Mapping[TravelStatus, ProfileRole]

    def resolve(self, request: TravelRequest, stage: TravelStatus) -> ApproverRequirement:
        try:
            return ApproverRequirement(role=self.chain[stage])
        except KeyError:
            raise InvalidTransitionError(
                f"Stage '{stage.value}' has no configured approver",
                request_id=request.request_id,
                source=stage.value,
            ) from None


@dataclass
class DepartmentScopedResolver:
    """Flat chain where the department head must share the requester's department."""

    chain: Mapping[TravelStatus, ProfileRole]
    profiles: ProfileDirectory
    scoped_stages: frozenset[TravelStatus] = frozenset({TravelStatus.AWAITING_DEPT_HEAD})

    def resolve(self, request: TravelRequest, stage: TravelStatus) -> ApproverRequirement:
        requirement = FlatChainResolver(self.chain).resolve(request, stage)
        if stage not in self.scoped_stages:
            return requirement
        requester = self.profiles.get_profile(request.requester_id)
        return ApproverRequirement(role=requirement.role, department=requester.department)


@dataclass(frozen=True)
class StatusChange:
    """A time-driven status change applied by a sweep."""

    request_id: str
    previous_status: TravelStatus
    new_status: TravelStatus


@dataclass
class SweepResult:
    """Outcome of applying time-driven transitions across requests."""

    evaluated_on: date
    changes: list[StatusChange] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class LifecycleEngine:
    """Drive travel requests through approval and accountability."""

    store: TravelStore
    profiles: ProfileDirectory
    settings: LifecycleSettings = field(default_factory=LifecycleSettings)
    resolver: ApproverResolver | None = None
    templates: TemplateProvider | None = None
    clock: Callable[[], datetime] = _utcnow

    def __post_init__(self) -> None:
        if self.resolver is None:
            self.resolver = FlatChainResolver(self.settings.approval_chain)
        self.log = ApprovalWorkflowLog(self.store)

    def create_request(self, requester_id: str, **fields: Any) -> TravelRequest:
        """Create a draft request owned by ``requester_id``."""

        self.profiles.get_profile(requester_id)
        readonly = sorted(set(fields) & _DRAFT_READONLY_FIELDS)
        if readonly:
            raise ValidationError(
                f"Fields cannot be set on creation: {', '.join(readonly)}",
                fields=readonly,
            )
        now = self.clock()
        request = self._build_request(
            {
                **fields,
                "requester_id": requester_id,
                "status": TravelStatus.DRAFT,
                "created_at": now,
                "updated_at": now,
            }
        )
        created = self.store.create_request(request)
        logger.info("Created draft travel request %s for %s", created.request_id, requester_id)
        return created

    def update_draft(self, request_id: str, actor_id: str, **changes: Any) -> TravelRequest:
        """Edit a draft; only its requester may do so."""

        request = self.store.read_request(request_id)
        self._require_owner(request, actor_id)
        if request.status is not TravelStatus.DRAFT:
            raise ValidationError(
                f"Travel request '{request_id}' is '{request.status.value}' and can no"
                " longer be edited",
                request_id=request_id,
            )
        readonly = sorted(set(changes) & _DRAFT_READONLY_FIELDS)
        if readonly:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(readonly)}",
                request_id=request_id,
                fields=readonly,
            )
        updated = self._build_request({**request.model_dump(), **changes})
        return self.store.update_request(updated)

    def submit(self, request_id: str, actor_id: str) -> TravelRequest:
        """Send a draft to the first approval stage."""

        request = self.store.read_request(request_id)
        self._require_owner(request, actor_id)
        assert_transition(request.status, TravelStatus.AWAITING_DEPT_HEAD, request_id=request_id)

        missing = request.missing_submission_fields()
        if missing:
            raise ValidationError(
                f"Travel request '{request_id}' is missing required fields:"
                f" {', '.join(missing)}",
                request_id=request_id,
                fields=missing,
            )
        if request.return_date < request.departure_date:
            raise ValidationError(
                "return_date must be on or after departure_date",
                request_id=request_id,
                fields=("departure_date", "return_date"),
            )

        submitted = self.store.update_request_status(
            request_id, request.status, TravelStatus.AWAITING_DEPT_HEAD
        )
        logger.info("Travel request %s submitted by %s", request_id, actor_id)
        return submitted

    def approve(
        self,
        request_id: str,
        actor_id: str,
        comment: str | None = None,
        *,
        expected_status: TravelStatus | None = None,
    ) -> ApprovalWorkflowEntry:
        """Approve the current stage and advance the request."""

        return self._decide(
            request_id, actor_id, WorkflowAction.APPROVE, comment, expected_status
        )

    def reject(
        self,
        request_id: str,
        actor_id: str,
        comment: str | None,
        *,
        expected_status: TravelStatus | None = None,
    ) -> ApprovalWorkflowEntry:
        """Reject the request for good; a comment is mandatory."""

        return self._decide(
            request_id, actor_id, WorkflowAction.REJECT, comment, expected_status
        )

    def return_for_correction(
        self,
        request_id: str,
        actor_id: str,
        comment: str | None,
        *,
        expected_status: TravelStatus | None = None,
    ) -> ApprovalWorkflowEntry:
        """Send the request back to the requester as an editable draft."""

        return self._decide(
            request_id,
            actor_id,
            WorkflowAction.RETURN_FOR_CORRECTION,
            comment,
            expected_status,
        )

    def history(self, request_id: str) -> list[ApprovalWorkflowEntry]:
        return self.log.history(request_id)

    def required_approver(self, request_id: str) -> ApproverRequirement | None:
        """Who must act next, or None when the request awaits no approval."""

        request = self.store.read_request(request_id)
        if not request.status.is_awaiting_approval:
            return None
        return self.resolver.resolve(request, request.status)

    def _decide(
        self,
        request_id: str,
        actor_id: str,
        action: WorkflowAction,
        comment: str | None,
        expected_status: TravelStatus | None,
    ) -> ApprovalWorkflowEntry:
        request = self.store.read_request(request_id)
        stage = request.status
        if expected_status is not None and stage != expected_status:
            raise ConcurrentModificationError(
                f"Travel request '{request_id}' is '{stage.value}',"
                f" expected '{expected_status.value}'",
                request_id=request_id,
                expected=expected_status.value,
                actual=stage.value,
            )
        if not stage.is_awaiting_approval:
            raise InvalidTransitionError(
                f"Travel request '{request_id}' is '{stage.value}' and awaits no approval",
                request_id=request_id,
                source=stage.value,
            )
        if action.requires_comment and not (comment and comment.strip()):
            raise ValidationError(
                f"A comment is required to {action.value.replace('_', ' ')}",
                request_id=request_id,
                fields=("comment",),
            )

        profile = self.profiles.get_profile(actor_id)
        requirement = self.resolver.resolve(request, stage)
        if not requirement.allows(profile):
            logger.warning(
                "Denied %s on request %s by %s (%s); stage %s requires %s",
                action.value,
                request_id,
                actor_id,
                profile.role.value,
                stage.value,
                requirement.describe(),
            )
            raise AuthorizationError(
                f"Stage '{stage.value}' must be decided by {requirement.describe()},"
                f" not '{profile.role.value}'",
                request_id=request_id,
                actor_id=actor_id,
            )
        self.log.assert_can_act(request_id, actor_id, stage)

        if action is WorkflowAction.APPROVE:
            target = next_stage(stage)
        elif action is WorkflowAction.REJECT:
            target = TravelStatus.REJECTED
        else:
            target = TravelStatus.DRAFT
        assert_transition(stage, target, request_id=request_id)

        entry = ApprovalWorkflowEntry(
            request_id=request_id,
            approver_id=actor_id,
            approver_role=profile.role,
            action=action,
            comment=(comment or "").strip() or None,
            timestamp=self.clock(),
            previous_status=stage,
            new_status=target,
        )
        self.store.update_request_status(request_id, stage, target)
        try:
            return self.log.record(entry)
        except Exception:
            logger.exception(
                "Could not record %s on request %s; restoring status %s",
                action.value,
                request_id,
                stage.value,
            )
            self.store.update_request_status(request_id, target, stage)
            raise

    def mark_trip_completed(self, request_id: str, today: date | None = None) -> TravelRequest:
        """Explicitly open accountability for an approved trip that has ended."""

        today = today or self.clock().date()
        request = self.store.read_request(request_id)
        assert_transition(
            request.status, TravelStatus.AWAITING_ACCOUNTABILITY, request_id=request_id
        )
        if today <= request.return_date:
            raise ValidationError(
                f"Trip for request '{request_id}' returns on {request.return_date}"
                " and has not ended yet",
                request_id=request_id,
                fields=("return_date",),
            )
        return self._set_status(request, TravelStatus.AWAITING_ACCOUNTABILITY)

    def refresh_status(self, request_id: str, today: date | None = None) -> TravelRequest:
        """Apply any time-driven transitions due for one request."""

        today = today or self.clock().date()
        request = self.store.read_request(request_id)
        for change in self._time_driven_changes(request, today):
            request = self._set_status(request, change)
        return request

    def sweep(self, today: date | None = None) -> SweepResult:
        """Apply time-driven transitions to every approved or pending request."""

        today = today or self.clock().date()
        result = SweepResult(evaluated_on=today)
        candidates = [
            *self.store.list_requests_by_status(TravelStatus.APPROVED),
            *self.store.list_requests_by_status(TravelStatus.AWAITING_ACCOUNTABILITY),
        ]
        for request in candidates:
            previous = request.status
            try:
                for target in self._time_driven_changes(request, today):
                    request = self._set_status(request, target)
                    result.changes.append(
                        StatusChange(request.request_id, previous, target)
                    )
                    previous = target
            except ConcurrentModificationError as exc:
                logger.warning("Skipped request %s during sweep: %s", request.request_id, exc)
                result.conflicts.append(request.request_id)
        logger.info(
            "Sweep for %s applied %d changes (%d conflicts)",
            today.isoformat(),
            len(result.changes),
            len(result.conflicts),
        )
        return result

    def deadline_status(self, request_id: str, today: date | None = None) -> DeadlineStatus:
        """Deadline position of a request; applies any transition now due."""

        today = today or self.clock().date()
        try:
            request = self.refresh_status(request_id, today)
        except ConcurrentModificationError as exc:
            logger.info("Request %s changed during deadline check: %s", request_id, exc)
            request = self.store.read_request(request_id)
        if request.return_date is None:
            raise ValidationError(
                f"Travel request '{request_id}' has no return date",
                request_id=request_id,
                fields=("return_date",),
            )
        return deadlines.evaluate(request.return_date, today, self.settings.deadline)

    def complete_accountability(
        self,
        request_id: str,
        actor_id: str,
        checklist: AccountabilityChecklist,
    ) -> TravelRequest:
        """Close the accountability obligation once every mandatory item is present."""

        request = self.store.read_request(request_id)
        self._require_owner(request, actor_id)
        assert_transition(request.status, TravelStatus.COMPLETED, request_id=request_id)

        missing = checklist.missing_items()
        if missing:
            raise IncompleteSubmissionError(
                f"Accountability for request '{request_id}' is missing:"
                f" {', '.join(missing)}",
                request_id=request_id,
                missing=missing,
            )
        return self._set_status(request, TravelStatus.COMPLETED)

    def portaria_values(self, request_id: str) -> dict[str, str]:
        """Substitution values for the authorization document template."""

        request = self.store.read_request(request_id)
        if request.status not in _PORTARIA_STATUSES:
            raise ValidationError(
                f"Travel request '{request_id}' is '{request.status.value}';"
                " the authorization document requires final approval",
                request_id=request_id,
            )
        try:
            profile = self.profiles.get_profile(request.requester_id)
        except LookupError:
            logger.warning("No profile for requester %s", request.requester_id)
            profile = None
        return portaria_values(request, profile)

    def portaria_text(self, request_id: str) -> str:
        values = self.portaria_values(request_id)
        template = resolve_template(
            self.templates,
            self.settings.portaria_template_key,
            self.settings.portaria_template,
        )
        return fill_template(template, values)

    def _time_driven_changes(
        self, request: TravelRequest, today: date
    ) -> list[TravelStatus]:
        if request.return_date is None:
            return []
        status = request.status
        changes: list[TravelStatus] = []
        if status is TravelStatus.APPROVED and today > request.return_date:
            status = TravelStatus.AWAITING_ACCOUNTABILITY
            changes.append(status)
        if (
            status is TravelStatus.AWAITING_ACCOUNTABILITY
            and deadlines.evaluate(request.return_date, today, self.settings.deadline).is_overdue
        ):
            changes.append(TravelStatus.OVERDUE)
        return changes

    def _set_status(self, request: TravelRequest, target: TravelStatus) -> TravelRequest:
        assert_transition(request.status, target, request_id=request.request_id)
        updated = self.store.update_request_status(request.request_id, request.status, target)
        logger.info(
            "Travel request %s moved from %s to %s",
            request.request_id,
            request.status.value,
            target.value,
        )
        return updated

    def _require_owner(self, request: TravelRequest, actor_id: str) -> None:
        if request.requester_id != actor_id:
            logger.warning(
                "Denied requester action on %s by %s", request.request_id, actor_id
            )
            raise AuthorizationError(
                f"Only the requester may act on travel request '{request.request_id}'",
                request_id=request.request_id,
                actor_id=actor_id,
            )

    def _build_request(self, data: dict[str, Any]) -> TravelRequest:
        try:
            return TravelRequest.model_validate(data)
        except PydanticValidationError as exc:
            fields = [
                ".".join(str(part) for part in error["loc"]) or "request"
                for error in exc.errors()
            ]
            raise ValidationError(
                f"Invalid travel request data: {exc}",
                request_id=data.get("request_id"),
                fields=fields,
            ) from exc
