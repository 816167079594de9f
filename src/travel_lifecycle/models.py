"""Core models for travel requests, approval history, and notifications."""

from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TravelStatus(str, Enum):
    """Lifecycle status of a travel request."""

    DRAFT = "draft"
    AWAITING_DEPT_HEAD = "awaiting_dept_head"
    AWAITING_DEPUTY_SECRETARY = "awaiting_deputy_secretary"
    AWAITING_AUDIT = "awaiting_audit"
    APPROVED = "approved"
    REJECTED = "rejected"
    AWAITING_ACCOUNTABILITY = "awaiting_accountability"
    OVERDUE = "overdue"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        """Display label used by the departmental back office."""

        return _STATUS_LABELS[self]

    @property
    def is_awaiting_approval(self) -> bool:
        return self in APPROVAL_STAGES

    @property
    def is_terminal(self) -> bool:
        return self in (TravelStatus.REJECTED, TravelStatus.COMPLETED)

    @classmethod
    def from_label(cls, label: str) -> TravelStatus:
        """Resolve a status from its display label or enum value."""

        normalized = label.strip().casefold()
        for status, status_label in _STATUS_LABELS.items():
            if normalized in (status_label.casefold(), status.value):
                return status
        raise ValueError(f"Unknown travel status label: {label!r}")


_STATUS_LABELS: dict[TravelStatus, str] = {
    TravelStatus.DRAFT: "Rascunho",
    TravelStatus.AWAITING_DEPT_HEAD: "Aguardando Chefia",
    TravelStatus.AWAITING_DEPUTY_SECRETARY: "Aguardando Subsecretario",
    TravelStatus.AWAITING_AUDIT: "Aguardando DAD",
    TravelStatus.APPROVED: "Aprovado",
    TravelStatus.REJECTED: "Rejeitado",
    TravelStatus.AWAITING_ACCOUNTABILITY: "Aguardando Prestacao de Contas",
    TravelStatus.OVERDUE: "Em Atraso",
    TravelStatus.COMPLETED: "Concluido",
}

# Ordered approval chain; each stage is decided by one approver role.
APPROVAL_STAGES: tuple[TravelStatus, ...] = (
    TravelStatus.AWAITING_DEPT_HEAD,
    TravelStatus.AWAITING_DEPUTY_SECRETARY,
    TravelStatus.AWAITING_AUDIT,
)


class FundingSource(str, Enum):
    """Budget line that pays for the trip."""

    TESOURO = "Tesouro"
    FIPAT = "FIPAT"
    BID = "BID"


class ProfileRole(str, Enum):
    """Organizational role of a profile."""

    EMPLOYEE = "employee"
    DEPT_HEAD = "dept_head"
    DEPUTY_SECRETARY = "deputy_secretary"
    AUDIT = "audit"
    ADMIN = "admin"


class WorkflowAction(str, Enum):
    """Decision recorded by an approver."""

    APPROVE = "approve"
    RETURN_FOR_CORRECTION = "return_for_correction"
    REJECT = "reject"

    @property
    def requires_comment(self) -> bool:
        return self is not WorkflowAction.APPROVE


class Profile(BaseModel):
    """Identity record read by the engine to authorize transitions."""

    profile_id: str = Field(..., description="Unique profile identifier")
    role: ProfileRole = Field(..., description="Current organizational role")
    department: str = Field(..., description="Department the profile belongs to")
    name: str | None = Field(default=None, description="Full name, when known")
    email: str | None = Field(default=None, description="Contact e-mail address")

    model_config = ConfigDict(frozen=True)


class TravelRequest(BaseModel):
    """A travel request moving through approval and accountability."""

    request_id: str = Field(default_factory=_new_id, description="Unique request id")
    requester_id: str = Field(..., description="Profile id of the requester")
    destination: str | None = Field(default=None, description="Trip destination")
    departure_date: date | None = Field(default=None, description="Date of departure")
    return_date: date | None = Field(default=None, description="Date of return")
    justification: str | None = Field(
        default=None, description="Business justification for the trip"
    )
    funding_source: FundingSource | None = Field(
        default=None, description="Budget line paying for the trip"
    )
    estimated_value: Annotated[Decimal, Field(ge=0)] = Field(
        default=Decimal("0"), description="Estimated total cost"
    )
    status: TravelStatus = Field(
        default=TravelStatus.DRAFT, description="Current lifecycle status"
    )
    version: int = Field(
        default=0, ge=0, description="Incremented on every persisted status change"
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    @model_validator(mode="after")
    def _validate_dates(self) -> TravelRequest:
        if (
            self.departure_date is not None
            and self.return_date is not None
            and self.return_date < self.departure_date
        ):
            msg = "return_date must be on or after departure_date"
            raise ValueError(msg)
        return self

    def duration_days(self) -> int | None:
        """Inclusive trip length in days, or None while dates are missing."""

        if self.departure_date is None or self.return_date is None:
            return None
        return (self.return_date - self.departure_date).days + 1

    def missing_submission_fields(self) -> list[str]:
        """Names of fields that must be filled before submission."""

        required = {
            "destination": self.destination,
            "departure_date": self.departure_date,
            "return_date": self.return_date,
            "justification": self.justification,
            "funding_source": self.funding_source,
        }
        missing = []
        for name, value in required.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing


class ApprovalWorkflowEntry(BaseModel):
    """Immutable audit record of a single approval-chain decision."""

    entry_id: str = Field(default_factory=_new_id)
    request_id: str = Field(..., description="Travel request the decision applies to")
    approver_id: str = Field(..., description="Profile id of the approver")
    approver_role: ProfileRole = Field(
        ..., description="Approver role at the time of the action"
    )
    action: WorkflowAction = Field(..., description="Decision taken")
    comment: str | None = Field(default=None, description="Approver comment")
    timestamp: datetime = Field(default_factory=_utcnow)
    previous_status: TravelStatus = Field(
        ..., description="Request status before the decision"
    )
    new_status: TravelStatus = Field(
        ..., description="Request status after the decision"
    )
    sequence: int = Field(
        default=0, ge=0, description="Position in the request's log, assigned on append"
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _validate_comment(self) -> ApprovalWorkflowEntry:
        if self.action.requires_comment and not (self.comment and self.comment.strip()):
            msg = f"A comment is required for '{self.action.value}' decisions"
            raise ValueError(msg)
        return self


class Notification(BaseModel):
    """Write-once deadline alert addressed to a requester."""

    notification_id: str = Field(default_factory=_new_id)
    recipient_id: str = Field(..., description="Profile id of the recipient")
    message: str = Field(..., description="Rendered alert text")
    created_at: datetime = Field(default_factory=_utcnow)
    request_id: str = Field(..., description="Travel request the alert refers to")
    trigger_date: date = Field(..., description="Dispatch day that produced the alert")

    model_config = ConfigDict(frozen=True)

    @property
    def dedupe_key(self) -> tuple[str, date]:
        return (self.request_id, self.trigger_date)


class AccountabilityChecklist(BaseModel):
    """Post-travel artifacts declared by the requester."""

    tickets: bool = Field(default=False, description="Boarding passes/ticket stubs")
    report: bool = Field(default=False, description="Trip report")
    refund_receipt: bool = Field(
        default=False, description="Refund receipt when funds were left unused"
    )
    attachments: int = Field(
        default=0, ge=0, description="Number of supporting files uploaded"
    )

    def missing_items(self) -> list[str]:
        """Mandatory items not yet marked present."""

        missing = []
        if not self.tickets:
            missing.append("tickets")
        if not self.report:
            missing.append("report")
        if self.attachments < 1:
            missing.append("attachments")
        return missing
