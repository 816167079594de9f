"""Accountability deadline calculator.

Every function here is a pure function of the trip's return date and an
explicit ``today``; nothing reads the system clock.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DeadlineClass(str, Enum):
    """Classification of an accountability obligation."""

    ON_TIME = "on_time"
    NEAR_DUE = "near_due"
    OVERDUE = "overdue"


class DeadlinePolicy(BaseModel):
    """Statutory accountability window.

    Five business days are modeled as seven calendar days counted from the
    return date.
    """

    window_days: int = Field(default=7, gt=0, description="Calendar days allowed")
    near_due_days: int = Field(
        default=2, ge=0, description="Remaining days at or below which it is near due"
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _validate_threshold(self) -> DeadlinePolicy:
        if self.near_due_days >= self.window_days:
            msg = "near_due_days must be smaller than window_days"
            raise ValueError(msg)
        return self

    @property
    def alert_offset_days(self) -> int:
        """Days after return on which the single near-due alert fires."""

        return self.window_days - self.near_due_days


class DeadlineStatus(BaseModel):
    """Deadline evaluation for one return date at one point in time."""

    return_date: date
    evaluated_on: date
    due_date: date
    days_remaining: int
    classification: DeadlineClass

    model_config = ConfigDict(frozen=True)

    @property
    def is_overdue(self) -> bool:
        return self.classification is DeadlineClass.OVERDUE


DEFAULT_POLICY = DeadlinePolicy()


def days_elapsed(return_date: date, today: date) -> int:
    """Calendar days since the return date; negative before it."""

    return (today - return_date).days


def days_remaining(
    return_date: date, today: date, policy: DeadlinePolicy = DEFAULT_POLICY
) -> int:
    return policy.window_days - days_elapsed(return_date, today)


def due_date(return_date: date, policy: DeadlinePolicy = DEFAULT_POLICY) -> date:
    """Last day on which accountability is still on time."""

    return return_date + timedelta(days=policy.window_days)


def classify_remaining(
    remaining: int, policy: DeadlinePolicy = DEFAULT_POLICY
) -> DeadlineClass:
    if remaining < 0:
        return DeadlineClass.OVERDUE
    if remaining <= policy.near_due_days:
        return DeadlineClass.NEAR_DUE
    return DeadlineClass.ON_TIME


def classify(
    return_date: date, today: date, policy: DeadlinePolicy = DEFAULT_POLICY
) -> DeadlineClass:
    return classify_remaining(days_remaining(return_date, today, policy), policy)


def evaluate(
    return_date: date, today: date, policy: DeadlinePolicy = DEFAULT_POLICY
) -> DeadlineStatus:
    """Evaluate the accountability deadline for a return date."""

    remaining = days_remaining(return_date, today, policy)
    return DeadlineStatus(
        return_date=return_date,
        evaluated_on=today,
        due_date=due_date(return_date, policy),
        days_remaining=remaining,
        classification=classify_remaining(remaining, policy),
    )


def alert_return_date(today: date, policy: DeadlinePolicy = DEFAULT_POLICY) -> date:
    """Return date whose requests receive the near-due warning on ``today``."""

    return today - timedelta(days=policy.alert_offset_days)
