"""Tests for the accountability deadline calculator."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from travel_lifecycle.deadlines import (
    DeadlineClass,
    DeadlinePolicy,
    alert_return_date,
    classify,
    days_elapsed,
    days_remaining,
    due_date,
    evaluate,
)

RETURN_DATE = date(2025, 1, 15)


def test_three_days_after_return_is_near_due() -> None:
    """Three days after return leaves two days and triggers near-due."""

    status = evaluate(RETURN_DATE, date(2025, 1, 18))

    assert status.days_remaining == 2
    assert status.classification == DeadlineClass.NEAR_DUE
    assert not status.is_overdue


def test_eight_days_after_return_is_overdue() -> None:
    """Eight days after return is three days past the window."""

    status = evaluate(RETURN_DATE, date(2025, 1, 23))

    assert status.days_remaining == -3
    assert status.classification == DeadlineClass.OVERDUE
    assert status.is_overdue


@pytest.mark.parametrize(
    ("today", "expected"),
    [
        (date(2025, 1, 15), DeadlineClass.ON_TIME),
        (date(2025, 1, 17), DeadlineClass.ON_TIME),
        (date(2025, 1, 18), DeadlineClass.NEAR_DUE),
        (date(2025, 1, 22), DeadlineClass.NEAR_DUE),
        (date(2025, 1, 23), DeadlineClass.OVERDUE),
    ],
)
def test_classification_boundaries(today: date, expected: DeadlineClass) -> None:
    """Classification changes exactly at the two and zero day boundaries."""

    assert classify(RETURN_DATE, today) == expected


def test_days_remaining_decreases_monotonically() -> None:
    """Remaining days only go down as the evaluation date advances."""

    values = [
        days_remaining(RETURN_DATE, RETURN_DATE + timedelta(days=offset))
        for offset in range(-3, 15)
    ]

    assert all(later < earlier for earlier, later in zip(values, values[1:]))
    for offset, remaining in zip(range(-3, 15), values):
        today = RETURN_DATE + timedelta(days=offset)
        assert (remaining < 0) == (classify(RETURN_DATE, today) == DeadlineClass.OVERDUE)


def test_days_elapsed_is_negative_before_return() -> None:
    """Evaluating before the trip ends yields more than the full window."""

    assert days_elapsed(RETURN_DATE, date(2025, 1, 13)) == -2
    assert days_remaining(RETURN_DATE, date(2025, 1, 13)) == 9


def test_due_date_and_alert_date_follow_policy() -> None:
    """Due and alert dates are derived from the window and threshold."""

    assert due_date(RETURN_DATE) == date(2025, 1, 22)
    assert alert_return_date(date(2025, 1, 18)) == RETURN_DATE


def test_custom_policy_changes_window() -> None:
    """A wider window shifts both the classification and the alert date."""

    policy = DeadlinePolicy(window_days=10, near_due_days=3)

    assert days_remaining(RETURN_DATE, date(2025, 1, 18), policy) == 7
    assert classify(RETURN_DATE, date(2025, 1, 22), policy) == DeadlineClass.NEAR_DUE
    assert alert_return_date(date(2025, 1, 22), policy) == RETURN_DATE


def test_policy_rejects_threshold_beyond_window() -> None:
    """The near-due threshold must fit inside the window."""

    with pytest.raises(ValidationError):
        DeadlinePolicy(window_days=2, near_due_days=2)
