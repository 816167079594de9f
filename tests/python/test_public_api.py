"""Tests for package root public API imports."""

from __future__ import annotations

import tomllib
from pathlib import Path

import travel_lifecycle as tl
from travel_lifecycle import (
    LifecycleEngine,
    OverdueAlertDispatcher,
    __version__,
    days_remaining,
)


def test_public_api_exports() -> None:
    """Core API symbols should be importable from the package root."""
    required_exports = {
        "__version__",
        "LifecycleEngine",
        "ApprovalWorkflowLog",
        "OverdueAlertDispatcher",
        "TravelStore",
        "ValidationError",
        "AuthorizationError",
        "ConcurrentModificationError",
        "IncompleteSubmissionError",
        "NotFoundError",
        "days_remaining",
    }

    assert required_exports.issubset(set(tl.__all__))
    assert all(hasattr(tl, name) for name in tl.__all__)
    assert callable(days_remaining)
    assert LifecycleEngine is not None
    assert OverdueAlertDispatcher is not None


def test_version_matches_pyproject() -> None:
    """Package __version__ should align with pyproject.toml."""
    pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))

    assert data["project"]["version"] == __version__


def test_error_kinds_are_distinguishable() -> None:
    """Every error kind derives from the shared base and stays distinct."""

    kinds = [
        tl.ValidationError,
        tl.AuthorizationError,
        tl.ConcurrentModificationError,
        tl.IncompleteSubmissionError,
        tl.NotFoundError,
        tl.InvalidTransitionError,
    ]

    assert all(issubclass(kind, tl.LifecycleError) for kind in kinds)
    assert len(set(kinds)) == len(kinds)
    assert issubclass(tl.ValidationError, ValueError)
    assert issubclass(tl.AuthorizationError, PermissionError)
    assert issubclass(tl.NotFoundError, LookupError)
