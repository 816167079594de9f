"""Test configuration for adding src to the import path."""

from __future__ import annotations

import sys
from collections.abc import Callable
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from travel_lifecycle import (
    InMemoryProfileDirectory,
    InMemoryTravelStore,
    LifecycleEngine,
    Profile,
    ProfileRole,
    TravelRequest,
)

FIXED_NOW = datetime(2025, 1, 5, 12, 0, tzinfo=UTC)


@pytest.fixture()
def store() -> InMemoryTravelStore:
    return InMemoryTravelStore()


@pytest.fixture()
def profiles() -> InMemoryProfileDirectory:
    return InMemoryProfileDirectory.from_profiles(
        [
            Profile(
                profile_id="emp-0001",
                role=ProfileRole.EMPLOYEE,
                department="DTI",
                name="Ana Souza",
                email="ana.souza@sefa.pa.gov.br",
            ),
            Profile(profile_id="emp-0002", role=ProfileRole.EMPLOYEE, department="DRH"),
            Profile(profile_id="chefia-dti", role=ProfileRole.DEPT_HEAD, department="DTI"),
            Profile(profile_id="chefia-drh", role=ProfileRole.DEPT_HEAD, department="DRH"),
            Profile(
                profile_id="subsec-1",
                role=ProfileRole.DEPUTY_SECRETARY,
                department="Gabinete",
            ),
            Profile(profile_id="dad-1", role=ProfileRole.AUDIT, department="DAD"),
            Profile(profile_id="admin-1", role=ProfileRole.ADMIN, department="DTI"),
        ]
    )


@pytest.fixture()
def engine(store: InMemoryTravelStore, profiles: InMemoryProfileDirectory) -> LifecycleEngine:
    return LifecycleEngine(store=store, profiles=profiles, clock=lambda: FIXED_NOW)


@pytest.fixture()
def draft_factory(engine: LifecycleEngine) -> Callable[..., TravelRequest]:
    def _factory(requester_id: str = "emp-0001", **overrides: object) -> TravelRequest:
        data: dict[str, object] = {
            "destination": "Brasília, DF",
            "departure_date": date(2025, 1, 10),
            "return_date": date(2025, 1, 15),
            "justification": "Reunião técnica no Tesouro Nacional",
            "funding_source": "Tesouro",
            "estimated_value": Decimal("3200.00"),
        }
        data.update(overrides)
        return engine.create_request(requester_id, **data)

    return _factory


@pytest.fixture()
def approved_factory(
    engine: LifecycleEngine, draft_factory: Callable[..., TravelRequest]
) -> Callable[..., TravelRequest]:
    def _factory(**overrides: object) -> TravelRequest:
        request = draft_factory(**overrides)
        engine.submit(request.request_id, request.requester_id)
        engine.approve(request.request_id, "chefia-dti")
        engine.approve(request.request_id, "subsec-1")
        engine.approve(request.request_id, "dad-1")
        return engine.store.read_request(request.request_id)

    return _factory
