"""YAML-backed settings for the lifecycle engine."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .deadlines import DeadlinePolicy
from .models import APPROVAL_STAGES, ProfileRole, TravelStatus

DEFAULT_PORTARIA_TEMPLATE = (
    "O Secretário de Estado da Fazenda, no uso de suas atribuições... resolve"
    " AUTORIZAR o deslocamento do servidor [Nome], matrícula [ID], para"
    " [Destino], no período de [Data Início] a [Data Fim], com ônus para"
    " [Fonte de Recurso]."
)

DEFAULT_APPROVAL_CHAIN: dict[TravelStatus, ProfileRole] = {
    TravelStatus.AWAITING_DEPT_HEAD: ProfileRole.DEPT_HEAD,
    TravelStatus.AWAITING_DEPUTY_SECRETARY: ProfileRole.DEPUTY_SECRETARY,
    TravelStatus.AWAITING_AUDIT: ProfileRole.AUDIT,
}


def _default_settings_path() -> Path | None:
    """Return the default lifecycle configuration path if present."""

    for parent in Path(__file__).resolve().parents:
        candidate = parent / "config" / "lifecycle.yaml"
        if candidate.exists():
            return candidate
    return None


class LifecycleSettings(BaseModel):
    """Deadline policy, approval chain, and document defaults."""

    deadline: DeadlinePolicy = Field(
        default_factory=DeadlinePolicy, description="Accountability window policy"
    )
    approval_chain: dict[TravelStatus, ProfileRole] = Field(
        default_factory=lambda: dict(DEFAULT_APPROVAL_CHAIN),
        description="Approver role required at each approval stage",
    )
    legal_reference: str = Field(
        default="Decreto 3.792/2024",
        description="Legal instrument cited in deadline alerts",
    )
    portaria_template_key: str = Field(
        default="portaria_template",
        description="Template lookup key for the authorization document",
    )
    portaria_template: str = Field(
        default=DEFAULT_PORTARIA_TEMPLATE,
        description="Fallback authorization document template",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("approval_chain")
    @classmethod
    def _validate_chain(
        cls, chain: dict[TravelStatus, ProfileRole]
    ) -> dict[TravelStatus, ProfileRole]:
        missing = [stage.value for stage in APPROVAL_STAGES if stage not in chain]
        if missing:
            raise ValueError(f"approval_chain is missing stages: {', '.join(missing)}")
        extra = [stage.value for stage in chain if stage not in APPROVAL_STAGES]
        if extra:
            raise ValueError(f"approval_chain has non-approval stages: {', '.join(extra)}")
        return chain

    @classmethod
    def from_yaml(cls, content: str) -> LifecycleSettings:
        """Load settings from YAML content."""

        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ValueError("Lifecycle configuration must be a mapping")
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> LifecycleSettings:
        """Load settings from a YAML file, falling back to the packaged default."""

        target_path = Path(path) if path is not None else _default_settings_path()

        if target_path is None:
            raise FileNotFoundError("No lifecycle.yaml file found")

        return cls.from_yaml(target_path.read_text(encoding="utf-8"))

    @classmethod
    def from_environment(
        cls, env_var: str = "TRAVEL_LIFECYCLE_CONFIG"
    ) -> LifecycleSettings:
        """Load settings from an environment variable containing YAML."""

        content = os.getenv(env_var)
        if not content:
            raise ValueError(f"Environment variable '{env_var}' is not set or empty")
        return cls.from_yaml(content)
