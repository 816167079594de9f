"""Substitution values for the travel authorization document (Portaria)."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date

from .models import Profile, TravelRequest
from .storage import TemplateProvider

logger = logging.getLogger(__name__)

PORTARIA_TOKENS: tuple[str, ...] = (
    "[Nome]",
    "[ID]",
    "[Destino]",
    "[Data Início]",
    "[Data Fim]",
    "[Fonte de Recurso]",
)

UNIDENTIFIED_SERVANT = "Servidor Não Identificado"


def _format_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value is not None else ""


def servant_name(profile: Profile | None) -> str:
    """Display name for the traveler: name, else e-mail local part."""

    if profile is not None:
        if profile.name and profile.name.strip():
            return profile.name.strip()
        if profile.email and "@" in profile.email:
            return profile.email.split("@", 1)[0]
    return UNIDENTIFIED_SERVANT


def registration_number(request_id: str) -> str:
    """Temporary registration number derived from the request id."""

    return request_id[:8].upper()


def portaria_values(request: TravelRequest, profile: Profile | None) -> dict[str, str]:
    """Return the value for every Portaria template token."""

    return {
        "[Nome]": servant_name(profile),
        "[ID]": registration_number(request.request_id),
        "[Destino]": request.destination or "",
        "[Data Início]": _format_date(request.departure_date),
        "[Data Fim]": _format_date(request.return_date),
        "[Fonte de Recurso]": (
            request.funding_source.value if request.funding_source else ""
        ),
    }


def fill_template(template: str, values: Mapping[str, str]) -> str:
    """Replace each token in ``template`` case-insensitively."""

    text = template
    for token, value in values.items():
        # Values are inserted verbatim, never as regex replacement templates.
        text = re.sub(
            re.escape(token), lambda _match, v=value: v, text, flags=re.IGNORECASE
        )
    return text


def resolve_template(
    provider: TemplateProvider | None, key: str, fallback: str
) -> str:
    """Look up a template by key, falling back to the configured default."""

    template = provider.get_template(key) if provider is not None else None
    if not template:
        logger.warning("Template '%s' not found, using fallback text", key)
        return fallback
    return template
