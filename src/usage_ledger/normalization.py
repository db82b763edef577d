"""Utilities to normalize application identifiers and display names."""

from __future__ import annotations

import re
from typing import Optional

from .models import ApplicationRef

_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_identifier(identifier: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace; blank identifiers become ``None``."""
    if not identifier:
        return None
    normalized = identifier.strip()
    return normalized or None


def normalize_display_name(display_name: Optional[str]) -> Optional[str]:
    """Collapse runs of whitespace so names render on a single line."""
    if not display_name:
        return None
    normalized = _WHITESPACE_PATTERN.sub(" ", display_name).strip()
    return normalized or None


def resolve_application(
    identifier: Optional[str], display_name: Optional[str]
) -> Optional[ApplicationRef]:
    """Return an ``ApplicationRef`` or ``None`` when either part is missing."""
    resolved_identifier = normalize_identifier(identifier)
    resolved_name = normalize_display_name(display_name)
    if resolved_identifier is None or resolved_name is None:
        return None
    return ApplicationRef(identifier=resolved_identifier, display_name=resolved_name)
