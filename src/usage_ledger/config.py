"""Configuration models and helpers for the usage ledger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

DEFAULT_IGNORED_IDENTIFIERS: frozenset[str] = frozenset({"com.apple.loginwindow"})


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for focus tracking and usage queries."""

    ignored_identifiers: frozenset[str] = DEFAULT_IGNORED_IDENTIFIERS
    strict_names: bool = False

    @classmethod
    def from_options(
        cls,
        ignore: Optional[Iterable[str]] = None,
        strict_names: bool = False,
    ) -> "TrackerSettings":
        extra = {item.strip() for item in ignore or () if item and item.strip()}
        return cls(
            ignored_identifiers=DEFAULT_IGNORED_IDENTIFIERS | extra,
            strict_names=strict_names,
        )

    def is_ignored(self, identifier: str) -> bool:
        return identifier in self.ignored_identifiers
