"""In-memory directory of application display names."""

from __future__ import annotations

from typing import Iterable, Optional


class MissingNameError(LookupError):
    """An identifier reached a usage query without ever being named."""


class NameDirectory:
    """Maps application identifiers to their last-known display name."""

    def __init__(self) -> None:
        self._names: dict[str, str] = {}

    def load(self, pairs: Iterable[tuple[str, str]]) -> None:
        for identifier, display_name in pairs:
            self._names[identifier] = display_name

    def upsert(self, identifier: str, display_name: str) -> None:
        self._names[identifier] = display_name

    def lookup(self, identifier: str) -> Optional[str]:
        return self._names.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._names

    def __len__(self) -> int:
        return len(self._names)
