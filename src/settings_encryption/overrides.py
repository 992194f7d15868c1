"""Out-of-band override sources.

An override is a value defined outside storage (typically an environment
variable) that takes precedence over anything stored for the same logical
name. Lookups are presence based, and an empty value counts as absent.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from typing import Protocol


class OverrideSource(Protocol):
    def has(self, identifier: str) -> bool: ...

    def get(self, identifier: str) -> str | None: ...


class NoOverrides:
    """Override source for hosts without an override layer."""

    def has(self, identifier: str) -> bool:
        return False

    def get(self, identifier: str) -> str | None:
        return None


class EnvironmentOverrides:
    """Look identifiers up in a process environment mapping."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def has(self, identifier: str) -> bool:
        return bool(self._environ.get(identifier))

    def get(self, identifier: str) -> str | None:
        return self._environ.get(identifier) or None


class CallableOverrides:
    """Explicit identifier -> lookup function table supplied by the host.

    Each lookup is called on every access, so hosts can back it with
    anything (a secrets file, a config object) without the resolver
    caching stale values.
    """

    def __init__(self, lookups: Mapping[str, Callable[[], str | None]]) -> None:
        self._lookups = dict(lookups)

    def has(self, identifier: str) -> bool:
        return bool(self.get(identifier))

    def get(self, identifier: str) -> str | None:
        lookup = self._lookups.get(identifier)
        if lookup is None:
            return None
        return lookup() or None
