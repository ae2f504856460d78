"""Per-hook ledger of module load outcomes.

Each identity moves through ``absent -> PLACEHOLDER -> FINAL`` and never
back. The placeholder is written before a transform runs, so a nested load
of the same module can tell it is re-entrant.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .base import CacheStateError


class _ProcessedUnpatched:
    """Singleton marking a module as in progress or deliberately left alone."""

    _instance: _ProcessedUnpatched | None = None

    def __new__(cls) -> _ProcessedUnpatched:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "PROCESSED_UNPATCHED"

    def __reduce__(self) -> str:
        return "PROCESSED_UNPATCHED"

    def __copy__(self) -> _ProcessedUnpatched:
        return self

    def __deepcopy__(self, memo: dict) -> _ProcessedUnpatched:
        return self


PROCESSED_UNPATCHED = _ProcessedUnpatched()


@dataclass(frozen=True)
class ModuleIdentity:
    filename: str
    core: bool = False


class EntryState(str, Enum):
    PLACEHOLDER = "placeholder"
    FINAL = "final"


@dataclass
class _Entry:
    state: EntryState
    value: Any = PROCESSED_UNPATCHED


def _key(filename: str | ModuleIdentity, core: bool) -> ModuleIdentity:
    if isinstance(filename, ModuleIdentity):
        return filename
    return ModuleIdentity(filename, core)


class ExportsCache:
    """Maps module identities to their placeholder or final exports."""

    def __init__(self) -> None:
        self._entries: dict[ModuleIdentity, _Entry] = {}

    def has(self, filename: str | ModuleIdentity, core: bool = False) -> bool:
        return _key(filename, core) in self._entries

    def get(self, filename: str | ModuleIdentity, core: bool = False, default: Any = None) -> Any:
        """Return the final value, ``PROCESSED_UNPATCHED``, or ``default``."""
        entry = self._entries.get(_key(filename, core))
        if entry is None:
            return default
        return entry.value

    def state(self, filename: str | ModuleIdentity, core: bool = False) -> EntryState | None:
        entry = self._entries.get(_key(filename, core))
        return entry.state if entry is not None else None

    def set_placeholder(self, filename: str | ModuleIdentity, core: bool = False) -> None:
        key = _key(filename, core)
        entry = self._entries.get(key)
        if entry is not None and entry.state is EntryState.FINAL:
            raise CacheStateError(f"{key.filename} is already final")
        self._entries[key] = _Entry(EntryState.PLACEHOLDER)

    def set_final(self, filename: str | ModuleIdentity, value: Any, core: bool = False) -> None:
        key = _key(filename, core)
        if value is PROCESSED_UNPATCHED:
            raise CacheStateError("PROCESSED_UNPATCHED cannot be stored as a final value")
        entry = self._entries.get(key)
        if entry is not None and entry.state is EntryState.FINAL:
            raise CacheStateError(f"{key.filename} is already final")
        self._entries[key] = _Entry(EntryState.FINAL, value)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class CacheView:
    """Read-only window onto a hook's cache."""

    def __init__(self, cache: ExportsCache) -> None:
        self._cache = cache

    def has(self, filename: str | ModuleIdentity, core: bool = False) -> bool:
        return self._cache.has(filename, core)

    def get(self, filename: str | ModuleIdentity, core: bool = False, default: Any = None) -> Any:
        return self._cache.get(filename, core, default)

    def state(self, filename: str | ModuleIdentity, core: bool = False) -> EntryState | None:
        return self._cache.state(filename, core)

    def __contains__(self, identity: object) -> bool:
        return identity in self._cache

    def __len__(self) -> int:
        return len(self._cache)
