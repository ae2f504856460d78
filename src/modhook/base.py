from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

# (exports, name, basedir) -> exports
Transform = Callable[[Any, str, "str | None"], Any]


class HookError(Exception):
    """Base class for errors raised by modhook itself.

    Exceptions raised by a transform are never wrapped in this; they reach
    the importer unchanged.
    """


class CacheStateError(HookError):
    """Raised when a cache write would move an entry out of its final state."""


class HookOptions(BaseModel):
    """Per-hook configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    internals: bool = Field(
        default=True,
        description="hook submodules of a subscribed package, not just the package itself",
    )
