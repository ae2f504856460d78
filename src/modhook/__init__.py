"""
modhook: intercept Python imports and patch modules as they load.

Provides:
- Hook: registers a transform for a set of module names
- PROCESSED_UNPATCHED: cache marker for modules seen but left alone
- resolve_identity: the cache key a module name maps to
"""

import logging

from .base import CacheStateError, HookError, HookOptions
from .cache import PROCESSED_UNPATCHED, CacheView, EntryState, ExportsCache, ModuleIdentity
from .hook import Hook
from .interceptor import ImportInterceptor, get_interceptor
from .resolver import ModuleDetails, describe, is_core_module, resolve_identity

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CacheStateError",
    "CacheView",
    "EntryState",
    "ExportsCache",
    "Hook",
    "HookError",
    "HookOptions",
    "ImportInterceptor",
    "ModuleDetails",
    "ModuleIdentity",
    "PROCESSED_UNPATCHED",
    "describe",
    "get_interceptor",
    "is_core_module",
    "resolve_identity",
]
