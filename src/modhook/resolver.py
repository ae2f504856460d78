"""Module identity and detail resolution.

Turns a loaded module (or a requested name) into the identity the hook
caches are keyed by, plus the name and base directory handed to transforms.
"""

from __future__ import annotations

import importlib.util
import os
import sys
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from .cache import ModuleIdentity

_NON_FILE_ORIGINS = {None, "built-in", "frozen"}


@dataclass(frozen=True)
class ModuleDetails:
    name: str
    identity: ModuleIdentity
    package: str
    basedir: str | None

    @property
    def is_internal(self) -> bool:
        """True for a submodule, i.e. anything other than the package entry point."""
        return self.name != self.package


def is_core_module(name: str) -> bool:
    top = name.partition(".")[0]
    return top in sys.builtin_module_names or top in sys.stdlib_module_names


def _real(path: str) -> str:
    return os.path.realpath(os.path.abspath(path))


def _filename_of(module: Any, name: str) -> str:
    path = getattr(module, "__file__", None)
    if not path:
        return name
    return _real(path)


def _package_dir(package: str) -> str | None:
    top = sys.modules.get(package)
    if top is None:
        return None

    # namespace packages may have several portions; the first one wins
    search = list(getattr(top, "__path__", None) or [])
    if search:
        return _real(search[0])

    path = getattr(top, "__file__", None)
    if path:
        return os.path.dirname(_real(path))
    return None


def describe(module: Any, name: str) -> ModuleDetails:
    """Build the details for ``module`` loaded under the absolute ``name``."""
    package = name.partition(".")[0]
    if is_core_module(name):
        return ModuleDetails(name, ModuleIdentity(name, True), package, None)

    identity = ModuleIdentity(_filename_of(module, name), False)
    return ModuleDetails(name, identity, package, _package_dir(package))


def resolve_identity(name: str, package: str | None = None) -> ModuleIdentity:
    """Map a requested module name to its identity without running any hooks.

    Parents of a dotted name are imported as a side effect of the lookup, the
    same way ``importlib.util.find_spec`` does it.
    """
    fullname = importlib.util.resolve_name(name, package) if name.startswith(".") else name
    if is_core_module(fullname):
        return ModuleIdentity(fullname, True)

    loaded = sys.modules.get(fullname)
    if isinstance(loaded, ModuleType):
        return ModuleIdentity(_filename_of(loaded, fullname), False)

    spec = importlib.util.find_spec(fullname)
    if spec is None:
        raise ModuleNotFoundError(f"No module named {fullname!r}", name=fullname)
    if spec.origin in _NON_FILE_ORIGINS or not spec.has_location:
        return ModuleIdentity(fullname, False)
    return ModuleIdentity(_real(spec.origin), False)
