from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .base import HookOptions, Transform
from .cache import CacheView, EntryState, ExportsCache, ModuleIdentity
from .interceptor import ImportInterceptor, get_interceptor
from .local_config import get_local_config
from .resolver import ModuleDetails

logger = logging.getLogger(__name__)


class Hook:
    """Runs ``on_load`` over matching modules as they are imported.

    ``modules`` lists top-level package names, full dotted names or absolute
    file paths; ``None`` subscribes to every module. ``Hook(on_load)`` is the
    same as ``Hook(None, on_load)``.

    The transform is called as ``on_load(exports, name, basedir)`` at most
    once per module for the lifetime of the hook. Whatever it returns is
    what every later import of that module sees; returning ``None`` keeps
    the module unchanged.

    The hook registers itself on construction and stays active until
    :meth:`unhook` is called or the ``with`` block it was entered in exits.
    """

    def __init__(
        self,
        modules: Iterable[str] | Transform | None = None,
        on_load: Transform | None = None,
        options: HookOptions | Mapping[str, Any] | None = None,
        *,
        interceptor: ImportInterceptor | None = None,
    ) -> None:
        if on_load is None and callable(modules):
            modules, on_load = None, modules
        if on_load is None:
            raise TypeError("Hook() requires an on_load callable")
        if isinstance(modules, str):
            modules = [modules]

        self._modules = frozenset(modules) if modules is not None else None
        self.options = self._coerce_options(options)
        self._on_load = on_load
        self._cache = ExportsCache()
        self._failed: set[ModuleIdentity] = set()
        self._unhooked = False

        self._interceptor = interceptor or get_interceptor()
        self._interceptor.register(self)
        logger.debug("registered hook for %s", self._describe_modules())

    @staticmethod
    def _coerce_options(options: HookOptions | Mapping[str, Any] | None) -> HookOptions:
        if isinstance(options, HookOptions):
            return options
        defaults = get_local_config().default_options()
        if options is None:
            return defaults
        return HookOptions(**{**defaults.model_dump(), **dict(options)})

    def _describe_modules(self) -> str:
        if self._modules is None:
            return "all modules"
        return ", ".join(sorted(self._modules))

    @property
    def modules(self) -> frozenset[str] | None:
        return self._modules

    @property
    def cache(self) -> CacheView:
        return CacheView(self._cache)

    @property
    def unhooked(self) -> bool:
        return self._unhooked

    def _match(self, details: ModuleDetails) -> str | None:
        """Return the name to hand the transform, or None if not eligible."""
        internal = details.is_internal

        if self._modules is None:
            if internal and not self.options.internals:
                return None
            return details.name

        if details.name in self._modules:
            return details.name
        if details.identity.filename in self._modules:
            return details.identity.filename
        if internal and details.package in self._modules and self.options.internals:
            return details.name
        return None

    def on_module_load(self, details: ModuleDetails, exports: Any) -> Any:
        """Decide what an import of ``details`` should return.

        Called by the interceptor once per import; transforms run at most
        once per identity, and a nested load of a module whose transform is
        still running gets the untransformed ``exports``.
        """
        if self._unhooked:
            return exports

        identity = details.identity
        state = self._cache.state(identity)

        if state is EntryState.FINAL:
            logger.debug("returning cached exports for %s", details.name)
            return self._cache.get(identity)

        if state is EntryState.PLACEHOLDER:
            if identity in self._failed:
                logger.debug("transform for %s failed earlier, returning it unpatched", details.name)
            else:
                logger.debug("%s is already being processed or was skipped", details.name)
            return exports

        name = self._match(details)
        self._cache.set_placeholder(identity)
        if name is None:
            logger.debug("skipping %s", details.name)
            return exports

        logger.debug("calling transform for %s", name)
        try:
            patched = self._on_load(exports, name, details.basedir)
        except Exception:
            self._failed.add(identity)
            logger.debug("transform for %s raised", name, exc_info=True)
            raise

        if patched is None:
            patched = exports
        if self._unhooked:
            # unhooked from inside its own transform; the cache was discarded
            return patched
        self._cache.set_final(identity, patched)
        return patched

    def unhook(self) -> None:
        """Stop intercepting imports and discard the cache. Safe to call twice."""
        if self._unhooked:
            return
        self._unhooked = True
        self._interceptor.unregister(self)
        self._cache = ExportsCache()
        self._failed = set()
        logger.debug("unregistered hook for %s", self._describe_modules())

    unregister = unhook

    def __enter__(self) -> Hook:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unhook()

    def __repr__(self) -> str:
        status = "unhooked" if self._unhooked else "active"
        return f"<Hook {self._describe_modules()} ({status})>"
