"""
Process-wide import interception shared by every active hook.

Wraps ``builtins.__import__`` and ``importlib.import_module`` while at least
one hook is registered, and turns each import call into a load event that
is offered to the hooks in registration order.
"""

from __future__ import annotations

import builtins
import importlib
import importlib.util
import logging
import sys
import threading
from typing import TYPE_CHECKING, Any, Callable

from .resolver import ModuleDetails, describe

if TYPE_CHECKING:
    from .hook import Hook

logger = logging.getLogger(__name__)


def _absolute_name(name: str, globals: dict | None, level: int) -> str | None:
    if level == 0:
        return name

    package = None
    if globals:
        package = globals.get("__package__")
        if package is None and globals.get("__spec__") is not None:
            package = globals["__spec__"].parent
    if not package:
        return None

    try:
        return importlib.util.resolve_name("." * level + name, package)
    except ImportError:
        # the stock import raises the proper error for this
        return None


class ImportInterceptor:
    """Single interception point that fans load events out to hooks."""

    def __init__(self) -> None:
        self._hooks: list[Hook] = []
        self._local = threading.local()
        self._orig_import: Callable[..., Any] | None = None
        self._orig_import_module: Callable[..., Any] | None = None
        self._import_wrapper: Callable[..., Any] | None = None
        self._import_module_wrapper: Callable[..., Any] | None = None
        # name -> (module, details) of the last module described under that name
        self._details: dict[str, tuple[Any, ModuleDetails]] = {}
        # (parent, attribute, raw submodule, exports) bound by _publish
        self._published: list[tuple[Any, str, Any, Any]] = []

    @property
    def hooks(self) -> tuple[Hook, ...]:
        return tuple(self._hooks)

    @property
    def installed(self) -> bool:
        return self._import_wrapper is not None

    def _loading(self) -> set[str]:
        """Names whose import is in progress on this thread's stack."""
        loading = getattr(self._local, "loading", None)
        if loading is None:
            loading = self._local.loading = set()
        return loading

    def register(self, hook: Hook) -> None:
        if hook in self._hooks:
            return
        self._hooks.append(hook)
        self.install()

    def unregister(self, hook: Hook) -> None:
        if hook not in self._hooks:
            return
        self._hooks.remove(hook)
        # the remaining hooks republish their own values on the next import
        self._unpublish()
        if not self._hooks:
            self.uninstall()

    def install(self) -> None:
        if self.installed:
            return

        orig_import = builtins.__import__
        orig_import_module = importlib.import_module

        def __import__(name, globals=None, locals=None, fromlist=(), level=0):
            return self._import(orig_import, name, globals, locals, fromlist, level)

        def import_module(name, package=None):
            return self._import_module(orig_import_module, name, package)

        self._orig_import = orig_import
        self._orig_import_module = orig_import_module
        self._import_wrapper = __import__
        self._import_module_wrapper = import_module

        builtins.__import__ = __import__
        importlib.import_module = import_module
        logger.debug("import interception installed")

    def uninstall(self) -> None:
        if not self.installed:
            return

        self._unpublish()
        self._details.clear()

        # A wrapper layered over ours keeps a reference to it; leave ours in
        # place then; with no hooks registered it only passes calls through.
        if builtins.__import__ is self._import_wrapper:
            builtins.__import__ = self._orig_import
        else:
            logger.debug("builtins.__import__ was wrapped again, leaving it in place")
        if importlib.import_module is self._import_module_wrapper:
            importlib.import_module = self._orig_import_module
        else:
            logger.debug("importlib.import_module was wrapped again, leaving it in place")

        self._orig_import = None
        self._orig_import_module = None
        self._import_wrapper = None
        self._import_module_wrapper = None
        logger.debug("import interception removed")

    def _import(self, orig_import, name, globals, locals, fromlist, level):
        if not self._hooks:
            return orig_import(name, globals, locals, fromlist, level)

        fullname = _absolute_name(name, globals, level)
        if fullname is None:
            return orig_import(name, globals, locals, fromlist, level)

        loading = self._loading()
        if fullname in loading:
            # `from . import sub` inside a package's own __init__
            result = orig_import(name, globals, locals, fromlist, level)
            if fromlist:
                self._dispatch_fromlist(fullname, fromlist)
            return result

        loading.add(fullname)
        try:
            result = orig_import(name, globals, locals, fromlist, level)
        finally:
            loading.discard(fullname)

        if fromlist:
            self._dispatch_fromlist(fullname, fromlist)

        module = sys.modules.get(fullname)
        if module is None:
            return result
        exports = self.dispatch(module, fullname)
        if fromlist or result is module:
            return exports

        # `import a.b` hands back the top-level package; a.b is read off it
        self._publish(fullname, module, exports)
        top = getattr(result, "__name__", fullname.partition(".")[0])
        if top in loading:
            return result
        return self.dispatch(result, top)

    def _dispatch_fromlist(self, fullname: str, fromlist) -> None:
        """Fire events for submodules named in a `from pkg import ...` list."""
        loading = self._loading()
        for item in fromlist:
            if item == "*":
                continue
            subname = f"{fullname}.{item}"
            submodule = sys.modules.get(subname)
            if submodule is None or subname in loading:
                continue
            self._publish(subname, submodule, self.dispatch(submodule, subname))

    def _publish(self, name: str, module: Any, exports: Any) -> None:
        """Bind replaced exports on the parent package so attribute access agrees."""
        if exports is module:
            return
        parent_name, _, child = name.rpartition(".")
        parent = sys.modules.get(parent_name) if parent_name else None
        if parent is None or getattr(parent, child, None) is not module:
            return
        setattr(parent, child, exports)
        self._published.append((parent, child, module, exports))

    def _unpublish(self) -> None:
        """Put back raw submodules on packages that still carry our bindings."""
        while self._published:
            parent, child, module, exports = self._published.pop()
            if getattr(parent, child, None) is exports:
                setattr(parent, child, module)

    def _import_module(self, orig_import_module, name, package=None):
        if not self._hooks:
            return orig_import_module(name, package)

        try:
            fullname = importlib.util.resolve_name(name, package) if name.startswith(".") else name
        except ImportError:
            return orig_import_module(name, package)

        loading = self._loading()
        if fullname in loading:
            return orig_import_module(name, package)

        loading.add(fullname)
        try:
            module = orig_import_module(name, package)
        finally:
            loading.discard(fullname)

        exports = self.dispatch(module, fullname)
        self._publish(fullname, module, exports)
        return exports

    def _describe(self, module: Any, name: str) -> ModuleDetails:
        cached = self._details.get(name)
        if cached is not None and cached[0] is module:
            return cached[1]
        details = describe(module, name)
        self._details[name] = (module, details)
        return details

    def dispatch(self, module: Any, name: str) -> Any:
        """Offer one load of ``module`` to every registered hook, in order."""
        details = self._describe(module, name)
        exports = module
        for hook in tuple(self._hooks):
            exports = hook.on_module_load(details, exports)
        return exports


_interceptor = None


def get_interceptor() -> ImportInterceptor:
    """Get the process-wide interceptor instance."""
    global _interceptor
    if _interceptor is None:
        _interceptor = ImportInterceptor()
    return _interceptor
