"""
Tests for the hook load-interception protocol, driven without real imports.
"""

from types import SimpleNamespace

import pytest
from pydantic import ValidationError
from modhook import local_config
from modhook.cache import PROCESSED_UNPATCHED, EntryState, ModuleIdentity
from modhook.hook import Hook
from modhook.interceptor import ImportInterceptor
from modhook.local_config import LocalConfigLoader
from modhook.resolver import ModuleDetails


def make_details(name="circular", filename=None, core=False, basedir="/site-packages/circular"):
    filename = filename or f"/site-packages/{name.replace('.', '/')}.py"
    return ModuleDetails(name, ModuleIdentity(filename, core), name.partition(".")[0], basedir)


class Recorder:
    """Transform that records its calls and returns a fixed result."""

    def __init__(self, result=None):
        self.calls = []
        self.result = result

    def __call__(self, exports, name, basedir):
        self.calls.append((exports, name, basedir))
        return exports if self.result is None else self.result


@pytest.fixture
def interceptor():
    interceptor = ImportInterceptor()
    yield interceptor
    for hook in interceptor.hooks:
        hook.unhook()


class TestSingleInvocation:
    def test_transform_runs_once_across_loads(self, interceptor):
        transform = Recorder(result={"patched": True})
        hook = Hook(["circular"], transform, interceptor=interceptor)
        details = make_details()
        raw = {"foo": 1}

        results = [hook.on_module_load(details, raw) for _ in range(3)]

        assert len(transform.calls) == 1
        assert all(result is transform.result for result in results)

    def test_transform_gets_exports_name_and_basedir(self, interceptor):
        transform = Recorder()
        hook = Hook(["circular"], transform, interceptor=interceptor)
        raw = {"foo": 1}

        hook.on_module_load(make_details(), raw)

        assert transform.calls == [(raw, "circular", "/site-packages/circular")]

    def test_cache_holds_value_returned_to_loader(self, interceptor):
        hook = Hook(["circular"], Recorder(), interceptor=interceptor)
        details = make_details()
        raw = {"foo": 1}

        returned = hook.on_module_load(details, raw)

        assert hook.cache.has(details.identity.filename, False)
        assert hook.cache.get(details.identity.filename, False) is returned is raw

    def test_none_result_keeps_exports(self, interceptor):
        hook = Hook(["circular"], lambda exports, name, basedir: None, interceptor=interceptor)
        raw = {"foo": 1}

        assert hook.on_module_load(make_details(), raw) is raw
        assert hook.cache.get(make_details().identity) is raw


class TestReentrancy:
    def test_nested_load_sees_raw_exports(self, interceptor):
        details = make_details()
        raw = {"foo": 1}
        patched = {"foo": 2}
        nested = []

        def transform(exports, name, basedir):
            assert hook.cache.get(details.identity) is PROCESSED_UNPATCHED
            nested.append(hook.on_module_load(details, exports))
            return patched

        hook = Hook(["circular"], transform, interceptor=interceptor)

        assert hook.on_module_load(details, raw) is patched
        assert nested == [raw]
        assert hook.cache.get(details.identity) is patched

    def test_nested_load_does_not_recurse(self, interceptor):
        details = make_details()
        depth = []

        def transform(exports, name, basedir):
            depth.append(name)
            hook.on_module_load(details, exports)
            return exports

        hook = Hook(["circular"], transform, interceptor=interceptor)
        hook.on_module_load(details, {"foo": 1})

        assert depth == ["circular"]


class TestEligibility:
    def test_unmatched_module_gets_placeholder(self, interceptor):
        transform = Recorder()
        hook = Hook(["circular"], transform, interceptor=interceptor)
        details = make_details("other")
        raw = object()

        assert hook.on_module_load(details, raw) is raw
        assert hook.on_module_load(details, raw) is raw
        assert transform.calls == []
        assert hook.cache.get(details.identity) is PROCESSED_UNPATCHED

    def test_internal_module_skipped_without_internals(self, interceptor):
        transform = Recorder()
        hook = Hook(["internal"], transform, {"internals": False}, interceptor=interceptor)
        details = make_details("internal.lib.a")

        hook.on_module_load(details, object())

        assert transform.calls == []
        assert hook.cache.has(details.identity.filename, False)
        assert hook.cache.get(details.identity.filename, False) is PROCESSED_UNPATCHED

    def test_internal_module_hooked_with_internals(self, interceptor):
        transform = Recorder()
        hook = Hook(["internal"], transform, interceptor=interceptor)

        hook.on_module_load(make_details("internal.lib.a"), object())

        assert [name for _, name, _ in transform.calls] == ["internal.lib.a"]

    def test_explicit_submodule_ignores_internals_option(self, interceptor):
        transform = Recorder()
        hook = Hook(["internal.lib.a"], transform, {"internals": False}, interceptor=interceptor)

        hook.on_module_load(make_details("internal.lib.a"), object())

        assert len(transform.calls) == 1

    def test_all_modules_when_unfiltered(self, interceptor):
        transform = Recorder()
        hook = Hook(transform, interceptor=interceptor)

        hook.on_module_load(make_details("anything"), object())
        hook.on_module_load(make_details("json", filename="json", core=True, basedir=None), object())

        assert [name for _, name, _ in transform.calls] == ["anything", "json"]

    def test_unfiltered_hook_skips_internals_when_disabled(self, interceptor):
        transform = Recorder()
        hook = Hook(None, transform, {"internals": False}, interceptor=interceptor)

        hook.on_module_load(make_details("pkg.sub"), object())
        hook.on_module_load(make_details("pkg"), object())

        assert [name for _, name, _ in transform.calls] == ["pkg"]

    def test_match_by_absolute_filename(self, interceptor):
        transform = Recorder()
        details = make_details("scripts.tool", filename="/work/scripts/tool.py")
        hook = Hook(["/work/scripts/tool.py"], transform, interceptor=interceptor)

        hook.on_module_load(details, object())

        assert [name for _, name, _ in transform.calls] == ["/work/scripts/tool.py"]

    def test_single_string_module(self, interceptor):
        hook = Hook("circular", Recorder(), interceptor=interceptor)

        assert hook.modules == frozenset({"circular"})


class TestTransformFailure:
    def test_failure_propagates_and_is_not_retried(self, interceptor):
        calls = []

        def transform(exports, name, basedir):
            calls.append(name)
            raise RuntimeError("boom")

        hook = Hook(["circular"], transform, interceptor=interceptor)
        details = make_details()
        raw = {"foo": 1}

        with pytest.raises(RuntimeError, match="boom"):
            hook.on_module_load(details, raw)

        assert hook.cache.state(details.identity) is EntryState.PLACEHOLDER
        assert hook.on_module_load(details, raw) is raw
        assert calls == ["circular"]


class TestUnhook:
    def test_unhooked_hook_passes_everything_through(self, interceptor):
        transform = Recorder(result="patched")
        hook = Hook(["circular"], transform, interceptor=interceptor)
        details = make_details()
        hook.on_module_load(details, "raw")

        hook.unhook()

        assert hook.unhooked
        assert hook.on_module_load(details, "raw") == "raw"
        assert len(hook.cache) == 0
        assert hook not in interceptor.hooks

    def test_unhook_inside_transform_leaves_cache_empty(self, interceptor):
        def transform(exports, name, basedir):
            hook.unhook()
            return "patched"

        hook = Hook(["circular"], transform, interceptor=interceptor)

        assert hook.on_module_load(make_details(), "raw") == "patched"
        assert hook.unhooked
        assert len(hook.cache) == 0

    def test_double_unhook_is_harmless(self, interceptor):
        hook = Hook(["circular"], Recorder(), interceptor=interceptor)

        hook.unhook()
        hook.unregister()

        assert hook.unhooked

    def test_context_manager_unhooks(self, interceptor):
        with Hook(["circular"], Recorder(), interceptor=interceptor) as hook:
            assert hook in interceptor.hooks
        assert hook.unhooked

    def test_fresh_hook_starts_empty(self, interceptor):
        details = make_details()
        first = Recorder()
        with Hook(["circular"], first, interceptor=interceptor) as hook:
            hook.on_module_load(details, "raw")

        second = Recorder()
        with Hook(["circular"], second, interceptor=interceptor) as hook:
            assert not hook.cache.has(details.identity)
            hook.on_module_load(details, "raw")

        assert len(first.calls) == len(second.calls) == 1


class TestOptions:
    def test_requires_a_transform(self, interceptor):
        with pytest.raises(TypeError):
            Hook(["circular"], interceptor=interceptor)

    def test_unknown_option_rejected(self, interceptor):
        with pytest.raises(ValidationError):
            Hook(["circular"], Recorder(), {"internal": False}, interceptor=interceptor)

    def test_defaults_come_from_config(self, interceptor, monkeypatch, tmp_path):
        loader = LocalConfigLoader(project_root=tmp_path, environ={"MODHOOK_INTERNALS": "off"})
        monkeypatch.setattr(local_config, "_config_loader", loader)

        hook = Hook(["circular"], Recorder(), interceptor=interceptor)

        assert hook.options.internals is False

    def test_explicit_option_beats_config(self, interceptor, monkeypatch, tmp_path):
        loader = LocalConfigLoader(project_root=tmp_path, environ={"MODHOOK_INTERNALS": "off"})
        monkeypatch.setattr(local_config, "_config_loader", loader)

        hook = Hook(["circular"], Recorder(), {"internals": True}, interceptor=interceptor)

        assert hook.options.internals is True

    def test_repr(self, interceptor):
        hook = Hook(["b", "a"], Recorder(), interceptor=interceptor)

        assert repr(hook) == "<Hook a, b (active)>"
        hook.unhook()
        assert repr(hook) == "<Hook a, b (unhooked)>"


def test_two_hooks_keep_separate_caches(interceptor):
    details = make_details()
    first = Hook(["circular"], Recorder(result=SimpleNamespace(layer=1)), interceptor=interceptor)
    second = Hook(["circular"], Recorder(result=SimpleNamespace(layer=2)), interceptor=interceptor)

    first.on_module_load(details, "raw")

    assert first.cache.has(details.identity)
    assert not second.cache.has(details.identity)
