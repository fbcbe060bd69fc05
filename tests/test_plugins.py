"""Tests for plugin resolution and loading."""

from __future__ import annotations

import pluggy
import pytest
from conftest import hook_plugin, recording_action

from jaws.config import PluginConfig
from jaws.errors import FrameworkNotReadyError, PluginLoadError
from jaws.framework import Framework
from jaws.plugins import PluginLoader, discover_factories, get_plugin_manager
from jaws.plugins.hookspecs import JawsSpec, hookimpl
from jaws.plugins.timing import timing_factory
from jaws.registry import NOT_IMPLEMENTED
from jaws.types import ActionName, HookPhase

MC = ActionName.MODULE_CREATE


class TestPluginLoader:
    async def test_load_order_defines_default_hook_order(self):
        factories = {"x": hook_plugin("X"), "y": hook_plugin("Y")}

        fw = Framework()
        PluginLoader(fw, factories=factories).load({"x": {}, "y": {}})
        result = await fw.run(MC)
        assert result.context["log"] == ["X", "Y"]

        fw = Framework()
        PluginLoader(fw, factories=factories).load({"y": {}, "x": {}})
        result = await fw.run(MC)
        assert result.context["log"] == ["Y", "X"]

    async def test_explicit_index_from_later_plugin_wins(self):
        def first_factory(config):
            def register(actions, hooks):
                hooks.register(MC, HookPhase.PRE, _named("late"), index=0)

            return register

        fw = Framework()
        PluginLoader(fw, factories={"x": hook_plugin("X"), "first": first_factory}).load(
            [("x", None), ("first", None)]
        )
        result = await fw.run(MC)
        assert result.context["log"] == ["late", "X"]

    def test_config_is_passed_to_factory(self):
        received = []

        def factory(config):
            received.append(config)
            return lambda actions, hooks: None

        fw = Framework()
        PluginLoader(fw, factories={"p": factory}).load({"p": {"label": "hi", "enabled": True}})
        assert received == [{"label": "hi"}]

    def test_plugin_config_model_options_are_passed(self):
        received = []

        def factory(config):
            received.append(config)
            return lambda actions, hooks: None

        fw = Framework()
        PluginLoader(fw, factories={"p": factory}).load({"p": PluginConfig(region="us-east-1")})
        assert received == [{"region": "us-east-1"}]

    def test_disabled_plugin_is_skipped(self):
        calls = []

        def factory(config):
            calls.append(config)
            return lambda actions, hooks: None

        fw = Framework()
        loaded = PluginLoader(fw, factories={"p": factory}).load({"p": {"enabled": False}})
        assert loaded == []
        assert calls == []

    @pytest.mark.parametrize("flag", ["false", "no", "0"])
    def test_string_enabled_flag_is_parsed(self, flag):
        calls = []

        def factory(config):
            calls.append(config)
            return lambda actions, hooks: None

        fw = Framework()
        loaded = PluginLoader(fw, factories={"p": factory}).load({"p": {"enabled": flag}})
        assert loaded == []
        assert calls == []

    def test_invalid_enabled_flag_is_a_load_error(self):
        fw = Framework()
        loader = PluginLoader(fw, factories={"p": lambda config: lambda actions, hooks: None})
        with pytest.raises(PluginLoadError, match="invalid config"):
            loader.load({"p": {"enabled": "sometimes"}})
        assert not fw.ready

    def test_unknown_plugin_raises_and_marks_framework_unusable(self):
        fw = Framework()
        with pytest.raises(PluginLoadError) as excinfo:
            PluginLoader(fw, factories={}).load({"missing": {}})
        assert excinfo.value.plugin == "missing"
        assert not fw.ready
        with pytest.raises(FrameworkNotReadyError):
            fw.ensure_ready()

    def test_factory_exception_is_wrapped(self):
        def factory(config):
            raise KeyError("region")

        fw = Framework()
        with pytest.raises(PluginLoadError) as excinfo:
            PluginLoader(fw, factories={"p": factory}).load({"p": {}})
        assert isinstance(excinfo.value.__cause__, KeyError)
        assert not fw.ready

    def test_register_exception_is_wrapped(self):
        def factory(config):
            def register(actions, hooks):
                actions.register("NotAnAction", recording_action())

            return register

        fw = Framework()
        with pytest.raises(PluginLoadError, match="Unknown action"):
            PluginLoader(fw, factories={"p": factory}).load({"p": {}})

    def test_factory_returning_non_callable_is_rejected(self):
        fw = Framework()
        with pytest.raises(PluginLoadError, match="not a callable"):
            PluginLoader(fw, factories={"p": lambda config: None}).load({"p": {}})

    def test_loading_stops_at_first_failure(self):
        calls = []

        def ok(config):
            calls.append("ok")
            return lambda actions, hooks: None

        fw = Framework()
        with pytest.raises(PluginLoadError):
            PluginLoader(fw, factories={"ok": ok}).load([("missing", {}), ("ok", {})])
        assert calls == []


class TestDiscovery:
    def test_plugin_manager_has_hookspecs(self):
        pm = get_plugin_manager()
        assert pm.project_name == "jaws"
        assert hasattr(pm.hook, "jaws_plugin_factories")

    def test_builtin_factories_are_discovered(self):
        factories = discover_factories()
        assert "scaffold" in factories
        assert factories["timing"] is timing_factory

    def test_third_party_provider_is_merged(self):
        class Extra:
            @hookimpl
            def jaws_plugin_factories(self):
                return {"extra": hook_plugin("E")}

        pm = pluggy.PluginManager("jaws")
        pm.add_hookspecs(JawsSpec)
        pm.register(Extra())
        assert list(discover_factories(pm)) == ["extra"]

    def test_first_registered_provider_wins_on_clash(self):
        first_factory = hook_plugin("first")
        second_factory = hook_plugin("second")

        class First:
            @hookimpl
            def jaws_plugin_factories(self):
                return {"dup": first_factory}

        class Second:
            @hookimpl
            def jaws_plugin_factories(self):
                return {"dup": second_factory}

        pm = pluggy.PluginManager("jaws")
        pm.add_hookspecs(JawsSpec)
        pm.register(First())
        pm.register(Second())
        assert discover_factories(pm)["dup"] is first_factory


class TestBuiltinPlugins:
    async def test_timing_plugin_records_elapsed_seconds(self):
        fw = Framework()
        fw.configure({"timing": {"actions": ["ModuleCreate"]}})
        fw.action(MC, recording_action("run"))

        result = await fw.run(MC)
        assert result.visited[0] == "pre:timing"
        assert result.context["timings"]["ModuleCreate"] >= 0
        assert fw.hooks.list(ActionName.DASH, HookPhase.PRE) == ()

    def test_timing_plugin_defaults_to_every_action(self):
        fw = Framework()
        fw.configure({"timing": {}})
        assert all(len(fw.hooks.list(a, HookPhase.PRE)) == 1 for a in ActionName)

    def test_scaffold_plugin_registers_action_bodies(self):
        fw = Framework()
        assert fw.actions.get(MC) is NOT_IMPLEMENTED
        fw.configure({"scaffold": {}})
        assert fw.actions.is_implemented(ActionName.PROJECT_CREATE)
        assert fw.actions.is_implemented(MC)

    def test_framework_plugin_applies_factory_directly(self):
        fw = Framework()
        fw.plugin(hook_plugin("X"))
        assert len(fw.hooks.list(MC, HookPhase.PRE)) == 1


def _named(label: str):
    async def hook(ctx, next):
        ctx.setdefault("log", []).append(label)
        return await next(ctx)

    hook.__name__ = label
    return hook
