"""
Unit tests for the hook engine and the built-in hooks.

Tests cover:
- Target matching: exact, wildcard and regular expression
- Priority ordering and stable ties
- Veto short-circuit
- Exception isolation
- Outcome merging
- Built-in hook behavior
"""

import logging
import re

import pytest

from stm32n6_dev.hooks import (
    BUILTIN_HOOKS,
    HookContext,
    HookDefinition,
    HookEngine,
    HookOutcome,
    register_builtin_hooks,
)
from stm32n6_dev.hooks.builtin import (
    analyze_build_output,
    check_target_connection,
    log_flash_result,
    validate_project,
)
from stm32n6_dev.schema import HookTiming, HookTrigger


def make_hook(
    name: str,
    handler,
    target="*",
    priority: int = 0,
    timing: HookTiming = HookTiming.PRE,
    trigger: HookTrigger = HookTrigger.TOOL,
) -> HookDefinition:
    return HookDefinition(
        name=name,
        timing=timing,
        trigger=trigger,
        target=target,
        priority=priority,
        handler=handler,
    )


def recorder(calls: list[str], name: str, outcome: HookOutcome | None = None):
    def handler(context: HookContext) -> HookOutcome | None:
        calls.append(name)
        return outcome

    return handler


# =============================================================================
# Matching
# =============================================================================


class TestHookMatching:
    """Tests for HookDefinition.matches()."""

    def test_exact_name(self) -> None:
        hook = make_hook("h", None, target="stm32_build")
        assert hook.matches(HookTiming.PRE, HookTrigger.TOOL, "stm32_build")
        assert not hook.matches(HookTiming.PRE, HookTrigger.TOOL, "stm32_build_all")

    def test_wildcard(self) -> None:
        hook = make_hook("h", None)
        assert hook.matches(HookTiming.PRE, HookTrigger.TOOL, "anything")

    def test_timing_and_trigger_must_match(self) -> None:
        hook = make_hook("h", None)
        assert not hook.matches(HookTiming.POST, HookTrigger.TOOL, "x")
        assert not hook.matches(HookTiming.PRE, HookTrigger.AGENT, "x")

    def test_pattern_uses_search(self) -> None:
        """Patterns are searched, so unanchored ones match anywhere."""
        hook = make_hook("h", None, target=re.compile("flash"))
        assert hook.matches(HookTiming.PRE, HookTrigger.TOOL, "stm32_flash")
        anchored = make_hook("h", None, target=re.compile(r"^restricted_"))
        assert anchored.matches(HookTiming.PRE, HookTrigger.TOOL, "restricted_erase")
        assert not anchored.matches(HookTiming.PRE, HookTrigger.TOOL, "not_restricted_erase")


# =============================================================================
# Engine
# =============================================================================


class TestHookEngine:
    """Tests for HookEngine.execute()."""

    async def test_no_hooks_proceeds(self) -> None:
        outcome = await HookEngine().execute(HookTiming.PRE, HookTrigger.TOOL, "x", HookContext())
        assert outcome == HookOutcome()

    async def test_priority_order(self) -> None:
        calls: list[str] = []
        engine = HookEngine()
        engine.register(make_hook("low", recorder(calls, "low"), priority=1))
        engine.register(make_hook("high", recorder(calls, "high"), priority=10))
        engine.register(make_hook("mid", recorder(calls, "mid"), priority=5))
        await engine.execute(HookTiming.PRE, HookTrigger.TOOL, "x", HookContext())
        assert calls == ["high", "mid", "low"]

    async def test_equal_priority_keeps_registration_order(self) -> None:
        calls: list[str] = []
        engine = HookEngine()
        for name in ["first", "second", "third"]:
            engine.register(make_hook(name, recorder(calls, name), priority=7))
        await engine.execute(HookTiming.PRE, HookTrigger.TOOL, "x", HookContext())
        assert calls == ["first", "second", "third"]

    async def test_veto_stops_chain(self) -> None:
        calls: list[str] = []
        engine = HookEngine()
        engine.register(
            make_hook("veto", recorder(calls, "veto", HookOutcome(proceed=False, error="no")), priority=10)
        )
        engine.register(make_hook("later", recorder(calls, "later"), priority=1))
        outcome = await engine.execute(HookTiming.PRE, HookTrigger.TOOL, "x", HookContext())
        assert not outcome.proceed
        assert outcome.error == "no"
        assert calls == ["veto"]

    async def test_exception_is_isolated(self, caplog: pytest.LogCaptureFixture) -> None:
        """A raising hook is logged and the chain continues."""
        calls: list[str] = []

        def broken(context: HookContext) -> HookOutcome:
            raise RuntimeError("hook failure")

        engine = HookEngine()
        engine.register(make_hook("broken", broken, priority=10))
        engine.register(make_hook("after", recorder(calls, "after", HookOutcome(metadata={"ok": True}))))

        with caplog.at_level(logging.ERROR, logger="stm32n6_dev.hooks.engine"):
            outcome = await engine.execute(HookTiming.PRE, HookTrigger.TOOL, "x", HookContext())

        assert outcome.proceed
        assert outcome.metadata == {"ok": True}
        assert calls == ["after"]
        assert "Hook broken failed" in caplog.text

    async def test_malformed_outcome_is_isolated(self, caplog: pytest.LogCaptureFixture) -> None:
        """A handler returning something other than an outcome is logged and skipped."""
        calls: list[str] = []

        def malformed(context: HookContext) -> dict:
            calls.append("malformed")
            return {"proceed": True, "suggestions": ["x"]}

        engine = HookEngine()
        engine.register(make_hook("malformed", malformed, priority=100))
        engine.register(make_hook("good", recorder(calls, "good", HookOutcome(suggestions=["y"])), priority=50))

        with caplog.at_level(logging.ERROR, logger="stm32n6_dev.hooks.engine"):
            outcome = await engine.execute(HookTiming.PRE, HookTrigger.TOOL, "x", HookContext())

        assert outcome.proceed
        assert outcome.suggestions == ["y"]
        assert calls == ["malformed", "good"]
        assert "Hook malformed failed" in caplog.text

    async def test_async_handlers_are_awaited(self) -> None:
        async def handler(context: HookContext) -> HookOutcome:
            return HookOutcome(metadata={"seen": context.params["a"]})

        engine = HookEngine()
        engine.register(make_hook("async", handler))
        outcome = await engine.execute(
            HookTiming.PRE, HookTrigger.TOOL, "x", HookContext(params={"a": 1})
        )
        assert outcome.metadata == {"seen": 1}

    async def test_outcomes_are_merged(self) -> None:
        engine = HookEngine()
        engine.register(
            make_hook(
                "first",
                lambda ctx: HookOutcome(
                    suggestions=["s1"],
                    modified_params={"a": 1, "b": 1},
                    metadata={"k": "first"},
                ),
                priority=2,
            )
        )
        engine.register(
            make_hook(
                "second",
                lambda ctx: HookOutcome(
                    suggestions=["s2"],
                    modified_params={"b": 2},
                    metadata={"k": "second"},
                ),
                priority=1,
            )
        )
        outcome = await engine.execute(HookTiming.PRE, HookTrigger.TOOL, "x", HookContext())
        assert outcome.suggestions == ["s1", "s2"]
        assert outcome.modified_params == {"a": 1, "b": 2}
        assert outcome.metadata == {"k": "second"}

    async def test_non_matching_hooks_skipped(self) -> None:
        calls: list[str] = []
        engine = HookEngine()
        engine.register(make_hook("other", recorder(calls, "other"), target="other_tool"))
        engine.register(make_hook("agent", recorder(calls, "agent"), trigger=HookTrigger.AGENT))
        await engine.execute(HookTiming.PRE, HookTrigger.TOOL, "x", HookContext())
        assert calls == []

    def test_unregister_removes_first_match(self) -> None:
        engine = HookEngine()
        engine.register(make_hook("dup", lambda ctx: None, priority=2))
        engine.register(make_hook("dup", lambda ctx: None, priority=1))
        assert engine.unregister("dup")
        assert [h.priority for h in engine.list_all()] == [1]
        assert engine.unregister("dup")
        assert not engine.unregister("dup")

    def test_clear(self) -> None:
        engine = HookEngine()
        register_builtin_hooks(engine)
        assert len(engine) == len(BUILTIN_HOOKS)
        engine.clear()
        assert len(engine) == 0


class TestHookOutcomeMerge:
    """Tests for HookOutcome.merge()."""

    def test_proceed_is_anded(self) -> None:
        assert not HookOutcome().merge(HookOutcome(proceed=False)).proceed
        assert not HookOutcome(proceed=False).merge(HookOutcome()).proceed

    def test_later_error_wins_only_when_set(self) -> None:
        assert HookOutcome(error="a").merge(HookOutcome(error="b")).error == "b"
        assert HookOutcome(error="a").merge(HookOutcome()).error == "a"

    def test_merge_does_not_mutate(self) -> None:
        base = HookOutcome(suggestions=["x"])
        base.merge(HookOutcome(suggestions=["y"]))
        assert base.suggestions == ["x"]


# =============================================================================
# Built-in Hooks
# =============================================================================


class TestBuiltinHooks:
    """Tests for the hooks registered on every server."""

    async def test_validate_project_vetoes_without_path(self) -> None:
        outcome = await validate_project(HookContext(params={}))
        assert not outcome.proceed
        assert outcome.error == "Project path is required"
        assert outcome.suggestions == ["Specify the project_path parameter"]

    async def test_validate_project_vetoes_empty_path(self) -> None:
        outcome = await validate_project(HookContext(params={"project_path": ""}))
        assert not outcome.proceed

    async def test_validate_project_allows_path(self) -> None:
        outcome = await validate_project(HookContext(params={"project_path": "fw"}))
        assert outcome.proceed

    async def test_analyze_build_output_counts_warnings(self) -> None:
        result = {"success": True, "warnings": ["w1", "w2"]}
        outcome = await analyze_build_output(HookContext(result=result))
        assert outcome.suggestions == ["Build completed with 2 warnings"]

    async def test_analyze_build_output_ignores_clean_and_failed_builds(self) -> None:
        assert (await analyze_build_output(HookContext(result={"success": True, "warnings": []}))).suggestions == []
        assert (await analyze_build_output(HookContext(result={"success": False, "warnings": ["w"]}))).suggestions == []
        assert (await analyze_build_output(HookContext(result="text"))).suggestions == []

    async def test_check_target_connection_sets_metadata(self) -> None:
        outcome = await check_target_connection(HookContext())
        assert outcome.proceed
        assert outcome.metadata == {"probe_status": "connected"}

    async def test_log_flash_result(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="stm32n6_dev.hooks.builtin"):
            outcome = await log_flash_result(HookContext(result={"success": True, "bytes_written": 1024}))
        assert outcome.proceed
        assert "Flash completed: 1024 bytes written" in caplog.text

    def test_builtin_table(self) -> None:
        """The connection check covers flash and debug, nothing else."""
        by_name = {hook.name: hook for hook in BUILTIN_HOOKS}
        assert set(by_name) == {
            "validate_project",
            "analyze_build_output",
            "check_target_connection",
            "log_flash_result",
        }
        connection = by_name["check_target_connection"]
        assert connection.matches(HookTiming.PRE, HookTrigger.TOOL, "stm32_flash")
        assert connection.matches(HookTiming.PRE, HookTrigger.TOOL, "stm32_debug")
        assert not connection.matches(HookTiming.PRE, HookTrigger.TOOL, "stm32_build")
        assert by_name["validate_project"].priority == 100
        assert by_name["analyze_build_output"].timing == HookTiming.POST
