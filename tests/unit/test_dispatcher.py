"""
Unit tests for the Dispatcher.

Tests cover:
- Envelope shapes for success, validation, unknown, disabled and soft failures
- Pre-hook veto and parameter overrides
- Post-hooks observing without changing the result
- Agent dispatch
"""

import logging
import re

import pytest

from stm32n6_dev.dispatcher import Dispatcher
from stm32n6_dev.hooks import HookContext, HookDefinition, HookOutcome
from stm32n6_dev.schema import HookTiming, HookTrigger


def hook(name, handler, target="*", priority=0, timing=HookTiming.PRE, trigger=HookTrigger.TOOL):
    return HookDefinition(
        name=name,
        timing=timing,
        trigger=trigger,
        target=target,
        priority=priority,
        handler=handler,
    )


@pytest.fixture
def dispatcher(bare_server, echo_tool, soft_fail_tool, exploding_tool, keyword_agent) -> Dispatcher:
    bare_server.tools.register(echo_tool)
    bare_server.tools.register(soft_fail_tool)
    bare_server.tools.register(exploding_tool)
    bare_server.agents.register(keyword_agent)
    return Dispatcher(bare_server)


class TestDispatchTool:
    """Tests for Dispatcher.dispatch_tool()."""

    async def test_success(self, dispatcher) -> None:
        envelope = await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert envelope.success
        assert envelope.data == {"success": True, "echo": "hi"}

    async def test_none_params(self, dispatcher) -> None:
        envelope = await dispatcher.dispatch_tool("echo", None)
        assert not envelope.success
        assert envelope.error.code == "invalid-input"

    async def test_unknown_tool(self, dispatcher) -> None:
        envelope = await dispatcher.dispatch_tool("nope", {})
        assert not envelope.success
        assert envelope.error.code == "unknown-capability"
        assert envelope.error.category == "validation"
        assert envelope.error.suggestions == ["echo", "soft_fail", "explode"]

    async def test_disabled_tool(self, dispatcher, echo_tool) -> None:
        dispatcher.server.tools.set_enabled("echo", False)
        envelope = await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert envelope.error.code == "disabled-capability"
        assert echo_tool.calls == []

    async def test_exception_is_internal_error(self, dispatcher) -> None:
        envelope = await dispatcher.dispatch_tool("explode", {"message": "x"})
        assert envelope.error.code == "internal-error"
        assert envelope.error.message == "boom"

    async def test_soft_failure(self, dispatcher) -> None:
        """A domain failure keeps its payload next to the error."""
        envelope = await dispatcher.dispatch_tool("soft_fail", {"message": "x"})
        assert not envelope.success
        assert envelope.error.code == "capability-failed"
        assert envelope.error.category == "execution"
        assert envelope.error.message == "cannot handle x"
        assert envelope.data["attempted"] == "x"

    async def test_caller_params_not_mutated(self, dispatcher) -> None:
        dispatcher.server.hooks.register(
            hook("override", lambda ctx: HookOutcome(modified_params={"repeat": 3}))
        )
        params = {"message": "hi"}
        await dispatcher.dispatch_tool("echo", params)
        assert params == {"message": "hi"}


class TestDispatchHooks:
    """Tests for hook integration."""

    async def test_veto_never_runs_tool(self, dispatcher, echo_tool) -> None:
        dispatcher.server.hooks.register(
            hook(
                "guard",
                lambda ctx: HookOutcome(proceed=False, error="blocked", suggestions=["ask"]),
                target="echo",
            )
        )
        envelope = await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert envelope.error.code == "hook-vetoed"
        assert envelope.error.category == "hook"
        assert envelope.error.message == "blocked"
        assert envelope.error.suggestions == ["ask"]
        assert echo_tool.calls == []

    async def test_veto_without_message(self, dispatcher) -> None:
        dispatcher.server.hooks.register(hook("guard", lambda ctx: HookOutcome(proceed=False)))
        envelope = await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert envelope.error.message == "Pre-hook blocked execution"
        assert envelope.error.suggestions == []

    async def test_modified_params_applied(self, dispatcher, echo_tool) -> None:
        dispatcher.server.hooks.register(
            hook("override", lambda ctx: HookOutcome(modified_params={"repeat": 2}))
        )
        envelope = await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert envelope.data["echo"] == "hi hi"
        assert echo_tool.calls[0].repeat == 2

    async def test_pre_hook_sees_environment_and_project_path(self, dispatcher) -> None:
        seen: list[HookContext] = []
        dispatcher.server.hooks.register(hook("spy", lambda ctx: seen.append(ctx)))
        await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert seen[0].params == {"message": "hi"}
        assert seen[0].environment == {"STM32N6_TEST": "1"}
        assert seen[0].project_path == dispatcher.server.working_directory
        assert seen[0].result is None

    async def test_post_hook_receives_unwrapped_result(self, dispatcher) -> None:
        seen: list[HookContext] = []
        dispatcher.server.hooks.register(
            hook("spy", lambda ctx: seen.append(ctx), timing=HookTiming.POST)
        )
        await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert seen[0].result == {"success": True, "echo": "hi"}

    async def test_post_hook_veto_does_not_change_result(self, dispatcher, caplog) -> None:
        dispatcher.server.hooks.register(
            hook("late", lambda ctx: HookOutcome(proceed=False), timing=HookTiming.POST)
        )
        with caplog.at_level(logging.WARNING, logger="stm32n6_dev.dispatcher"):
            envelope = await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert envelope.success
        assert "result unchanged" in caplog.text

    async def test_post_hook_exception_does_not_change_result(self, dispatcher) -> None:
        def broken(ctx: HookContext) -> None:
            raise RuntimeError("post failure")

        dispatcher.server.hooks.register(hook("broken", broken, timing=HookTiming.POST))
        envelope = await dispatcher.dispatch_tool("echo", {"message": "hi"})
        assert envelope.success

    async def test_post_hooks_run_for_failures(self, dispatcher) -> None:
        seen: list[object] = []
        dispatcher.server.hooks.register(
            hook("spy", lambda ctx: seen.append(ctx.result), timing=HookTiming.POST)
        )
        await dispatcher.dispatch_tool("soft_fail", {"message": "x"})
        assert seen[0]["success"] is False

    async def test_tool_hooks_do_not_fire_for_agents(self, dispatcher) -> None:
        dispatcher.server.hooks.register(
            hook("tool-guard", lambda ctx: HookOutcome(proceed=False), target=re.compile("agent"))
        )
        envelope = await dispatcher.dispatch_agent("keyword-agent", {"task": "tune"})
        assert envelope.success


class TestDispatchAgent:
    """Tests for Dispatcher.dispatch_agent()."""

    async def test_success(self, dispatcher) -> None:
        envelope = await dispatcher.dispatch_agent("keyword-agent", {"task": "tune widgets"})
        assert envelope.success
        assert envelope.data["message"] == "handled: tune widgets"

    async def test_unknown_agent(self, dispatcher) -> None:
        envelope = await dispatcher.dispatch_agent("ghost", {"task": "x"})
        assert envelope.error.code == "unknown-capability"
        assert envelope.error.message == "Unknown agent: ghost"

    async def test_agent_hook_veto(self, dispatcher) -> None:
        dispatcher.server.hooks.register(
            hook(
                "agent-guard",
                lambda ctx: HookOutcome(proceed=False, error="agents paused"),
                trigger=HookTrigger.AGENT,
            )
        )
        envelope = await dispatcher.dispatch_agent("keyword-agent", {"task": "x"})
        assert envelope.error.code == "hook-vetoed"
        assert envelope.error.message == "agents paused"
