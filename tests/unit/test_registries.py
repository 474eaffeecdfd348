"""
Unit tests for the tool and agent registries.

Tests cover:
- Registration, duplicate rejection and unregistration
- Enabled gating for tools
- Category grouping
- Execution through the registry, including unknown names
- Keyword-based agent selection
"""

import pytest

from stm32n6_dev.agents import AgentRegistry
from stm32n6_dev.errors import DuplicateCapabilityError
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.tools import ToolRegistry


# =============================================================================
# Tool Registry
# =============================================================================


class TestToolRegistryRegistration:
    """Tests for registering and looking up tools."""

    def test_register_and_get(self, echo_tool) -> None:
        registry = ToolRegistry()
        registry.register(echo_tool)
        assert registry.get("echo") is echo_tool
        assert "echo" in registry
        assert len(registry) == 1
        assert registry.count() == 1

    def test_get_unknown_returns_none(self) -> None:
        assert ToolRegistry().get("missing") is None

    def test_duplicate_raises(self, make_echo_tool) -> None:
        """Registering a name twice is a startup error."""
        registry = ToolRegistry()
        registry.register(make_echo_tool())
        with pytest.raises(DuplicateCapabilityError) as exc_info:
            registry.register(make_echo_tool())
        assert exc_info.value.name == "echo"
        assert exc_info.value.kind == "tool"
        assert registry.count() == 1
        assert len(registry) == 1

    def test_unregister(self, echo_tool) -> None:
        registry = ToolRegistry()
        registry.register(echo_tool)
        assert registry.unregister("echo") is True
        assert registry.unregister("echo") is False
        assert "echo" not in registry

    def test_list_keeps_registration_order(self, make_echo_tool) -> None:
        registry = ToolRegistry()
        for name in ["b", "a", "c"]:
            registry.register(make_echo_tool(name))
        assert [t.name for t in registry.list_all()] == ["b", "a", "c"]
        assert [t.name for t in registry] == ["b", "a", "c"]

    def test_repr(self, echo_tool) -> None:
        registry = ToolRegistry()
        registry.register(echo_tool)
        assert repr(registry) == "<ToolRegistry: [echo]>"


class TestToolRegistryEnabled:
    """Tests for enabled gating."""

    def test_new_tools_are_enabled(self, echo_tool) -> None:
        registry = ToolRegistry()
        registry.register(echo_tool)
        assert registry.is_available("echo")

    def test_disable_hides_from_enabled_listings(self, make_echo_tool) -> None:
        registry = ToolRegistry()
        registry.register(make_echo_tool("one"))
        registry.register(make_echo_tool("two"))
        registry.set_enabled("one", False)
        assert not registry.is_available("one")
        assert [t.name for t in registry.list_enabled()] == ["two"]
        assert [t.name for t in registry.list_all()] == ["one", "two"]

    def test_set_enabled_unknown_is_ignored(self) -> None:
        registry = ToolRegistry()
        registry.set_enabled("missing", False)
        assert not registry.is_available("missing")

    def test_reenable(self, echo_tool) -> None:
        registry = ToolRegistry()
        registry.register(echo_tool)
        registry.set_enabled("echo", False)
        registry.set_enabled("echo", True)
        assert registry.is_available("echo")


class TestToolRegistryCategories:
    """Tests for category grouping."""

    def test_get_by_category_has_every_key(self, echo_tool, soft_fail_tool) -> None:
        registry = ToolRegistry()
        registry.register(echo_tool)
        registry.register(soft_fail_tool)
        grouped = registry.get_by_category()
        assert set(grouped) == set(CapabilityCategory)
        assert grouped[CapabilityCategory.ANALYSIS] == [echo_tool]
        assert grouped[CapabilityCategory.BUILD] == [soft_fail_tool]
        assert grouped[CapabilityCategory.DEPLOY] == []

    def test_disabled_tools_excluded(self, echo_tool) -> None:
        registry = ToolRegistry()
        registry.register(echo_tool)
        registry.set_enabled("echo", False)
        assert registry.list_by_category(CapabilityCategory.ANALYSIS) == []


class TestToolRegistryExecute:
    """Tests for ToolRegistry.execute()."""

    async def test_execute_unwraps_json(self, bare_server, echo_tool) -> None:
        bare_server.tools.register(echo_tool)
        result = await bare_server.tools.execute("echo", {"message": "hi"}, bare_server)
        assert result == {"success": True, "echo": "hi"}

    async def test_unknown_lists_available(self, bare_server, make_echo_tool) -> None:
        """Unknown names come back as an error payload, never an exception."""
        bare_server.tools.register(make_echo_tool("alpha"))
        bare_server.tools.register(make_echo_tool("beta"))
        result = await bare_server.tools.execute("gamma", {}, bare_server)
        assert result["success"] is False
        assert result["error"]["code"] == "unknown-capability"
        assert result["error"]["message"] == "Unknown tool: gamma"
        assert result["error"]["suggestions"] == ["alpha", "beta"]

    async def test_disabled_never_runs(self, bare_server, echo_tool) -> None:
        bare_server.tools.register(echo_tool)
        bare_server.tools.set_enabled("echo", False)
        result = await bare_server.tools.execute("echo", {"message": "hi"}, bare_server)
        assert result["error"]["code"] == "disabled-capability"
        assert echo_tool.calls == []

    async def test_validation_error_payload(self, bare_server, echo_tool) -> None:
        bare_server.tools.register(echo_tool)
        result = await bare_server.tools.execute("echo", {"repeat": 0}, bare_server)
        assert result["error"]["code"] == "invalid-input"
        paths = {d["path"] for d in result["error"]["details"]}
        assert paths == {"message", "repeat"}


# =============================================================================
# Agent Registry
# =============================================================================


class TestAgentRegistry:
    """Tests for AgentRegistry."""

    def test_register_and_definitions(self, keyword_agent) -> None:
        registry = AgentRegistry()
        registry.register(keyword_agent)
        assert registry.get("keyword-agent") is keyword_agent
        assert registry.count() == 1
        assert registry.list_definitions() == [
            {
                "name": "keyword-agent",
                "description": "Test agent",
                "category": "analysis",
                "capabilities": ["widgets"],
                "expertise": ["gadget-tuning"],
            }
        ]

    def test_duplicate_raises(self, keyword_agent) -> None:
        registry = AgentRegistry()
        registry.register(keyword_agent)
        with pytest.raises(DuplicateCapabilityError) as exc_info:
            registry.register(keyword_agent)
        assert exc_info.value.kind == "agent"
        assert registry.count() == 1
        assert registry.get("keyword-agent") is keyword_agent

    def test_unregister(self, keyword_agent) -> None:
        registry = AgentRegistry()
        registry.register(keyword_agent)
        assert registry.unregister("keyword-agent")
        assert not registry.unregister("keyword-agent")

    def test_select_matches_case_insensitively(self, keyword_agent) -> None:
        registry = AgentRegistry()
        registry.register(keyword_agent)
        assert registry.select_agents_for_task("Order more WIDGETS") == [keyword_agent]
        assert registry.select_agents_for_task("help with gadget-tuning") == [keyword_agent]
        assert registry.select_agents_for_task("nothing relevant") == []

    async def test_execute(self, bare_server, keyword_agent) -> None:
        bare_server.agents.register(keyword_agent)
        result = await bare_server.agents.execute(
            "keyword-agent",
            {"task": "tune", "parameters": {"x": 1}},
            bare_server,
        )
        assert result == {
            "success": True,
            "message": "handled: tune",
            "data": {"parameters": {"x": 1}},
        }

    async def test_execute_unknown(self, bare_server, keyword_agent) -> None:
        bare_server.agents.register(keyword_agent)
        result = await bare_server.agents.execute("nobody", {"task": "x"}, bare_server)
        assert result["error"]["message"] == "Unknown agent: nobody"
        assert result["error"]["suggestions"] == ["keyword-agent"]

    async def test_empty_task_rejected(self, bare_server, keyword_agent) -> None:
        bare_server.agents.register(keyword_agent)
        result = await bare_server.agents.execute("keyword-agent", {"task": ""}, bare_server)
        assert result["error"]["code"] == "invalid-input"
        assert result["error"]["details"][0]["path"] == "task"
