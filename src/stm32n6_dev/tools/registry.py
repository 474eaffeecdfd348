"""
Tool registry for the STM32N6 development server.

The registry owns the name -> (tool, enabled) mapping and brokers
execution requests into tools.

Design:
    - One registry per server context; no global state
    - Registering a name twice is a startup error and raises
    - Enabled state lives in the registry, never on the tool
    - execute() never raises: unknown and disabled tools come back as
      error payloads listing what is available

Usage:
    registry = ToolRegistry()
    registry.register(ClockConfigTool())
    result = await registry.execute("clock_config", params, server)
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

from stm32n6_dev.capability import build_execution_context, unwrap_result
from stm32n6_dev.errors import (
    DuplicateCapabilityError,
    disabled_capability,
    unknown_capability,
)
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.tools.base import Tool

if TYPE_CHECKING:
    from stm32n6_dev.context import ServerContext

logger = logging.getLogger(__name__)


@dataclass
class ToolRegistration:
    """A registered tool and its enabled flag."""

    tool: Tool
    enabled: bool = True


class ToolRegistry:
    """
    Registry for looking up and executing tools by name.

    Attributes:
        _tools: Internal mapping of tool names to registrations
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, ToolRegistration] = {}

    def register(self, tool: Tool) -> None:
        """
        Register a tool, enabled.

        Args:
            tool: The tool instance to register

        Raises:
            DuplicateCapabilityError: If the name is already registered
        """
        if tool.name in self._tools:
            raise DuplicateCapabilityError(kind="tool", name=tool.name)
        self._tools[tool.name] = ToolRegistration(tool=tool)
        logger.debug("Registered tool %s", tool.name)

    def unregister(self, name: str) -> bool:
        """
        Remove a tool from the registry.

        Returns:
            True if the tool was removed, False if it wasn't registered
        """
        if name in self._tools:
            del self._tools[name]
            return True
        return False

    def set_enabled(self, name: str, enabled: bool) -> None:
        """Enable or disable a tool. Unknown names are ignored."""
        registration = self._tools.get(name)
        if registration is not None:
            registration.enabled = enabled

    def is_available(self, name: str) -> bool:
        """Return True if the tool is registered and enabled."""
        registration = self._tools.get(name)
        return registration is not None and registration.enabled

    def get(self, name: str) -> Tool | None:
        """Look up a tool by name, returning None if not found."""
        registration = self._tools.get(name)
        return registration.tool if registration else None

    def list_all(self) -> list[Tool]:
        """List every registered tool, enabled or not."""
        return [r.tool for r in self._tools.values()]

    def list_enabled(self) -> list[Tool]:
        """List enabled tools."""
        return [r.tool for r in self._tools.values() if r.enabled]

    def list_by_category(self, category: CapabilityCategory) -> list[Tool]:
        """List enabled tools in one category."""
        return [t for t in self.list_enabled() if t.category == category]

    def get_by_category(self) -> dict[CapabilityCategory, list[Tool]]:
        """Group enabled tools by category; every category key is present."""
        return {category: self.list_by_category(category) for category in CapabilityCategory}

    def count(self) -> int:
        """Return the number of registered tools."""
        return len(self._tools)

    async def execute(
        self,
        name: str,
        params: Any,
        server: "ServerContext",
    ) -> Any:
        """
        Execute a tool by name.

        Args:
            name: Tool name
            params: Raw, unvalidated parameters
            server: Shared server context the execution context is built from

        Returns:
            Plain value unwrapped from the tool's result
        """
        registration = self._tools.get(name)
        if registration is None:
            return {
                "success": False,
                "error": unknown_capability("tool", name, list(self._tools)).to_dict(),
            }
        if not registration.enabled:
            return {
                "success": False,
                "error": disabled_capability("tool", name).to_dict(),
            }

        context = build_execution_context(server)
        result = await registration.tool.handle(params, context)
        return unwrap_result(result)

    def __len__(self) -> int:
        """Return the number of registered tools."""
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        """Iterate over all registered tools."""
        return iter(self.list_all())

    def __contains__(self, name: str) -> bool:
        """Check if a tool is registered using 'in' operator."""
        return name in self._tools

    def __repr__(self) -> str:
        """String representation of the registry."""
        return f"<ToolRegistry: [{', '.join(self._tools)}]>"
