"""
Agent registry for the STM32N6 development server.

Mirrors ToolRegistry for agents, with two differences:
    - Agents have no enabled flag; a registered agent is always callable
    - select_agents_for_task() picks agents whose keywords occur in a
      free-text task description
"""

import logging
from typing import TYPE_CHECKING, Any, Iterator

from stm32n6_dev.agents.base import Agent
from stm32n6_dev.capability import build_execution_context, unwrap_result
from stm32n6_dev.errors import DuplicateCapabilityError, unknown_capability

if TYPE_CHECKING:
    from stm32n6_dev.context import ServerContext

logger = logging.getLogger(__name__)


class AgentRegistry:
    """
    Registry for looking up and executing agents by name.

    Attributes:
        _agents: Internal mapping of agent names to agent instances
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._agents: dict[str, Agent] = {}

    def register(self, agent: Agent) -> None:
        """
        Register an agent.

        Raises:
            DuplicateCapabilityError: If the name is already registered
        """
        if agent.name in self._agents:
            raise DuplicateCapabilityError(kind="agent", name=agent.name)
        self._agents[agent.name] = agent
        logger.debug("Registered agent %s", agent.name)

    def unregister(self, name: str) -> bool:
        """Remove an agent; return whether it was registered."""
        return self._agents.pop(name, None) is not None

    def get(self, name: str) -> Agent | None:
        """Look up an agent by name, returning None if not found."""
        return self._agents.get(name)

    def list_all(self) -> list[Agent]:
        """List every registered agent."""
        return list(self._agents.values())

    def list_definitions(self) -> list[dict[str, Any]]:
        """Discovery records for every registered agent."""
        return [agent.definition() for agent in self._agents.values()]

    def count(self) -> int:
        """Return the number of registered agents."""
        return len(self._agents)

    def select_agents_for_task(self, task: str) -> list[Agent]:
        """
        Select agents whose capability or expertise keywords occur in a task.

        Matching is a case-insensitive substring test; the result keeps
        registration order and is not ranked.

        Args:
            task: Free-text task description

        Returns:
            Matching agents
        """
        text = task.lower()
        return [
            agent
            for agent in self._agents.values()
            if any(keyword in text for keyword in agent.keywords())
        ]

    async def execute(
        self,
        name: str,
        params: Any,
        server: "ServerContext",
    ) -> Any:
        """
        Execute an agent by name.

        Args:
            name: Agent name
            params: Raw agent input ({task, parameters?, constraints?})
            server: Shared server context

        Returns:
            Plain value unwrapped from the agent's result
        """
        agent = self._agents.get(name)
        if agent is None:
            return {
                "success": False,
                "error": unknown_capability("agent", name, list(self._agents)).to_dict(),
            }

        context = build_execution_context(server)
        result = await agent.handle(params, context)
        return unwrap_result(result)

    def __len__(self) -> int:
        """Return the number of registered agents."""
        return len(self._agents)

    def __iter__(self) -> Iterator[Agent]:
        """Iterate over all registered agents."""
        return iter(self.list_all())

    def __contains__(self, name: str) -> bool:
        """Check if an agent is registered using 'in' operator."""
        return name in self._agents
