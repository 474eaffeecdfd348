"""
Expert agents for the STM32N6 development server.

Agents take a free-text task and answer with guidance, routing on keywords
found in the task. AgentRegistry.select_agents_for_task() picks the agents
whose capability or expertise keywords occur in a task description.
"""

from stm32n6_dev.agents.architect import Stm32ArchitectAgent
from stm32n6_dev.agents.base import Agent, AgentConstraints, AgentInput, AgentResult, GeneratedFile
from stm32n6_dev.agents.driver import DriverDeveloperAgent
from stm32n6_dev.agents.edge_ai import AiEngineerAgent
from stm32n6_dev.agents.registry import AgentRegistry
from stm32n6_dev.agents.specialists import (
    DebugEngineerAgent,
    ProjectLeadAgent,
    RtosSpecialistAgent,
    TestEngineerAgent,
)

BUILTIN_AGENTS: list[type[Agent]] = [
    ProjectLeadAgent,
    Stm32ArchitectAgent,
    DriverDeveloperAgent,
    AiEngineerAgent,
    RtosSpecialistAgent,
    DebugEngineerAgent,
    TestEngineerAgent,
]


def register_all_agents(registry: AgentRegistry) -> None:
    """Register every built-in agent in the given registry."""
    for agent_class in BUILTIN_AGENTS:
        registry.register(agent_class())


__all__ = [
    "Agent",
    "AgentConstraints",
    "AgentInput",
    "AgentRegistry",
    "AgentResult",
    "BUILTIN_AGENTS",
    "GeneratedFile",
    "register_all_agents",
    "ProjectLeadAgent",
    "Stm32ArchitectAgent",
    "DriverDeveloperAgent",
    "AiEngineerAgent",
    "RtosSpecialistAgent",
    "DebugEngineerAgent",
    "TestEngineerAgent",
]
