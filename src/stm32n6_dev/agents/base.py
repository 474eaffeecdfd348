"""
Base class for expert agents.

An Agent is a capability that takes a free-text task and answers with
guidance: a message, structured data, recommendations and next steps.
Agents route on keywords found in the task text rather than on a fixed
parameter set.
"""

import logging
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from stm32n6_dev.capability import Capability, ExecutionContext

logger = logging.getLogger(__name__)


# =============================================================================
# Agent Models
# =============================================================================


class AgentConstraints(BaseModel):
    """Optional limits a caller can attach to an agent task."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout: int | None = Field(default=None, description="Time budget in milliseconds", gt=0)
    max_output_size: int | None = Field(default=None, description="Maximum output size in bytes", gt=0)


class AgentInput(BaseModel):
    """
    Input contract shared by every agent.

    Attributes:
        task: Free-text description of what the caller wants
        parameters: Agent-specific extra parameters
        constraints: Optional execution limits
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    task: str = Field(..., description="Task description", min_length=1)
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Agent-specific parameters",
    )
    constraints: AgentConstraints | None = Field(
        default=None,
        description="Optional execution limits",
    )


class GeneratedFile(BaseModel):
    """A source file proposed by an agent."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    description: str | None = None


class AgentResult(BaseModel):
    """
    Result returned by every agent.

    Attributes:
        success: Whether the agent could handle the task
        message: Human-readable summary
        data: Structured payload
        recommendations: Advice for the caller
        next_steps: Suggested follow-up actions
        files: Generated files, if any
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    data: Any | None = None
    recommendations: list[str] | None = None
    next_steps: list[str] | None = None
    files: list[GeneratedFile] | None = None


# =============================================================================
# Agent
# =============================================================================


class Agent(Capability):
    """
    Abstract base class for all agents.

    Subclasses declare name, description, category, capabilities and
    expertise, and implement execute(). The keyword lists are what
    AgentRegistry.select_agents_for_task() matches task text against.
    """

    input_model: ClassVar[type[BaseModel]] = AgentInput
    capabilities: ClassVar[list[str]] = []
    expertise: ClassVar[list[str]] = []

    def keywords(self) -> list[str]:
        """Capability and expertise keywords, lower-cased."""
        return [k.lower() for k in [*self.capabilities, *self.expertise]]

    def log(self, context: ExecutionContext, level: int, message: str) -> None:
        """Log through the shared server logger with an agent prefix."""
        target = context.server.logger if context.server is not None else logger
        target.log(level, "[%s] %s", self.name, message)

    @staticmethod
    def success(
        message: str,
        data: Any = None,
        recommendations: list[str] | None = None,
        next_steps: list[str] | None = None,
        files: list[GeneratedFile] | None = None,
    ) -> AgentResult:
        """Create a successful agent result."""
        return AgentResult(
            success=True,
            message=message,
            data=data,
            recommendations=recommendations,
            next_steps=next_steps,
            files=files,
        )

    def definition(self) -> dict[str, Any]:
        """Discovery record for this agent."""
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "capabilities": list(self.capabilities),
            "expertise": list(self.expertise),
        }
