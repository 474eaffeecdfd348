"""
Pytest configuration and fixtures for the STM32N6 development server tests.

This module provides shared fixtures used across unit and integration
tests: temporary directories, server contexts and a few small capabilities
with predictable behavior.
"""

import logging
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest
from pydantic import BaseModel, ConfigDict, Field

from stm32n6_dev.agents import Agent, AgentInput, AgentResult
from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.config import Config
from stm32n6_dev.context import ServerContext, build_server_context
from stm32n6_dev.log import PACKAGE_LOGGER
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.tools import Tool


# =============================================================================
# Test Capabilities
# =============================================================================


class EchoInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str = Field(..., description="Message to echo")
    repeat: int = Field(default=1, description="Number of repetitions", ge=1)


class EchoTool(Tool):
    """Echo the message back."""

    name = "echo"
    description = "Echo a message back"
    category = CapabilityCategory.ANALYSIS
    input_model = EchoInput

    def __init__(self, name: str = "echo") -> None:
        self.name = name
        self.calls: list[EchoInput] = []

    async def execute(self, params: EchoInput, context: ExecutionContext) -> dict[str, Any]:
        self.calls.append(params)
        return {"success": True, "echo": " ".join([params.message] * params.repeat)}


class ExplodingTool(Tool):
    """Raise from execute()."""

    name = "explode"
    description = "Always raises"
    category = CapabilityCategory.DEBUG
    input_model = EchoInput

    async def execute(self, params: EchoInput, context: ExecutionContext) -> Any:
        raise RuntimeError("boom")


class SoftFailTool(Tool):
    """Return a domain-level failure."""

    name = "soft_fail"
    description = "Reports success=False"
    category = CapabilityCategory.BUILD
    input_model = EchoInput

    async def execute(self, params: EchoInput, context: ExecutionContext) -> dict[str, Any]:
        return self.failure(f"cannot handle {params.message}", attempted=params.message)


class KeywordAgent(Agent):
    """Agent answering with its own name."""

    name = "keyword-agent"
    description = "Test agent"
    category = CapabilityCategory.ANALYSIS
    capabilities = ["widgets"]
    expertise = ["gadget-tuning"]

    async def execute(self, params: AgentInput, context: ExecutionContext) -> AgentResult:
        return self.success(f"handled: {params.task}", data={"parameters": params.parameters})


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def restore_package_logger() -> Generator[None, None, None]:
    """Undo configure_logging() so caplog keeps seeing package records."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def server(temp_dir: Path) -> ServerContext:
    """A fully built server context rooted at a temporary directory."""
    return build_server_context(
        config=Config(),
        environ={"STM32N6_TEST": "1"},
        working_directory=str(temp_dir),
    )


@pytest.fixture
def bare_server(temp_dir: Path) -> ServerContext:
    """A server context with empty registries and no hooks."""
    return ServerContext(
        config=Config(),
        environment={"STM32N6_TEST": "1"},
        working_directory=str(temp_dir),
    )


@pytest.fixture
def context(temp_dir: Path) -> ExecutionContext:
    """An execution context without a server."""
    return ExecutionContext(working_directory=str(temp_dir))


@pytest.fixture
def server_context(server: ServerContext) -> ExecutionContext:
    """An execution context bound to the full server."""
    return ExecutionContext(
        working_directory=server.working_directory,
        environment=dict(server.environment),
        server=server,
    )


@pytest.fixture
def echo_tool() -> EchoTool:
    return EchoTool()


@pytest.fixture
def make_echo_tool() -> type[EchoTool]:
    """The echo tool class, for tests that need several named instances."""
    return EchoTool


@pytest.fixture
def exploding_tool() -> ExplodingTool:
    return ExplodingTool()


@pytest.fixture
def soft_fail_tool() -> SoftFailTool:
    return SoftFailTool()


@pytest.fixture
def keyword_agent() -> KeywordAgent:
    return KeywordAgent()


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a configuration file overriding a few sections."""
    return """
server:
  log_level: debug
  timeout_ms: 30000
target:
  board: NUCLEO-N657X0-Q
build:
  parallel_jobs: 8
"""
