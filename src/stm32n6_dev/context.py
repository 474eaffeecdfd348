"""
Shared server context.

One ServerContext is built per process. It owns the configuration, the
two registries, the hook engine and the template engine, and holds the
environment snapshot every ExecutionContext copies from. Capabilities reach
it through ExecutionContext.server.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from stm32n6_dev.agents import AgentRegistry, register_all_agents
from stm32n6_dev.config import Config, load_config
from stm32n6_dev.hooks import HookEngine, register_builtin_hooks
from stm32n6_dev.log import PACKAGE_LOGGER
from stm32n6_dev.templates import TemplateEngine
from stm32n6_dev.tools import ToolRegistry, register_all_tools


@dataclass
class ServerContext:
    """
    Server-wide state shared by every call.

    Attributes:
        config: Effective configuration
        tools: Tool registry
        agents: Agent registry
        hooks: Hook engine
        templates: Template engine with the built-in templates loaded
        logger: Logger agents write through
        environment: Environment snapshot taken at startup
        working_directory: Directory relative paths resolve against
    """

    config: Config = field(default_factory=Config)
    tools: ToolRegistry = field(default_factory=ToolRegistry)
    agents: AgentRegistry = field(default_factory=AgentRegistry)
    hooks: HookEngine = field(default_factory=HookEngine)
    templates: TemplateEngine = field(default_factory=TemplateEngine)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(PACKAGE_LOGGER))
    environment: dict[str, str] = field(default_factory=dict)
    working_directory: str = "."


def build_server_context(
    config: Config | None = None,
    environ: Mapping[str, str] | None = None,
    working_directory: str | None = None,
) -> ServerContext:
    """
    Build a fully populated server context.

    The environment is snapshotted once here; nothing downstream reads
    os.environ.

    Args:
        config: Configuration to use (loaded from the environment if None)
        environ: Environment to snapshot (os.environ if None)
        working_directory: Base directory (process cwd if None)

    Returns:
        ServerContext with built-in tools, agents, hooks and templates
    """
    environment = dict(os.environ if environ is None else environ)
    if config is None:
        config = load_config(environ=environment)

    server = ServerContext(
        config=config,
        environment=environment,
        working_directory=working_directory or os.getcwd(),
    )
    server.templates.load_builtin()
    register_all_tools(server.tools)
    register_all_agents(server.agents)
    register_builtin_hooks(server.hooks)

    server.logger.debug(
        "Server context ready: %d tools, %d agents, %d hooks, %d templates",
        server.tools.count(),
        server.agents.count(),
        len(server.hooks),
        len(server.templates.list_all()),
    )
    return server
