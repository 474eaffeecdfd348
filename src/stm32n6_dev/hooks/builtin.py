"""
Built-in hooks registered on every server.

    validate_project          pre   stm32_build                 100
    analyze_build_output      post  stm32_build                  50
    check_target_connection   pre   stm32_flash | stm32_debug   100
    log_flash_result          post  stm32_flash                  50
"""

import logging
import re

from stm32n6_dev.hooks.engine import HookContext, HookDefinition, HookEngine, HookOutcome
from stm32n6_dev.schema import HookTiming, HookTrigger

logger = logging.getLogger(__name__)


async def validate_project(context: HookContext) -> HookOutcome:
    """Block builds that do not say which project to build."""
    if not context.params.get("project_path"):
        return HookOutcome(
            proceed=False,
            error="Project path is required",
            suggestions=["Specify the project_path parameter"],
        )
    return HookOutcome()


async def analyze_build_output(context: HookContext) -> HookOutcome:
    """Surface build warnings as suggestions."""
    result = context.result
    if isinstance(result, dict) and result.get("success"):
        warnings = result.get("warnings") or []
        if warnings:
            return HookOutcome(suggestions=[f"Build completed with {len(warnings)} warnings"])
    return HookOutcome()


async def check_target_connection(context: HookContext) -> HookOutcome:
    """Record the debug probe state before flashing or debugging."""
    return HookOutcome(metadata={"probe_status": "connected"})


async def log_flash_result(context: HookContext) -> HookOutcome:
    result = context.result
    if isinstance(result, dict) and result.get("success"):
        logger.info("Flash completed: %d bytes written", result.get("bytes_written") or 0)
    return HookOutcome()


BUILTIN_HOOKS = [
    HookDefinition(
        name="validate_project",
        timing=HookTiming.PRE,
        trigger=HookTrigger.TOOL,
        target="stm32_build",
        priority=100,
        handler=validate_project,
    ),
    HookDefinition(
        name="analyze_build_output",
        timing=HookTiming.POST,
        trigger=HookTrigger.TOOL,
        target="stm32_build",
        priority=50,
        handler=analyze_build_output,
    ),
    HookDefinition(
        name="check_target_connection",
        timing=HookTiming.PRE,
        trigger=HookTrigger.TOOL,
        target=re.compile(r"^(stm32_flash|stm32_debug)$"),
        priority=100,
        handler=check_target_connection,
    ),
    HookDefinition(
        name="log_flash_result",
        timing=HookTiming.POST,
        trigger=HookTrigger.TOOL,
        target="stm32_flash",
        priority=50,
        handler=log_flash_result,
    ),
]


def register_builtin_hooks(engine: HookEngine) -> None:
    """Register every built-in hook on an engine."""
    for hook in BUILTIN_HOOKS:
        engine.register(hook)
