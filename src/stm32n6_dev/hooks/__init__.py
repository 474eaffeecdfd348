"""
Hook interception for the dispatch pipeline.

Hooks observe calls before and after a capability runs. Pre-hooks may
veto a call or override its parameters; post-hooks only observe.
"""

from stm32n6_dev.hooks.builtin import BUILTIN_HOOKS, register_builtin_hooks
from stm32n6_dev.hooks.engine import (
    WILDCARD,
    HookContext,
    HookDefinition,
    HookEngine,
    HookOutcome,
)

__all__ = [
    "BUILTIN_HOOKS",
    "WILDCARD",
    "HookContext",
    "HookDefinition",
    "HookEngine",
    "HookOutcome",
    "register_builtin_hooks",
]
