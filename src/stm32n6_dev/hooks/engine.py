"""
Hook Engine for the STM32N6 development server.

Hooks are side-observers attached to the dispatch pipeline. A hook names
when it runs (pre or post), which kind of call it watches (tool, command,
agent) and which targets it applies to (exact name, "*" or a compiled
regular expression). Hooks run in descending priority order.

Design Principles:
    - The engine's only state is the ordered hook list
    - A pre-hook returning proceed=False vetoes the call and stops the chain
    - A hook that raises is logged and skipped; it never aborts the chain
    - Outcomes from several hooks are folded into one HookOutcome

How it works:
    1. Dispatcher calls execute(timing, trigger, target, context)
    2. Engine filters hooks by timing, trigger and target
    3. Each handler runs in priority order; its outcome is merged
    4. The chain stops as soon as the merged outcome says proceed=False
"""

import inspect
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from stm32n6_dev.schema import HookTiming, HookTrigger

logger = logging.getLogger(__name__)


# =============================================================================
# Hook Types
# =============================================================================


@dataclass
class HookContext:
    """
    Data handed to every hook handler.

    Attributes:
        params: Parameters of the call being dispatched
        result: Unwrapped capability result (post-hooks only)
        environment: Environment snapshot of the server
        project_path: Working directory of the server
    """

    params: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    environment: dict[str, str] = field(default_factory=dict)
    project_path: str = "."


@dataclass
class HookOutcome:
    """
    Result of one hook, or of a whole folded chain.

    Attributes:
        proceed: False vetoes the call (pre-hooks only)
        error: Message explaining a veto
        suggestions: Hints for the caller, in chain order
        modified_params: Parameter overrides applied before execution
        metadata: Free-form data collected from hooks
    """

    proceed: bool = True
    error: str | None = None
    suggestions: list[str] = field(default_factory=list)
    modified_params: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def merge(self, update: "HookOutcome") -> "HookOutcome":
        """
        Fold a later hook's outcome into this one.

        proceed is AND-ed, error takes the later value when set,
        suggestions concatenate and dict fields shallow-merge with the
        later hook winning on conflicts.
        """
        return HookOutcome(
            proceed=self.proceed and update.proceed,
            error=update.error if update.error is not None else self.error,
            suggestions=[*self.suggestions, *update.suggestions],
            modified_params={**self.modified_params, **update.modified_params},
            metadata={**self.metadata, **update.metadata},
        )


HookHandler = Callable[[HookContext], Union[HookOutcome, None, Awaitable[HookOutcome | None]]]
HookTarget = Union[str, re.Pattern[str]]

WILDCARD = "*"


@dataclass(frozen=True)
class HookDefinition:
    """
    A registered hook.

    Attributes:
        name: Identifier used by unregister(); not required to be unique
        timing: Pre or post dispatch
        trigger: Kind of call the hook watches
        target: Exact name, "*" for every name, or a compiled pattern
        priority: Higher runs first
        handler: Sync or async callable returning a HookOutcome (None means proceed)
    """

    name: str
    timing: HookTiming
    trigger: HookTrigger
    target: HookTarget
    priority: int
    handler: HookHandler

    def matches(self, timing: HookTiming, trigger: HookTrigger, target: str) -> bool:
        """Return True if this hook applies to the given call."""
        if self.timing != timing or self.trigger != trigger:
            return False
        if isinstance(self.target, re.Pattern):
            return self.target.search(target) is not None
        return self.target == WILDCARD or self.target == target


# =============================================================================
# Hook Engine
# =============================================================================


class HookEngine:
    """
    Priority-ordered hook chain.

    Usage:
        engine = HookEngine()
        engine.register(HookDefinition(
            name="audit",
            timing=HookTiming.PRE,
            trigger=HookTrigger.TOOL,
            target="*",
            priority=10,
            handler=lambda ctx: HookOutcome(metadata={"audited": True}),
        ))
        outcome = await engine.execute(HookTiming.PRE, HookTrigger.TOOL, "stm32_build", ctx)

    Attributes:
        _hooks: Hooks sorted by descending priority
    """

    def __init__(self) -> None:
        """Initialize an empty hook chain."""
        self._hooks: list[HookDefinition] = []

    def register(self, hook: HookDefinition) -> None:
        """
        Add a hook and re-sort by priority.

        The sort is stable, so hooks with equal priority keep their
        registration order. Duplicate names are accepted.
        """
        self._hooks.append(hook)
        self._hooks.sort(key=lambda h: h.priority, reverse=True)
        logger.debug(
            "Registered hook %s (%s/%s, priority %d)",
            hook.name,
            hook.timing.value,
            hook.trigger.value,
            hook.priority,
        )

    def unregister(self, name: str) -> bool:
        """Remove the first hook with this name; return whether one was found."""
        for index, hook in enumerate(self._hooks):
            if hook.name == name:
                del self._hooks[index]
                return True
        return False

    async def execute(
        self,
        timing: HookTiming,
        trigger: HookTrigger,
        target: str,
        context: HookContext,
    ) -> HookOutcome:
        """
        Run every matching hook and fold their outcomes.

        Args:
            timing: Pre or post
            trigger: Kind of call
            target: Name of the capability being called
            context: Data passed to each handler

        Returns:
            The merged HookOutcome; proceed is False if any hook vetoed
        """
        outcome = HookOutcome()

        for hook in [h for h in self._hooks if h.matches(timing, trigger, target)]:
            try:
                update = hook.handler(context)
                if inspect.isawaitable(update):
                    update = await update
                outcome = outcome.merge(update if update is not None else HookOutcome())
            except Exception:
                logger.exception("Hook %s failed", hook.name)
                continue

            if not outcome.proceed:
                logger.debug("Hook %s stopped the %s chain for %s", hook.name, timing.value, target)
                break

        return outcome

    def list_all(self) -> list[HookDefinition]:
        """Return a copy of the ordered hook list."""
        return list(self._hooks)

    def clear(self) -> None:
        """Remove every hook."""
        self._hooks.clear()

    def __len__(self) -> int:
        """Return the number of registered hooks."""
        return len(self._hooks)
