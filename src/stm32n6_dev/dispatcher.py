"""
Dispatcher for the STM32N6 development server.

The Dispatcher is the single entry point for invoking tools and agents.
Every call follows the same sequence and collapses into one Envelope.

Call sequence:
    1. Run pre-hooks for (trigger, name); a veto returns an error
       envelope and the capability never runs
    2. Apply parameter overrides from pre-hooks, then execute through
       the registry
    3. Run post-hooks with the result; their outcome is only logged
    4. Return the envelope built in step 2

Design Principles:
    - No exception crosses the dispatcher boundary
    - Post-hooks observe; they cannot change an already decided result
    - The dispatcher owns no state; registries and hooks live on the
      ServerContext
"""

import logging
from typing import TYPE_CHECKING, Any

from stm32n6_dev.errors import hook_vetoed, internal_error
from stm32n6_dev.hooks.engine import HookContext
from stm32n6_dev.schema import Envelope, HookTiming, HookTrigger

if TYPE_CHECKING:
    from stm32n6_dev.context import ServerContext

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Coordinates hooks and registries for one call at a time.

    Usage:
        dispatcher = Dispatcher(server)
        envelope = await dispatcher.dispatch_tool("memory_map", {"elf_path": "app.elf"})
        if envelope.success:
            print(envelope.data)

    Attributes:
        server: Shared server context holding registries and the hook engine
    """

    def __init__(self, server: "ServerContext") -> None:
        """
        Initialize the dispatcher.

        Args:
            server: Shared server context
        """
        self.server = server

    async def dispatch_tool(self, name: str, params: dict[str, Any] | None = None) -> Envelope:
        """Dispatch a tool call."""
        return await self._dispatch(HookTrigger.TOOL, name, params)

    async def dispatch_agent(self, name: str, params: dict[str, Any] | None = None) -> Envelope:
        """Dispatch an agent call."""
        return await self._dispatch(HookTrigger.AGENT, name, params)

    async def _dispatch(
        self,
        trigger: HookTrigger,
        name: str,
        params: dict[str, Any] | None,
    ) -> Envelope:
        params = dict(params or {})
        try:
            pre = await self.server.hooks.execute(
                HookTiming.PRE, trigger, name, self._hook_context(params)
            )
            if not pre.proceed:
                logger.info("Pre-hook vetoed %s %s: %s", trigger.value, name, pre.error)
                return Envelope.fail(hook_vetoed(pre.error, pre.suggestions))

            if pre.modified_params:
                params.update(pre.modified_params)

            if trigger == HookTrigger.AGENT:
                result = await self.server.agents.execute(name, params, self.server)
            else:
                result = await self.server.tools.execute(name, params, self.server)
            envelope = Envelope.from_result(result)
        except Exception as e:
            logger.exception("Dispatch of %s %s failed", trigger.value, name)
            return Envelope.fail(internal_error(str(e) or e.__class__.__name__))

        await self._run_post_hooks(trigger, name, params, result)
        return envelope

    async def _run_post_hooks(
        self,
        trigger: HookTrigger,
        name: str,
        params: dict[str, Any],
        result: Any,
    ) -> None:
        try:
            post = await self.server.hooks.execute(
                HookTiming.POST, trigger, name, self._hook_context(params, result)
            )
        except Exception:
            logger.exception("Post-hooks for %s %s failed", trigger.value, name)
            return

        if not post.proceed:
            logger.warning(
                "Post-hook for %s %s returned proceed=False; result unchanged",
                trigger.value,
                name,
            )
        for suggestion in post.suggestions:
            logger.info("%s: %s", name, suggestion)

    def _hook_context(self, params: dict[str, Any], result: Any = None) -> HookContext:
        return HookContext(
            params=dict(params),
            result=result,
            environment=dict(self.server.environment),
            project_path=self.server.working_directory,
        )
