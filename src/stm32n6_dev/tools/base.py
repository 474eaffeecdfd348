"""
Base class for the tool interface.

A Tool is a stateless capability returning a single structured domain
result per call. All invocation plumbing lives in Capability; this module
only adds the tool-specific helpers shared by the built-in tools.

Design Principles:
    - Tools are stateless - all state comes from ExecutionContext
    - Tools receive validated params - validation happens in handle()
    - Expected failures (missing file, bad project layout) are returned as
      results with success=False, never raised
    - Only unexpected errors propagate out of execute()
"""

import asyncio
from pathlib import Path
from typing import Any

from stm32n6_dev.capability import Capability, ExecutionContext


class Tool(Capability):
    """
    Abstract base class for all STM32N6 tools.

    Tool names are snake_case identifiers (e.g. "stm32_build").
    Subclasses set name, description, category and input_model and
    implement execute().
    """

    def resolve_path(self, path: str, context: ExecutionContext) -> Path:
        """Resolve a possibly relative path against the working directory."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return Path(context.working_directory) / candidate

    async def path_exists(self, path: str, context: ExecutionContext) -> bool:
        """Check for a file or directory without blocking the event loop."""
        return await asyncio.to_thread(self.resolve_path(path, context).exists)

    @staticmethod
    def failure(error: str, **extra: Any) -> dict[str, Any]:
        """Build a soft-failure result."""
        return {"success": False, "error": error, **extra}
