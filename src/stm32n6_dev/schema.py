"""
Wire-level models for the STM32N6 development server.

This module defines the values that cross the dispatcher boundary:
- CapabilityCategory: Closed set of grouping tags for tools and agents
- HookTiming/HookTrigger: Interception points for the hook engine
- Envelope: The {success, data | error} result returned for every call

Design Decisions:
    - Every call produces exactly one Envelope, success or failure
    - A failed Envelope always carries a structured ErrorInfo
    - Soft failures (a capability returned success=False) keep their
      payload in `data` so callers can still inspect it
    - Serialization omits absent optional fields so the JSON matches the
      published error shape exactly
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from stm32n6_dev.errors import ErrorInfo, capability_failed


# =============================================================================
# Enums
# =============================================================================


class CapabilityCategory(str, Enum):
    """
    Grouping tag for tools and agents.

    Categories are used for listing and filtering only, never for dispatch.
    """

    BUILD = "build"
    DEPLOY = "deploy"
    CODEGEN = "codegen"
    AI_ML = "ai-ml"
    ANALYSIS = "analysis"
    DEBUG = "debug"


class HookTiming(str, Enum):
    """When a hook runs relative to the capability."""

    PRE = "pre"
    POST = "post"


class HookTrigger(str, Enum):
    """Kind of call a hook is attached to."""

    TOOL = "tool"
    COMMAND = "command"
    AGENT = "agent"


class LogLevel(str, Enum):
    """Server log levels accepted in configuration."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


# =============================================================================
# Result Envelope
# =============================================================================


@dataclass(frozen=True)
class Envelope:
    """
    Uniform result of a dispatched call.

    Attributes:
        success: Whether the call succeeded
        data: Payload on success, or the domain payload of a soft failure
        error: Structured error when success is False
    """

    success: bool
    data: Any = None
    error: ErrorInfo | None = None

    @classmethod
    def ok(cls, data: Any) -> "Envelope":
        """Create a successful envelope."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ErrorInfo, data: Any = None) -> "Envelope":
        """Create a failed envelope."""
        return cls(success=False, data=data, error=error)

    @classmethod
    def from_result(cls, value: Any) -> "Envelope":
        """
        Normalize an unwrapped registry result into an envelope.

        Three shapes are recognised:
            - {"success": False, "error": {"code": ...}}: error envelope
            - {"success": False, ...} without a structured error: soft
              failure, the payload is kept in data
            - anything else: successful envelope wrapping the value

        Args:
            value: Plain value produced by a registry execute()

        Returns:
            The normalized Envelope
        """
        if isinstance(value, dict) and value.get("success") is False:
            error = value.get("error")
            if isinstance(error, dict) and "code" in error:
                return cls.fail(ErrorInfo.from_dict(error))

            message = value.get("message")
            if not isinstance(message, str) or not message:
                message = error if isinstance(error, str) and error else "Capability reported failure"
            return cls.fail(capability_failed(message), data=value)

        return cls.ok(value)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"success": self.success}
        if self.success:
            result["data"] = self.data
            return result

        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result
