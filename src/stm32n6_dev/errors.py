"""
Exception hierarchy and error codes for the STM32N6 development server.

Two kinds of failure exist in the server:

    - Programmer errors raised while the server is being assembled
      (duplicate registrations, broken configuration, missing templates).
      These are exceptions and are allowed to crash startup.
    - Request errors produced while serving a call (bad input, unknown
      capability, a capability that blew up). These never escape the
      dispatcher; they are turned into ErrorInfo values and returned inside
      a result envelope.

All exceptions inherit from Stm32DevError so callers can catch every
server-specific failure with a single except clause.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Envelope error codes (stable, surfaced to MCP clients)
INVALID_INPUT = "invalid-input"
UNKNOWN_CAPABILITY = "unknown-capability"
DISABLED_CAPABILITY = "disabled-capability"
INTERNAL_ERROR = "internal-error"
HOOK_VETOED = "hook-vetoed"
CAPABILITY_FAILED = "capability-failed"

# Envelope error categories
CATEGORY_VALIDATION = "validation"
CATEGORY_INTERNAL = "internal"
CATEGORY_HOOK = "hook"
CATEGORY_EXECUTION = "execution"

# Startup error codes
ERROR_DUPLICATE_CAPABILITY = "duplicate-capability"
ERROR_CONFIG_INVALID = "config-invalid"
ERROR_TEMPLATE_NOT_FOUND = "template-not-found"
ERROR_RESOURCE_NOT_FOUND = "resource-not-found"
ERROR_PROMPT_NOT_FOUND = "prompt-not-found"


# =============================================================================
# Structured envelope errors
# =============================================================================


@dataclass(frozen=True)
class ErrorInfo:
    """
    Structured error carried by a failed result envelope.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error message
        category: Coarse error class (validation, internal, hook, execution)
        details: Per-field validation failures as {path, message} records
        suggestions: Actionable hints for the caller
    """

    code: str
    message: str
    category: str
    details: list[dict[str, str]] | None = None
    suggestions: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "category": self.category,
        }
        if self.details is not None:
            result["details"] = list(self.details)
        if self.suggestions is not None:
            result["suggestions"] = list(self.suggestions)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorInfo":
        """Build an ErrorInfo from its JSON form."""
        details = data.get("details")
        suggestions = data.get("suggestions")
        return cls(
            code=str(data.get("code", INTERNAL_ERROR)),
            message=str(data.get("message", "")),
            category=str(data.get("category", CATEGORY_INTERNAL)),
            details=list(details) if details is not None else None,
            suggestions=[str(s) for s in suggestions] if suggestions is not None else None,
        )


def make_error(
    code: str,
    message: str,
    category: str,
    details: list[dict[str, str]] | None = None,
    suggestions: list[str] | None = None,
) -> ErrorInfo:
    """Create an ErrorInfo instance."""
    return ErrorInfo(
        code=code,
        message=message,
        category=category,
        details=details,
        suggestions=suggestions,
    )


def invalid_input(
    details: list[dict[str, str]],
    message: str = "Invalid input parameters",
) -> ErrorInfo:
    """Create an input validation error."""
    return make_error(INVALID_INPUT, message, CATEGORY_VALIDATION, details=details)


def unknown_capability(kind: str, name: str, available: list[str]) -> ErrorInfo:
    """Create an unknown tool/agent error listing every registered name."""
    return make_error(
        UNKNOWN_CAPABILITY,
        f"Unknown {kind}: {name}",
        CATEGORY_VALIDATION,
        suggestions=available,
    )


def disabled_capability(kind: str, name: str) -> ErrorInfo:
    """Create a disabled tool error."""
    return make_error(
        DISABLED_CAPABILITY,
        f"{kind.capitalize()} is disabled: {name}",
        CATEGORY_VALIDATION,
    )


def internal_error(message: str) -> ErrorInfo:
    """Create an internal error."""
    return make_error(INTERNAL_ERROR, message, CATEGORY_INTERNAL)


def hook_vetoed(message: str | None, suggestions: list[str] | None) -> ErrorInfo:
    """Create the error returned when a pre-hook blocks a call."""
    return make_error(
        HOOK_VETOED,
        message or "Pre-hook blocked execution",
        CATEGORY_HOOK,
        suggestions=suggestions or [],
    )


def capability_failed(message: str) -> ErrorInfo:
    """Create the error attached to a soft (domain-level) failure."""
    return make_error(CAPABILITY_FAILED, message, CATEGORY_EXECUTION)


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class Stm32DevError(Exception):
    """
    Base exception for all server errors.

    Attributes:
        message: Human-readable error description
        code: Stable error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: str = ""
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[{self.code}] {self.message}" if self.code else self.message]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Registration Errors
# =============================================================================


@dataclass
class DuplicateCapabilityError(Stm32DevError):
    """Raised when a tool or agent name is registered twice."""

    kind: str = "capability"
    name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.kind.capitalize()} already registered: {self.name}"
        if not self.code:
            self.code = ERROR_DUPLICATE_CAPABILITY
        if not self.suggestion:
            self.suggestion = f"Unregister the existing {self.kind} first or pick another name"
        self.context.update({"kind": self.kind, "name": self.name})


# =============================================================================
# Capability Errors
# =============================================================================


@dataclass
class CapabilityValidationError(Stm32DevError):
    """
    Raised by a capability when its input is valid in shape but not in meaning.

    The capability contract reports it like a schema failure, with one
    details entry per offending field.

    Attributes:
        path: Dotted path of the offending field
    """

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.code:
            self.code = INVALID_INPUT
        self.context["path"] = self.path

    def details(self) -> list[dict[str, str]]:
        """Return the validation failure as envelope details."""
        return [{"path": self.path, "message": self.message}]


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigError(Stm32DevError):
    """Raised when configuration cannot be loaded or fails validation."""

    errors: list[str] = field(default_factory=list)
    source: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Invalid configuration: " + "; ".join(self.errors)
        if not self.code:
            self.code = ERROR_CONFIG_INVALID
        self.context.update({"errors": self.errors, "source": self.source})


# =============================================================================
# Lookup Errors
# =============================================================================


@dataclass
class TemplateNotFoundError(Stm32DevError):
    """Raised when rendering a template that was never registered."""

    template: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Template not found: {self.template}"
        if not self.code:
            self.code = ERROR_TEMPLATE_NOT_FOUND
        self.context["template"] = self.template


@dataclass
class ResourceNotFoundError(Stm32DevError):
    """Raised when an MCP client reads an unknown resource URI."""

    uri: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown resource: {self.uri}"
        if not self.code:
            self.code = ERROR_RESOURCE_NOT_FOUND
        self.context["uri"] = self.uri


@dataclass
class PromptNotFoundError(Stm32DevError):
    """Raised when an MCP client asks for an unknown prompt."""

    prompt: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown prompt: {self.prompt}"
        if not self.code:
            self.code = ERROR_PROMPT_NOT_FOUND
        self.context["prompt"] = self.prompt
