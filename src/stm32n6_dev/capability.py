"""
Capability base contract.

Tools and agents are both capabilities: named units of work with an input
contract, a category and an async execute(). This module defines:
- Capability: Abstract base class implementing the shared invocation sequence
- ExecutionContext: Per-call runtime context handed to execute()
- CapabilityResult/ResultContent: Transport-ready output of handle()
- describe_schema(): JSON-Schema-like description of an input contract

Design Principles:
    - Subclasses only supply metadata and execute(); validation, result
      formatting and error wrapping live here, written once
    - handle() never raises: every outcome becomes a CapabilityResult
    - Input contracts are pydantic models; the same model drives validation
      and discovery, so the two cannot drift apart

Invocation sequence of handle():
    1. Validate raw params against input_model
    2. Await execute(validated, context)
    3. Serialize the domain result to JSON text, flag success=False as error
    4. Convert any exception into a structured error payload
"""

import json
import logging
import types
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticUndefined, to_jsonable_python

from stm32n6_dev.errors import CapabilityValidationError, internal_error, invalid_input
from stm32n6_dev.schema import CapabilityCategory

if TYPE_CHECKING:
    from stm32n6_dev.context import ServerContext

logger = logging.getLogger(__name__)


# =============================================================================
# Runtime Types
# =============================================================================


@dataclass
class ExecutionContext:
    """
    Runtime context created fresh for every dispatched call.

    Attributes:
        working_directory: Directory relative paths are resolved against
        environment: Snapshot of the environment taken by the server
        timeout_ms: Configured time budget; advisory, never enforced here
        server: Back-reference to the shared server context
    """

    working_directory: str = "."
    environment: dict[str, str] = field(default_factory=dict)
    timeout_ms: int = 60000
    server: "ServerContext | None" = None


@dataclass(frozen=True)
class ResultContent:
    """One content item of a capability result."""

    type: str = "text"
    text: str = ""


@dataclass(frozen=True)
class CapabilityResult:
    """
    Output of Capability.handle().

    Attributes:
        content: Content items; capabilities here always produce one text item
        is_error: True for validation, execution and soft failures
    """

    content: list[ResultContent] = field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        """Text of the first content item, or an empty string."""
        return self.content[0].text if self.content else ""


# =============================================================================
# Schema Introspection
# =============================================================================

_SEQUENCE_TYPES = (list, tuple, set, frozenset)
_UNION_TYPES = (Union, types.UnionType)


def _literal_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def _non_none_args(annotation: Any) -> list[Any]:
    return [arg for arg in typing.get_args(annotation) if arg is not type(None)]


def is_optional(annotation: Any) -> bool:
    """Return True if the annotation is a union that admits None."""
    if typing.get_origin(annotation) not in _UNION_TYPES:
        return False
    return type(None) in typing.get_args(annotation)


def describe_schema(annotation: Any) -> dict[str, Any]:
    """
    Describe a type annotation as a JSON-Schema-like dict.

    Supported node kinds: pydantic models (object), str (string), int and
    float (number), bool (boolean), list/tuple/set (array), Enum subclasses
    and multi-value Literal (string enum), single-value Literal (const) and
    `X | None` (optional, described as X). Anything else is reported as an
    opaque object.

    Args:
        annotation: A type annotation or pydantic model class

    Returns:
        Schema description dict
    """
    origin = typing.get_origin(annotation)

    if origin is typing.Annotated:
        return describe_schema(typing.get_args(annotation)[0])

    if origin in _UNION_TYPES:
        members = _non_none_args(annotation)
        if len(members) == 1:
            return describe_schema(members[0])
        return {"type": "object"}

    if origin is Literal:
        values = list(typing.get_args(annotation))
        if len(values) == 1:
            return {"type": _literal_type(values[0]), "const": values[0]}
        return {"type": "string", "enum": [str(v) for v in values]}

    if origin in _SEQUENCE_TYPES or annotation in _SEQUENCE_TYPES:
        args = typing.get_args(annotation)
        items = describe_schema(args[0]) if args else {}
        return {"type": "array", "items": items}

    if isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return {"type": "string", "enum": [str(m.value) for m in annotation]}
        if annotation is bool:
            return {"type": "boolean"}
        if annotation in (int, float):
            return {"type": "number"}
        if annotation is str:
            return {"type": "string"}
        if issubclass(annotation, BaseModel):
            return describe_model(annotation)

    return {"type": "object"}


def describe_model(model: type[BaseModel]) -> dict[str, Any]:
    """
    Describe a pydantic model as an object schema.

    Fields that are optional (`X | None`) or carry a default are left out
    of `required`. Defaults, including default factories, are reported
    under `default`.
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for name, info in model.model_fields.items():
        node = describe_schema(info.annotation)
        if info.description:
            node["description"] = info.description

        if info.default is not PydanticUndefined:
            if info.default is not None:
                node["default"] = to_jsonable_python(info.default)
        elif info.default_factory is not None:
            node["default"] = to_jsonable_python(info.default_factory())

        key = info.alias or name
        properties[key] = node
        if info.is_required() and not is_optional(info.annotation):
            required.append(key)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


# =============================================================================
# Result Formatting
# =============================================================================


def to_plain(result: Any) -> Any:
    """Convert a domain result into JSON-compatible Python values."""
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", exclude_none=True)
    return to_jsonable_python(result, fallback=str)


def validation_details(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten a pydantic ValidationError into {path, message} records."""
    return [
        {
            "path": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


def _error_result(error: dict[str, Any]) -> CapabilityResult:
    payload = {"success": False, "error": error}
    return CapabilityResult(
        content=[ResultContent(text=json.dumps(payload))],
        is_error=True,
    )


# =============================================================================
# Capability
# =============================================================================


class Capability(ABC):
    """
    Abstract base class for tools and agents.

    Subclasses declare class attributes and implement execute():

        class EchoTool(Tool):
            name = "echo"
            description = "Echo a message back"
            category = CapabilityCategory.ANALYSIS
            input_model = EchoInput

            async def execute(self, params, context):
                return {"success": True, "echo": params.message}

    execute() returns any domain value: a pydantic model, a dataclass or
    plain JSON-compatible data. Returning a value whose `success` field is
    False marks the call as a soft failure.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    category: ClassVar[CapabilityCategory]
    input_model: ClassVar[type[BaseModel]]

    @abstractmethod
    async def execute(self, params: Any, context: ExecutionContext) -> Any:
        """
        Perform the capability's work.

        Args:
            params: Instance of input_model, already validated
            context: Per-call execution context

        Returns:
            Domain-specific result
        """
        ...

    async def handle(
        self,
        raw_params: Any,
        context: ExecutionContext,
    ) -> CapabilityResult:
        """
        Validate, execute and format a call. Never raises.

        Args:
            raw_params: Unvalidated parameters from the caller
            context: Per-call execution context

        Returns:
            CapabilityResult with one JSON text item
        """
        try:
            validated = self.input_model.model_validate(
                {} if raw_params is None else raw_params
            )
        except ValidationError as e:
            return self._invalid_input(validation_details(e))

        try:
            result = await self.execute(validated, context)
            return self.format_result(result)
        except ValidationError as e:
            return self._invalid_input(validation_details(e))
        except CapabilityValidationError as e:
            return self._invalid_input(e.details())
        except Exception as e:
            logger.debug("Capability %s raised", self.name, exc_info=True)
            return _error_result(internal_error(str(e) or e.__class__.__name__).to_dict())

    def format_result(self, result: Any) -> CapabilityResult:
        """Serialize a domain result as indented JSON text."""
        plain = to_plain(result)
        is_error = isinstance(plain, dict) and plain.get("success") is False
        return CapabilityResult(
            content=[ResultContent(text=json.dumps(plain, indent=2))],
            is_error=is_error,
        )

    def _invalid_input(self, details: list[dict[str, str]]) -> CapabilityResult:
        return _error_result(invalid_input(details).to_dict())

    @classmethod
    def json_schema(cls) -> dict[str, Any]:
        """Describe the input contract for discovery."""
        return describe_model(cls.input_model)

    def __repr__(self) -> str:
        """String representation of the capability."""
        return f"<{self.__class__.__name__}: {self.name}>"


# =============================================================================
# Registry Helpers
# =============================================================================


def build_execution_context(server: "ServerContext") -> ExecutionContext:
    """Create a fresh ExecutionContext from the shared server context."""
    return ExecutionContext(
        working_directory=server.working_directory,
        environment=dict(server.environment),
        timeout_ms=server.config.server.timeout_ms,
        server=server,
    )


def unwrap_result(result: CapabilityResult) -> Any:
    """
    Turn a CapabilityResult back into a plain value.

    The first content item is parsed as JSON; text that is not JSON is
    passed through unchanged. A result without content means success.
    """
    if not result.content:
        return {"success": True}
    text = result.content[0].text
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text
