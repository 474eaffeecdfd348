"""
Template engine for C code generation.

Templates are Jinja2 sources registered by name. Built-in templates ship
as `*.j2` files under templates/builtin/ and are loaded at startup; the
code generation tools render through this engine.

Design Decisions:
    - StrictUndefined: a missing variable is an error, never empty output
    - No autoescaping: the output is C, not HTML
    - Trailing newlines are kept so generated files end cleanly
    - A template's name is its path relative to the load root, without
      the .j2 suffix (e.g. "clock/clock_config.c")

Filters available to every template:
    upper, lower, camel, pascal, snake, hex, shift, log2, comment, json
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import DictLoader, Environment, StrictUndefined, meta

from stm32n6_dev.errors import TemplateNotFoundError

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".j2"
BUILTIN_DIR = Path(__file__).resolve().parent / "builtin"

_DESCRIPTION_RE = re.compile(r"^\s*\{#-?\s*(.+?)\s*-?#\}", re.DOTALL)
_WORD_BOUNDARY_RE = re.compile(r"[-_\s]+(.)?")


# =============================================================================
# Filters
# =============================================================================


def camel(value: str) -> str:
    """my-peripheral_name -> myPeripheralName"""
    joined = _WORD_BOUNDARY_RE.sub(lambda m: (m.group(1) or "").upper(), value)
    return joined[:1].lower() + joined[1:]


def pascal(value: str) -> str:
    """my-peripheral_name -> MyPeripheralName"""
    joined = _WORD_BOUNDARY_RE.sub(lambda m: (m.group(1) or "").upper(), value)
    return joined[:1].upper() + joined[1:]


def snake(value: str) -> str:
    """myPeripheral-name -> my_peripheral_name"""
    value = re.sub(r"([a-z])([A-Z])", r"\1_\2", value)
    return re.sub(r"[-\s]", "_", value).lower()


def hex_filter(value: int) -> str:
    return f"0x{value:X}"


def shift(value: int, bits: int) -> int:
    return value << bits


def log2(value: int) -> int:
    """Prescaler divider -> register encoding (1 -> 0, 2 -> 1, 4 -> 2)."""
    return max(int(value).bit_length() - 1, 0)


def comment(text: str) -> str:
    """Wrap text in a C block comment."""
    body = "\n * ".join(str(text).split("\n"))
    return f"/**\n * {body}\n */"


def json_filter(value: Any) -> str:
    return json.dumps(value, indent=2)


# =============================================================================
# Template Engine
# =============================================================================


@dataclass(frozen=True)
class TemplateInfo:
    """Metadata for a loaded template."""

    name: str
    category: str
    description: str
    variables: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "variables": list(self.variables),
        }


class TemplateEngine:
    """
    Registry and renderer for Jinja2 templates.

    Example:
        >>> engine = TemplateEngine()
        >>> engine.register_template("greet", "Hello {{ name | upper }}")
        >>> engine.render("greet", {"name": "n6"})
        'Hello N6'
    """

    def __init__(self) -> None:
        """Initialize an empty engine with the code generation filters."""
        self._sources: dict[str, str] = {}
        self._info: dict[str, TemplateInfo] = {}
        self.env = Environment(
            loader=DictLoader(self._sources),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters.update(
            {
                "upper": lambda s: str(s).upper(),
                "lower": lambda s: str(s).lower(),
                "camel": camel,
                "pascal": pascal,
                "snake": snake,
                "hex": hex_filter,
                "shift": shift,
                "log2": log2,
                "comment": comment,
                "json": json_filter,
            }
        )

    def register_template(
        self,
        name: str,
        source: str,
        category: str = "general",
    ) -> TemplateInfo:
        """
        Register a template from a string, replacing any previous one.

        Args:
            name: Template name used by render()
            source: Jinja2 source
            category: Grouping shown in template listings

        Returns:
            Metadata extracted from the source
        """
        match = _DESCRIPTION_RE.match(source)
        variables = sorted(meta.find_undeclared_variables(self.env.parse(source)))
        info = TemplateInfo(
            name=name,
            category=category,
            description=match.group(1) if match else "No description",
            variables=variables,
        )
        self._sources[name] = source
        self._info[name] = info
        return info

    def load_templates(self, directory: Path | str) -> int:
        """
        Load every *.j2 file under a directory.

        The category of a template is its first directory below the root,
        or "general" for files at the root.

        Returns:
            Number of templates loaded
        """
        root = Path(directory)
        if not root.is_dir():
            logger.debug("Template directory %s does not exist", root)
            return 0

        count = 0
        for path in sorted(root.rglob(f"*{TEMPLATE_SUFFIX}")):
            relative = path.relative_to(root)
            name = relative.with_suffix("").as_posix()
            category = relative.parts[0] if len(relative.parts) > 1 else "general"
            self.register_template(name, path.read_text(encoding="utf-8"), category)
            count += 1

        logger.debug("Loaded %d templates from %s", count, root)
        return count

    def load_builtin(self) -> int:
        """Load the templates shipped with the package."""
        return self.load_templates(BUILTIN_DIR)

    def render(self, name: str, context: dict[str, Any]) -> str:
        """
        Render a registered template.

        Raises:
            TemplateNotFoundError: If no template has this name
        """
        if name not in self._sources:
            raise TemplateNotFoundError(template=name)
        return self.env.get_template(name).render(**context)

    def has(self, name: str) -> bool:
        """Return True if a template with this name is registered."""
        return name in self._sources

    def list_all(self) -> list[TemplateInfo]:
        """Metadata for every registered template."""
        return list(self._info.values())

    def get_info(self, name: str) -> TemplateInfo | None:
        """Metadata for one template, or None."""
        return self._info.get(name)
