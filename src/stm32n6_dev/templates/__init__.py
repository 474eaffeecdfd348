"""
Jinja2 templates for generated C code.
"""

from stm32n6_dev.templates.engine import BUILTIN_DIR, TemplateEngine, TemplateInfo

__all__ = [
    "BUILTIN_DIR",
    "TemplateEngine",
    "TemplateInfo",
]
