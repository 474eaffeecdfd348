"""
Unit tests for the template engine.

Tests cover:
- Registration and metadata extraction
- Rendering with filters
- Strict undefined variables
- Loading the built-in templates
"""

from pathlib import Path

import pytest
from jinja2 import UndefinedError

from stm32n6_dev.errors import TemplateNotFoundError
from stm32n6_dev.templates import TemplateEngine
from stm32n6_dev.templates.engine import camel, comment, hex_filter, log2, pascal, snake


class TestFilters:
    """Tests for the code generation filters."""

    def test_case_filters(self) -> None:
        assert camel("my-peripheral_name") == "myPeripheralName"
        assert pascal("my-peripheral_name") == "MyPeripheralName"
        assert snake("myPeripheral-name") == "my_peripheral_name"

    def test_numeric_filters(self) -> None:
        assert hex_filter(255) == "0xFF"
        assert log2(1) == 0
        assert log2(4) == 2
        assert log2(512) == 9

    def test_comment(self) -> None:
        assert comment("one\ntwo") == "/**\n * one\n * two\n */"


class TestTemplateEngine:
    """Tests for TemplateEngine."""

    def test_render_registered(self) -> None:
        engine = TemplateEngine()
        engine.register_template("greet", "Hello {{ name | upper }}")
        assert engine.render("greet", {"name": "n6"}) == "Hello N6"

    def test_metadata(self) -> None:
        engine = TemplateEngine()
        info = engine.register_template(
            "reg",
            "{# Register access macro -#}\n#define {{ name }} {{ addr | hex }}\n",
            category="macros",
        )
        assert info.description == "Register access macro"
        assert info.category == "macros"
        assert info.variables == ["addr", "name"]
        assert engine.render("reg", {"name": "BASE", "addr": 4096}) == "#define BASE 0x1000\n"

    def test_default_description(self) -> None:
        info = TemplateEngine().register_template("plain", "text")
        assert info.description == "No description"

    def test_missing_variable_is_error(self) -> None:
        engine = TemplateEngine()
        engine.register_template("t", "{{ missing }}")
        with pytest.raises(UndefinedError):
            engine.render("t", {})

    def test_unknown_template(self) -> None:
        with pytest.raises(TemplateNotFoundError):
            TemplateEngine().render("nope", {})

    def test_reregister_replaces(self) -> None:
        engine = TemplateEngine()
        engine.register_template("t", "one")
        assert engine.render("t", {}) == "one"
        engine.register_template("t", "two")
        assert engine.render("t", {}) == "two"
        assert len(engine.list_all()) == 1

    def test_no_autoescape(self) -> None:
        engine = TemplateEngine()
        engine.register_template("t", "{{ code }}")
        assert engine.render("t", {"code": "a < b && c"}) == "a < b && c"

    def test_load_templates(self, temp_dir: Path) -> None:
        (temp_dir / "clock").mkdir()
        (temp_dir / "clock" / "pll.h.j2").write_text("#define PLLN {{ n }}\n")
        (temp_dir / "root.txt.j2").write_text("root")
        (temp_dir / "ignored.txt").write_text("ignored")

        engine = TemplateEngine()
        assert engine.load_templates(temp_dir) == 2
        assert engine.has("clock/pll.h")
        assert engine.get_info("clock/pll.h").category == "clock"
        assert engine.get_info("root.txt").category == "general"
        assert not engine.has("ignored")

    def test_load_missing_directory(self, temp_dir: Path) -> None:
        assert TemplateEngine().load_templates(temp_dir / "missing") == 0

    def test_builtin_templates(self) -> None:
        engine = TemplateEngine()
        assert engine.load_builtin() == 6
        names = {info.name for info in engine.list_all()}
        assert names == {
            "clock/clock_config.c",
            "clock/clock_config.h",
            "peripheral/config.h",
            "peripheral/driver.c",
            "peripheral/driver.h",
            "peripheral/example.c",
        }
        for info in engine.list_all():
            assert info.description != "No description"
