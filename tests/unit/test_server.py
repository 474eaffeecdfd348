"""
Unit tests for the MCP transport layer.

Tests cover:
- Resource rendering
- Prompt rendering with defaults from configuration
- Envelope to CallToolResult conversion
- Server construction and logging setup
"""

import json
import logging

import pytest
from mcp import types
from rich.logging import RichHandler

from stm32n6_dev.config import Config
from stm32n6_dev.context import build_server_context
from stm32n6_dev.errors import PromptNotFoundError, ResourceNotFoundError, internal_error
from stm32n6_dev.log import PACKAGE_LOGGER, configure_logging, to_logging_level
from stm32n6_dev.schema import Envelope, LogLevel
from stm32n6_dev.server import (
    PROMPTS,
    RESOURCES,
    SERVER_NAME,
    create_server,
    envelope_result,
    read_resource_text,
    render_prompt,
)


# =============================================================================
# Resources
# =============================================================================


class TestResources:
    """Tests for read_resource_text()."""

    def test_listed_uris(self) -> None:
        assert [uri for uri, _, _ in RESOURCES] == [
            "stm32n6://config",
            "stm32n6://templates",
            "stm32n6://agents",
        ]

    def test_config(self, server) -> None:
        data = json.loads(read_resource_text(server, "stm32n6://config"))
        assert data["target"]["mcu"] == "STM32N6570"
        assert data["server"]["log_level"] == "info"

    def test_templates(self, server) -> None:
        data = json.loads(read_resource_text(server, "stm32n6://templates"))
        names = {t["name"] for t in data}
        assert "clock/clock_config.c" in names
        assert all({"name", "category", "description", "variables"} <= set(t) for t in data)

    def test_agents(self, server) -> None:
        data = json.loads(read_resource_text(server, "stm32n6://agents/"))
        assert len(data) == 7

    def test_unknown(self, server) -> None:
        with pytest.raises(ResourceNotFoundError):
            read_resource_text(server, "stm32n6://secrets")


# =============================================================================
# Prompts
# =============================================================================


class TestPrompts:
    """Tests for render_prompt()."""

    def test_prompt_names(self) -> None:
        assert set(PROMPTS) == {
            "stm32n6-project-setup",
            "stm32n6-driver-create",
            "stm32n6-model-deploy",
        }

    def test_project_setup_uses_board(self, server) -> None:
        text = render_prompt(server, "stm32n6-project-setup", {"project_name": "cam"})
        assert text.startswith('Initialize a new STM32N6 project named "cam" using the base template.')
        assert "startup code for STM32N6570-DK." in text

    def test_driver_create(self, server) -> None:
        text = render_prompt(server, "stm32n6-driver-create", {"peripheral": "SPI", "mode": "slave"})
        assert text.startswith("Generate a SPI driver for STM32N6 in slave mode.")

    def test_model_deploy_default_quantization(self, temp_dir) -> None:
        server = build_server_context(
            Config.model_validate({"edge_ai": {"default_quantization": "mixed"}}),
            environ={},
            working_directory=str(temp_dir),
        )
        text = render_prompt(server, "stm32n6-model-deploy", {"model_path": "net.tflite"})
        assert "Apply mixed quantization" in text

    def test_missing_arguments_use_defaults(self, server) -> None:
        text = render_prompt(server, "stm32n6-driver-create", None)
        assert text.startswith("Generate a I2C driver for STM32N6 in master mode.")

    def test_unknown_prompt(self, server) -> None:
        with pytest.raises(PromptNotFoundError):
            render_prompt(server, "nope", {})


# =============================================================================
# MCP Server
# =============================================================================


class TestEnvelopeResult:
    """Tests for envelope_result()."""

    def test_success(self) -> None:
        result = envelope_result(Envelope.ok({"a": 1}))
        assert isinstance(result, types.CallToolResult)
        assert not result.isError
        assert json.loads(result.content[0].text) == {"success": True, "data": {"a": 1}}

    def test_failure(self) -> None:
        result = envelope_result(Envelope.fail(internal_error("boom")))
        assert result.isError
        assert json.loads(result.content[0].text)["error"]["message"] == "boom"


class TestCreateServer:
    """Tests for create_server()."""

    def test_name(self, server) -> None:
        mcp_server = create_server(server)
        assert mcp_server.name == SERVER_NAME

    def test_handlers_registered(self, server) -> None:
        mcp_server = create_server(server)
        for request in [
            types.ListToolsRequest,
            types.CallToolRequest,
            types.ListResourcesRequest,
            types.ReadResourceRequest,
            types.ListPromptsRequest,
            types.GetPromptRequest,
        ]:
            assert request in mcp_server.request_handlers


class TestLogging:
    """Tests for configure_logging()."""

    def test_levels(self) -> None:
        assert to_logging_level(LogLevel.WARN) == logging.WARNING
        assert to_logging_level("debug") == logging.DEBUG

    def test_single_rich_handler(self) -> None:
        configure_logging(LogLevel.INFO)
        logger = configure_logging(LogLevel.ERROR)
        assert logger.name == PACKAGE_LOGGER
        assert logger.level == logging.ERROR
        assert sum(isinstance(h, RichHandler) for h in logger.handlers) == 1
        assert logger.propagate is False
