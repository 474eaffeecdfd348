"""
MCP transport for the STM32N6 development server.

Binds the shared ServerContext to an MCP low-level Server over stdio:

    tools/list       every registered tool with its input schema
    tools/call       Dispatcher.dispatch_tool(); the envelope is returned as
                     JSON text and isError mirrors envelope.success
    resources/*      stm32n6://config, stm32n6://templates, stm32n6://agents
    prompts/*        project setup, driver creation, model deployment

The transport only frames requests. Validation, hooks and error wrapping
all happen in the dispatcher, so the server turns off the SDK's own input
validation for tool calls.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server

from stm32n6_dev import __version__
from stm32n6_dev.context import ServerContext
from stm32n6_dev.dispatcher import Dispatcher
from stm32n6_dev.errors import PromptNotFoundError, ResourceNotFoundError
from stm32n6_dev.schema import Envelope

logger = logging.getLogger(__name__)

SERVER_NAME = "stm32n6-dev"
JSON_MIME = "application/json"


# =============================================================================
# Resources
# =============================================================================

RESOURCES = [
    ("stm32n6://config", "STM32N6 Configuration", "Effective server configuration"),
    ("stm32n6://templates", "Available Templates", "Registered code generation templates"),
    ("stm32n6://agents", "Available Agents", "Registered expert agents"),
]


def read_resource_text(server: ServerContext, uri: str) -> str:
    """
    Render a resource as JSON text.

    Raises:
        ResourceNotFoundError: If the URI is not one of RESOURCES
    """
    uri = uri.rstrip("/")
    if uri == "stm32n6://config":
        payload: Any = server.config.model_dump(mode="json")
    elif uri == "stm32n6://templates":
        payload = [info.to_dict() for info in server.templates.list_all()]
    elif uri == "stm32n6://agents":
        payload = server.agents.list_definitions()
    else:
        raise ResourceNotFoundError(uri=uri)
    return json.dumps(payload, indent=2)


# =============================================================================
# Prompts
# =============================================================================


@dataclass(frozen=True)
class PromptSpec:
    """A prompt template and its arguments as (name, description, required, default)."""

    name: str
    description: str
    arguments: tuple[tuple[str, str, bool, str], ...]
    text: str


PROMPTS = {
    spec.name: spec
    for spec in [
        PromptSpec(
            name="stm32n6-project-setup",
            description="Initialize a new STM32N6 project with proper structure",
            arguments=(
                ("project_name", "Name of the project", True, "my_project"),
                ("template", "Project template (base, freertos, aiml, graphics, networking)", False, "base"),
            ),
            text=(
                'Initialize a new STM32N6 project named "{project_name}" using the {template} '
                "template. Create the directory structure, copy HAL drivers, and generate "
                "startup code for {board}."
            ),
        ),
        PromptSpec(
            name="stm32n6-driver-create",
            description="Generate peripheral driver code",
            arguments=(
                ("peripheral", "Peripheral type (I2C, SPI, UART, CAN, etc.)", True, "I2C"),
                ("mode", "Operating mode (master, slave, etc.)", True, "master"),
            ),
            text=(
                "Generate a {peripheral} driver for STM32N6 in {mode} mode. "
                "Include DMA support and interrupt handlers."
            ),
        ),
        PromptSpec(
            name="stm32n6-model-deploy",
            description="Deploy ML model to Neural-ART NPU",
            arguments=(
                ("model_path", "Path to the model file", True, "model.onnx"),
                ("quantize", "Quantization scheme (int8, int4, mixed)", False, "{default_quantization}"),
            ),
            text=(
                'Deploy the ML model at "{model_path}" to STM32N6 Neural-ART NPU. '
                "Apply {quantize} quantization for optimal performance."
            ),
        ),
    ]
}


def render_prompt(server: ServerContext, name: str, arguments: dict[str, str] | None) -> str:
    """
    Fill a prompt's text, using defaults for missing arguments.

    Raises:
        PromptNotFoundError: If the prompt does not exist
    """
    spec = PROMPTS.get(name)
    if spec is None:
        raise PromptNotFoundError(prompt=name)

    settings = {
        "board": server.config.target.board,
        "default_quantization": server.config.edge_ai.default_quantization,
    }
    values = dict(settings)
    for arg_name, _, _, default in spec.arguments:
        given = (arguments or {}).get(arg_name)
        values[arg_name] = given if given else default.format(**settings)
    return spec.text.format(**values)


# =============================================================================
# MCP Server
# =============================================================================


def envelope_result(envelope: Envelope) -> types.CallToolResult:
    """Wrap an envelope as an MCP tool result."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(envelope.to_dict(), indent=2))],
        isError=not envelope.success,
    )


def create_server(context: ServerContext) -> Server:
    """
    Create an MCP server bound to a server context.

    Args:
        context: Fully built ServerContext

    Returns:
        MCP low-level Server with all handlers registered
    """
    server: Server = Server(SERVER_NAME, version=__version__)
    dispatcher = Dispatcher(context)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=tool.name, description=tool.description, inputSchema=tool.json_schema())
            for tool in context.tools.list_enabled()
        ]

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        envelope = await dispatcher.dispatch_tool(name, arguments or {})
        if not envelope.success and envelope.error is not None:
            logger.warning("Tool %s failed: %s", name, envelope.error.message)
        return envelope_result(envelope)

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return [
            types.Resource(uri=uri, name=name, description=description, mimeType=JSON_MIME)
            for uri, name, description in RESOURCES
        ]

    @server.read_resource()
    async def read_resource(uri: Any) -> list[ReadResourceContents]:
        return [ReadResourceContents(content=read_resource_text(context, str(uri)), mime_type=JSON_MIME)]

    @server.list_prompts()
    async def list_prompts() -> list[types.Prompt]:
        return [
            types.Prompt(
                name=spec.name,
                description=spec.description,
                arguments=[
                    types.PromptArgument(name=arg_name, description=description, required=required)
                    for arg_name, description, required, _ in spec.arguments
                ],
            )
            for spec in PROMPTS.values()
        ]

    @server.get_prompt()
    async def get_prompt(name: str, arguments: dict[str, str] | None) -> types.GetPromptResult:
        text = render_prompt(context, name, arguments)
        return types.GetPromptResult(
            description=PROMPTS[name].description,
            messages=[
                types.PromptMessage(role="user", content=types.TextContent(type="text", text=text)),
            ],
        )

    return server


async def run_stdio(context: ServerContext) -> None:
    """Serve MCP over stdin/stdout until the client disconnects."""
    server = create_server(context)
    logger.info(
        "STM32N6 Development MCP Server started (%d tools, %d agents)",
        context.tools.count(),
        context.agents.count(),
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
