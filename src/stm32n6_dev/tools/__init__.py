"""
Tools module for the STM32N6 development server.

Tools are the single-purpose capabilities exposed over MCP. Each returns
one structured domain result per call.

Built-in tools:
    - stm32_build: Build a CubeIDE, CMake or Makefile project
    - stm32_flash: Program the target through a debug probe
    - stm32_debug: Start a GDB server session
    - register_inspect: Decode peripheral registers
    - peripheral_config: Generate peripheral driver code
    - clock_config: Generate clock tree configuration
    - model_convert: Prepare an ML model for Neural-ART
    - model_quantize: Estimate quantization results
    - trace_analyze: Analyze SWV/ETM traces
    - memory_map: Report memory layout and usage

Architecture:
    - Tool: Capability subclass with path helpers
    - ToolRegistry: name -> tool lookup with enable/disable gating

Hooks run around tools in the dispatcher, never within tools.
"""

from stm32n6_dev.tools.analysis import MemoryMapTool, TraceAnalyzeTool
from stm32n6_dev.tools.base import Tool
from stm32n6_dev.tools.build import BuildTool
from stm32n6_dev.tools.codegen import ClockConfigTool, PeripheralConfigTool
from stm32n6_dev.tools.debug import DebugTool, RegisterInspectTool
from stm32n6_dev.tools.deploy import FlashTool
from stm32n6_dev.tools.model import ModelConvertTool, ModelQuantizeTool
from stm32n6_dev.tools.registry import ToolRegistration, ToolRegistry

BUILTIN_TOOLS: list[type[Tool]] = [
    BuildTool,
    FlashTool,
    DebugTool,
    PeripheralConfigTool,
    ClockConfigTool,
    ModelConvertTool,
    ModelQuantizeTool,
    TraceAnalyzeTool,
    MemoryMapTool,
    RegisterInspectTool,
]


def register_all_tools(registry: ToolRegistry) -> None:
    """Register every built-in tool in the given registry."""
    for tool_class in BUILTIN_TOOLS:
        registry.register(tool_class())


__all__ = [
    "BUILTIN_TOOLS",
    "Tool",
    "ToolRegistration",
    "ToolRegistry",
    "register_all_tools",
    "BuildTool",
    "FlashTool",
    "DebugTool",
    "RegisterInspectTool",
    "PeripheralConfigTool",
    "ClockConfigTool",
    "ModelConvertTool",
    "ModelQuantizeTool",
    "TraceAnalyzeTool",
    "MemoryMapTool",
]
