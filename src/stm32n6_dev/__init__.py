"""
stm32n6_dev - MCP server for STM32N6 embedded and Edge AI development.

The server exposes a fixed set of simulated development operations (build,
flash, debug, code generation, model conversion and analysis) as MCP tools,
plus a set of keyword-routed expert agents. Every call flows through the
same pipeline:

    pre-hooks -> registry lookup -> validate -> execute -> envelope -> post-hooks

Example usage:
    $ stm32n6-dev serve
    $ stm32n6-dev tools
    $ stm32n6-dev call clock_config --params '{"target_frequency": 400000000}'
"""

__version__ = "0.1.0"
__author__ = "STM32N6 Dev Server Contributors"

__all__ = [
    "__version__",
    "__author__",
]
