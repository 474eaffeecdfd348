"""
System architecture agent.

Answers memory layout, clock tree and boot sequence questions for the
STM32N6570. Anything else gets the list of topics it covers.
"""

import logging

from stm32n6_dev.agents.base import Agent, AgentInput, AgentResult
from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.schema import CapabilityCategory


class Stm32ArchitectAgent(Agent):
    """System and software architecture expert."""

    name = "stm32-architect"
    description = "System and software architecture expert for STM32N6"
    category = CapabilityCategory.ANALYSIS
    capabilities = [
        "memory-layout",
        "clock-configuration",
        "boot-sequence",
        "power-management",
        "hal-integration",
        "middleware-config",
    ]
    expertise = [
        "memory-maps",
        "clock-trees",
        "linker-scripts",
        "startup-code",
        "peripheral-configuration",
        "dma-channels",
    ]

    async def execute(self, params: AgentInput, context: ExecutionContext) -> AgentResult:
        task = params.task.lower()

        if "memory" in task or "layout" in task:
            self.log(context, logging.INFO, "Memory layout requested")
            return self._memory_layout(context)
        if "clock" in task or "frequency" in task:
            self.log(context, logging.INFO, "Clock configuration requested")
            return self._clock_guidance()
        if "boot" in task or "startup" in task:
            self.log(context, logging.INFO, "Boot sequence requested")
            return self._boot_sequence()

        return self.success(
            "STM32 Architect Agent ready. I can help with memory layout, clock "
            "configuration, boot sequences, and system architecture.",
            data={"available_topics": list(self.capabilities)},
        )

    def _memory_layout(self, context: ExecutionContext) -> AgentResult:
        board = context.server.config.target.board if context.server else "STM32N6570-DK"
        return self.success(
            f"Memory layout analysis for {board}",
            data={"total_ram": "4.2 MB", "total_flash": "2 MB"},
            recommendations=[
                "Use ITCM for interrupt handlers (128 KB)",
                "Use DTCM for stack and frequently accessed data (128 KB)",
                "Use SRAM3 for AI/ML buffers (512 KB)",
                "Configure MPU for memory protection",
            ],
            next_steps=["Run memory_map on the linked ELF to check section placement"],
        )

    def _clock_guidance(self) -> AgentResult:
        return self.success(
            "Clock configuration guidance for STM32N6570",
            data={
                "max_sysclk": "800 MHz",
                "max_ahb": "800 MHz",
                "max_apb1": "200 MHz",
                "max_apb2": "400 MHz",
                "npu_clock": "1000 MHz",
            },
            recommendations=[
                "Use PLL1 for system clock",
                "Use PLL2 for NPU clock",
                "Enable CSS for clock security",
            ],
            next_steps=["Generate the clock tree with clock_config"],
        )

    def _boot_sequence(self) -> AgentResult:
        return self.success(
            "Boot sequence configuration for STM32N6570",
            data={
                "steps": [
                    "1. Reset -> Read BOOT pins",
                    "2. Load initial SP from vector table",
                    "3. Execute Reset_Handler",
                    "4. Initialize data sections (.data)",
                    "5. Zero BSS section",
                    "6. Enable FPU",
                    "7. Enable caches",
                    "8. Call SystemInit()",
                    "9. Call main()",
                ]
            },
        )
