"""
Peripheral driver agent.

Routes on the peripheral family named in the task and drafts a driver
skeleton through the shared template engine. The instance defaults to the
first of its family (I2C1, SPI1, USART1) and can be chosen with the
``peripheral`` parameter.
"""

import logging

from stm32n6_dev.agents.base import Agent, AgentInput, AgentResult, GeneratedFile
from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.tools.codegen import IRQ_MAP, peripheral_type, target_mcu, templates_for

# task keyword -> (family label, default instance, features)
DRIVER_ROUTES = [
    ("i2c", "I2C", "I2C1", ["Master mode", "DMA support", "Interrupt handling"]),
    ("spi", "SPI", "SPI1", ["Master mode", "DMA support", "Chip select management"]),
    ("usart", "UART", "USART1", ["DMA support", "Circular buffer", "Interrupt handling"]),
    ("uart", "UART", "USART1", ["DMA support", "Circular buffer", "Interrupt handling"]),
]


class DriverDeveloperAgent(Agent):
    """Peripheral driver development specialist."""

    name = "driver-developer"
    description = "Peripheral driver development specialist for STM32N6"
    category = CapabilityCategory.CODEGEN
    capabilities = [
        "i2c-driver",
        "spi-driver",
        "uart-driver",
        "can-driver",
        "ethernet-driver",
        "dma-configuration",
        "interrupt-handling",
    ]
    expertise = [
        "hal-drivers",
        "ll-drivers",
        "dma-transfers",
        "circular-buffers",
        "interrupt-handlers",
        "peripheral-init",
    ]

    async def execute(self, params: AgentInput, context: ExecutionContext) -> AgentResult:
        task = params.task.lower()

        for keyword, label, default_instance, features in DRIVER_ROUTES:
            if keyword in task:
                instance = str(params.parameters.get("peripheral", default_instance)).upper()
                return self._draft_driver(context, label, instance, features)

        return self.success(
            "Driver Developer Agent ready. I can help create drivers for I2C, SPI, "
            "UART, CAN, Ethernet, and other peripherals.",
            data={
                "supported_peripherals": ["I2C", "SPI", "UART", "CAN", "Ethernet", "DSI", "CSI"],
                "patterns": ["HAL", "LL", "DMA-based", "Interrupt-driven"],
            },
        )

    def _draft_driver(
        self,
        context: ExecutionContext,
        label: str,
        instance: str,
        features: list[str],
    ) -> AgentResult:
        self.log(context, logging.INFO, f"Drafting {instance} driver")
        stem = label.lower()
        variables = {
            "mcu": target_mcu(context),
            "peripheral": instance,
            "periph_type": peripheral_type(instance),
            "mode": "master",
            "driver_type": "HAL",
            "use_dma": True,
            "use_interrupts": True,
            "speed": 0,
            "interrupts": [irq.model_dump() for irq in IRQ_MAP.get(instance, [])],
        }
        engine = templates_for(context)

        files = [
            GeneratedFile(
                path=f"{stem}_driver.h",
                content=engine.render("peripheral/driver.h", variables),
                description=f"{instance} driver interface",
            ),
            GeneratedFile(
                path=f"{stem}_driver.c",
                content=engine.render("peripheral/driver.c", variables),
                description=f"{instance} driver implementation",
            ),
        ]
        return self.success(
            f"{label} driver generation complete",
            data={
                "peripheral": label,
                "instance": instance,
                "features": features,
                "code_structure": {
                    "header": f"{stem}_driver.h",
                    "source": f"{stem}_driver.c",
                    "config": f"{stem}_config.h",
                },
            },
            next_steps=[f"Run peripheral_config for {instance} to generate the full driver set"],
            files=files,
        )
