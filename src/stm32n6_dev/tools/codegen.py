"""
Code generation tools.

    clock_config       derive bus frequencies and render clock tree code
    peripheral_config  render HAL/LL driver skeletons for a peripheral

Both render through the server's TemplateEngine (templates/builtin/).
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.errors import CapabilityValidationError
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.templates import TemplateEngine
from stm32n6_dev.tools.base import Tool

MAX_SYSCLK = 800_000_000
MAX_PCLK1 = 200_000_000
MAX_PCLK2 = 400_000_000
HSE_DEFAULT = 25_000_000
HSI_FREQUENCY = 64_000_000

VALID_PRESCALERS = {1, 2, 4, 8, 16, 64, 128, 256, 512}


class GeneratedFile(BaseModel):
    """A file produced by a code generation tool."""

    path: str
    content: str
    type: Literal["source", "header", "config", "example"]


def templates_for(context: ExecutionContext) -> TemplateEngine:
    """The server's template engine, or a fresh one with the built-ins."""
    if context.server is not None:
        return context.server.templates
    engine = TemplateEngine()
    engine.load_builtin()
    return engine


def target_mcu(context: ExecutionContext) -> str:
    return context.server.config.target.mcu if context.server else "STM32N6570"


# =============================================================================
# clock_config
# =============================================================================


class PllConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    m: int = Field(default=5, description="Input divider", gt=0)
    n: int = Field(default=160, description="VCO multiplier", gt=0)
    p: int = Field(default=2, description="P output divider", gt=0)
    q: int = Field(default=2, description="Q output divider", gt=0)
    r: int = Field(default=2, description="R output divider", gt=0)


class BusPrescalers(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    ahb: int = Field(default=1, description="AHB prescaler")
    apb1: int = Field(default=4, description="APB1 prescaler")
    apb2: int = Field(default=2, description="APB2 prescaler")
    apb3: int = Field(default=2, description="APB3 prescaler")


class ClockInput(BaseModel):
    """Input contract for clock_config."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sysclk: int = Field(..., description="Target system clock frequency in Hz", gt=0, le=MAX_SYSCLK)
    source: Literal["HSI", "HSE", "PLL"] = Field(default="PLL", description="System clock source")
    hse_frequency: int | None = Field(default=None, description="HSE frequency in Hz", gt=0)
    pll_config: PllConfig | None = Field(default=None, description="PLL1 dividers")
    bus_prescalers: BusPrescalers | None = Field(default=None, description="Bus prescalers")
    output_path: str | None = Field(default=None, description="Directory for generated files")


class ClockFrequencies(BaseModel):
    sysclk: int
    hclk: int
    pclk1: int
    pclk2: int
    pclk3: int


class ClockConfigResult(BaseModel):
    success: bool
    frequencies: ClockFrequencies
    files: list[GeneratedFile]
    warnings: list[str] = Field(default_factory=list)


def derive_frequencies(sysclk: int, prescalers: BusPrescalers) -> ClockFrequencies:
    """Divide SYSCLK down the bus tree."""
    return ClockFrequencies(
        sysclk=sysclk,
        hclk=sysclk // prescalers.ahb,
        pclk1=sysclk // prescalers.apb1,
        pclk2=sysclk // prescalers.apb2,
        pclk3=sysclk // prescalers.apb3,
    )


class ClockConfigTool(Tool):
    """Generate clock tree configuration code."""

    name = "clock_config"
    description = "Generate clock tree configuration for STM32N6"
    category = CapabilityCategory.CODEGEN
    input_model = ClockInput

    async def execute(self, params: ClockInput, context: ExecutionContext) -> ClockConfigResult:
        prescalers = params.bus_prescalers or BusPrescalers()
        for bus, divider in prescalers.model_dump().items():
            if divider not in VALID_PRESCALERS:
                raise CapabilityValidationError(
                    message=f"Unsupported {bus.upper()} prescaler: {divider}",
                    path=f"bus_prescalers.{bus}",
                )

        frequencies = derive_frequencies(params.sysclk, prescalers)
        warnings = []
        if frequencies.pclk1 > MAX_PCLK1:
            warnings.append("APB1 frequency exceeds 200 MHz maximum")
        if frequencies.pclk2 > MAX_PCLK2:
            warnings.append("APB2 frequency exceeds 400 MHz maximum")

        variables = {
            "mcu": target_mcu(context),
            "sysclk": params.sysclk,
            "source": params.source,
            "frequencies": frequencies.model_dump(),
            "pll": (params.pll_config or PllConfig()).model_dump(),
            "prescalers": prescalers.model_dump(),
            "hse_frequency": params.hse_frequency or HSE_DEFAULT,
            "hsi_frequency": HSI_FREQUENCY,
        }
        engine = templates_for(context)
        prefix = f"{params.output_path.rstrip('/')}/" if params.output_path else ""
        files = [
            GeneratedFile(
                path=f"{prefix}clock_config.c",
                content=engine.render("clock/clock_config.c", variables),
                type="source",
            ),
            GeneratedFile(
                path=f"{prefix}clock_config.h",
                content=engine.render("clock/clock_config.h", variables),
                type="header",
            ),
        ]
        return ClockConfigResult(success=True, frequencies=frequencies, files=files, warnings=warnings)


# =============================================================================
# peripheral_config
# =============================================================================

Peripheral = Literal[
    "I2C1", "I2C2", "I2C3",
    "SPI1", "SPI2", "SPI3",
    "USART1", "USART2", "USART3", "UART4", "UART5",
    "CAN", "CANFD",
    "ETH",
    "DSI", "CSI",
    "ADC1", "ADC2",
    "DAC",
    "TIM1", "TIM2", "TIM3", "TIM4", "TIM5",
]


class PinAssignment(BaseModel):
    pin: str
    mode: str
    pull: str
    alternate: int


class DmaChannel(BaseModel):
    stream: str
    channel: int
    direction: Literal["memory_to_periph", "periph_to_memory"]


class InterruptConfig(BaseModel):
    irq: str
    priority: int
    sub_priority: int


def _af(pins: list[str], pull: str, alternate: int) -> list[PinAssignment]:
    return [PinAssignment(pin=p, mode="alternate", pull=pull, alternate=alternate) for p in pins]


PIN_MAP: dict[str, list[PinAssignment]] = {
    "I2C1": _af(["PB6", "PB7"], "up", 4),
    "I2C2": _af(["PB10", "PB11"], "up", 4),
    "SPI1": _af(["PA5", "PA6", "PA7"], "none", 5),
    "USART1": _af(["PA9", "PA10"], "up", 7),
}

DMA_MAP: dict[str, list[DmaChannel]] = {
    "I2C1": [
        DmaChannel(stream="DMA1_Stream0", channel=1, direction="memory_to_periph"),
        DmaChannel(stream="DMA1_Stream1", channel=1, direction="periph_to_memory"),
    ],
    "SPI1": [
        DmaChannel(stream="DMA1_Stream2", channel=3, direction="memory_to_periph"),
        DmaChannel(stream="DMA1_Stream3", channel=3, direction="periph_to_memory"),
    ],
}

IRQ_MAP: dict[str, list[InterruptConfig]] = {
    "I2C1": [
        InterruptConfig(irq="I2C1_EV_IRQn", priority=5, sub_priority=0),
        InterruptConfig(irq="I2C1_ER_IRQn", priority=5, sub_priority=0),
    ],
    "SPI1": [InterruptConfig(irq="SPI1_IRQn", priority=5, sub_priority=0)],
    "USART1": [InterruptConfig(irq="USART1_IRQn", priority=5, sub_priority=0)],
}

PERIPHERAL_TYPES = [
    ("I2C", "I2C"),
    ("SPI", "SPI"),
    ("USART", "USART"),
    ("UART", "USART"),
    ("CAN", "CAN"),
    ("ETH", "Ethernet"),
    ("DSI", "DSI"),
    ("CSI", "CSI"),
    ("ADC", "ADC"),
    ("DAC", "DAC"),
    ("TIM", "Timer"),
]

DEFAULT_SPEEDS = {"I2C": 400000, "SPI": 10000000, "USART": 115200, "CAN": 500000}


def peripheral_type(peripheral: str) -> str:
    """Map an instance name (I2C1, UART4) onto its peripheral family."""
    for prefix, family in PERIPHERAL_TYPES:
        if peripheral.startswith(prefix):
            return family
    return "Unknown"


class PeripheralInput(BaseModel):
    """Input contract for peripheral_config."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    peripheral: Peripheral = Field(..., description="Peripheral instance")
    mode: str = Field(..., description="Operating mode (master, slave, tx, rx, etc.)")
    config: dict[str, Any] = Field(default_factory=dict, description="Peripheral-specific configuration")
    output_path: str | None = Field(default=None, description="Directory for generated files")
    use_dma: bool = Field(default=True, description="Use DMA transfers")
    use_interrupts: bool = Field(default=True, description="Use interrupts")
    driver_type: Literal["HAL", "LL"] = Field(default="HAL", description="Driver layer")
    generate_example: bool = Field(default=True, description="Also generate a usage example")


class PeripheralConfigResult(BaseModel):
    success: bool
    files: list[GeneratedFile]
    pin_config: list[PinAssignment]
    dma_config: list[DmaChannel] | None = None
    interrupt_config: list[InterruptConfig] | None = None


class PeripheralConfigTool(Tool):
    """Generate peripheral initialization code."""

    name = "peripheral_config"
    description = "Generate peripheral initialization code for STM32N6"
    category = CapabilityCategory.CODEGEN
    input_model = PeripheralInput

    async def execute(self, params: PeripheralInput, context: ExecutionContext) -> PeripheralConfigResult:
        family = peripheral_type(params.peripheral)
        interrupts = IRQ_MAP.get(params.peripheral, []) if params.use_interrupts else []
        dma = DMA_MAP.get(params.peripheral, []) if params.use_dma else []

        variables = {
            "mcu": target_mcu(context),
            "peripheral": params.peripheral,
            "periph_type": family,
            "mode": params.mode,
            "driver_type": params.driver_type,
            "use_dma": params.use_dma,
            "use_interrupts": params.use_interrupts,
            "speed": params.config.get("speed", DEFAULT_SPEEDS.get(family, 0)),
            "interrupts": [irq.model_dump() for irq in interrupts],
        }

        engine = templates_for(context)
        stem = params.peripheral.lower()
        prefix = f"{params.output_path.rstrip('/')}/" if params.output_path else ""
        outputs = [
            ("driver.h", f"{stem}_driver.h", "header"),
            ("driver.c", f"{stem}_driver.c", "source"),
            ("config.h", f"{stem}_config.h", "config"),
        ]
        if params.generate_example:
            outputs.append(("example.c", f"{stem}_example.c", "example"))

        files = [
            GeneratedFile(
                path=prefix + filename,
                content=engine.render(f"peripheral/{template}", variables),
                type=kind,
            )
            for template, filename, kind in outputs
        ]

        return PeripheralConfigResult(
            success=True,
            files=files,
            pin_config=PIN_MAP.get(
                params.peripheral,
                [PinAssignment(pin="TBD", mode="alternate", pull="none", alternate=0)],
            ),
            dma_config=dma or None,
            interrupt_config=interrupts or None,
        )
