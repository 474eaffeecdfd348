"""
Debug tools: GDB sessions and peripheral register inspection.

    stm32_debug       start a GDB server session for an ELF file
    register_inspect  decode a peripheral register into its bit fields
"""

import asyncio
import itertools
import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.tools.base import Tool

GDB_PORT = 3333
TELNET_PORT = 4444


# =============================================================================
# stm32_debug
# =============================================================================


class DebugInput(BaseModel):
    """Input contract for stm32_debug."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    elf_path: str = Field(..., description="Path to ELF file with debug symbols")
    probe: Literal["stlink", "jlink", "ulink"] | None = Field(default=None, description="Debug probe")
    interface: Literal["swd", "jtag"] | None = Field(default=None, description="Debug interface")
    speed: int | None = Field(default=None, description="Probe clock in kHz", gt=0)
    swv: bool = Field(default=False, description="Enable Serial Wire Viewer")
    swv_speed: int = Field(default=2000, description="SWV clock in kHz", gt=0)
    rtos_awareness: Literal["none", "freertos", "threadx"] = Field(
        default="none",
        description="RTOS thread awareness",
    )
    init_commands: list[str] | None = Field(default=None, description="GDB commands run at startup")


class DebugResult(BaseModel):
    """Result of stm32_debug."""

    success: bool
    message: str
    session_id: str | None = None
    gdb_port: int | None = None
    telnet_port: int | None = None
    target_status: str | None = None


class DebugTool(Tool):
    """Start a GDB debug session against the target."""

    name = "stm32_debug"
    description = "Start GDB debug session with STM32N6 target"
    category = CapabilityCategory.DEBUG
    input_model = DebugInput

    def __init__(self) -> None:
        self._sessions = itertools.count(1)

    async def execute(self, params: DebugInput, context: ExecutionContext) -> DebugResult:
        path = self.resolve_path(params.elf_path, context)
        if not await asyncio.to_thread(path.is_file):
            return DebugResult(success=False, message=f"ELF file not found: {params.elf_path}")

        settings = context.server.config.debug if context.server else None
        probe = params.probe or (settings.probe if settings else "stlink")
        interface = params.interface or (settings.interface if settings else "swd")
        speed = params.speed or (settings.speed if settings else 4000)

        session_id = f"debug-{int(time.time() * 1000)}-{next(self._sessions)}"
        return DebugResult(
            success=True,
            session_id=session_id,
            gdb_port=GDB_PORT,
            telnet_port=TELNET_PORT,
            target_status="halted",
            message=self._startup_message(params, probe, interface, speed),
        )

    @staticmethod
    def _startup_message(params: DebugInput, probe: str, interface: str, speed: int) -> str:
        lines = [
            "Debug session started",
            f"ELF: {params.elf_path}",
            f"Probe: {probe}",
            f"Interface: {interface} @ {speed} kHz",
            f"GDB Port: {GDB_PORT}",
            f"Telnet Port: {TELNET_PORT}",
        ]
        if params.swv:
            lines.append(f"SWV: Enabled @ {params.swv_speed} kHz")
        if params.rtos_awareness != "none":
            lines.append(f"RTOS Awareness: {params.rtos_awareness}")
        for command in params.init_commands or []:
            lines.append(f"(gdb) {command}")
        lines += [
            "",
            "Target halted at address 0x08000100",
            "Ready for debugging.",
            "",
            "GDB commands available:",
            "- break main         : Set breakpoint at main()",
            "- continue           : Resume execution",
            "- step               : Single step",
            "- next               : Step over",
            "- info registers     : Display registers",
            "- x/10x 0x20000000   : Examine memory",
        ]
        return "\n".join(lines)


# =============================================================================
# register_inspect
# =============================================================================

PERIPHERAL_BASES = {
    "GPIOA": 0x42020000,
    "GPIOB": 0x42020400,
    "GPIOC": 0x42020800,
    "GPIOD": 0x42020C00,
    "GPIOE": 0x42021000,
    "GPIOF": 0x42021400,
    "GPIOG": 0x42021800,
    "GPIOH": 0x42021C00,
    "GPIOI": 0x42022000,
    "I2C1": 0x40005400,
    "I2C2": 0x40005800,
    "I2C3": 0x40005C00,
    "SPI1": 0x40013000,
    "SPI2": 0x40003800,
    "SPI3": 0x40003C00,
    "USART1": 0x40011000,
    "USART2": 0x40004400,
    "USART3": 0x40004800,
    "CAN1": 0x40006400,
    "ETH": 0x40028000,
    "RCC": 0x46020800,
    "PWR": 0x46020000,
}

# (register, offset, description, [(field, bit position, description)])
REGISTER_DEFS: dict[str, dict[str, tuple[int, str, list[tuple[str, str, str]]]]] = {
    "I2C1": {
        "CR1": (
            0x00,
            "Control Register 1",
            [
                ("PE", "0", "Peripheral enable"),
                ("TXIE", "1", "TX interrupt enable"),
                ("RXIE", "2", "RX interrupt enable"),
                ("ADDRIE", "3", "Address match interrupt enable"),
                ("NACKIE", "4", "NACK interrupt enable"),
                ("STOPIE", "5", "STOP interrupt enable"),
                ("TCIE", "6", "Transfer complete interrupt enable"),
                ("ERRIE", "7", "Error interrupt enable"),
            ],
        ),
        "CR2": (
            0x04,
            "Control Register 2",
            [
                ("SADD0", "0", "Slave address bit 0"),
                ("SADD1-7", "1-7", "Slave address bits 1-7"),
                ("RD_WRN", "10", "Transfer direction"),
                ("START", "13", "Start generation"),
                ("STOP", "14", "Stop generation"),
                ("NACK", "15", "NACK generation"),
            ],
        ),
        "SR1": (
            0x14,
            "Status Register 1",
            [
                ("SB", "0", "Start bit"),
                ("ADDR", "1", "Address sent"),
                ("BTF", "2", "Byte transfer finished"),
                ("ADD10", "3", "10-bit header sent"),
                ("STOPF", "4", "Stop detection"),
            ],
        ),
    },
    "GPIOA": {
        "MODER": (
            0x00,
            "GPIO Mode Register",
            [
                ("MODER0", "0-1", "Port mode for pin 0"),
                ("MODER1", "2-3", "Port mode for pin 1"),
            ],
        ),
        "ODR": (
            0x14,
            "Output Data Register",
            [("ODR0-15", "0-15", "Output data")],
        ),
    },
}

SIMULATED_VALUES = {
    ("I2C1", "CR1"): 0x0001,
    ("I2C1", "CR2"): 0x0000,
    ("I2C1", "SR1"): 0x0001,
    ("GPIOA", "MODER"): 0xA8000000,
    ("GPIOA", "ODR"): 0x0000,
}


def extract_bits(value: int, position: str) -> int:
    """Extract a single bit ("3") or an inclusive bit range ("1-7")."""
    low, _, high = position.partition("-")
    lo = int(low)
    hi = int(high) if high else lo
    return (value >> lo) & ((1 << (hi - lo + 1)) - 1)


class RegisterInput(BaseModel):
    """Input contract for register_inspect."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    action: Literal["read", "write", "modify", "read_all"] = Field(..., description="Register operation")
    peripheral: str = Field(..., description="Peripheral name (e.g., I2C1, GPIOA)")
    register_name: str = Field(..., alias="register", description="Register name")
    value: int | None = Field(default=None, description="Value to write")
    mask: int | None = Field(default=None, description="Bit mask for modify")
    session_id: str | None = Field(default=None, description="Debug session to use")


class BitField(BaseModel):
    name: str
    position: str
    value: int
    description: str


class RegisterResult(BaseModel):
    """Result of register_inspect."""

    success: bool
    value: int = 0
    hex_value: str = "0x00000000"
    binary_value: str = "0b" + "0" * 32
    address: str | None = None
    bits: list[BitField] = Field(default_factory=list)
    description: str = ""
    error: str | None = None


class RegisterInspectTool(Tool):
    """Decode peripheral registers on the connected target."""

    name = "register_inspect"
    description = "Read or write peripheral registers on connected target"
    category = CapabilityCategory.DEBUG
    input_model = RegisterInput

    async def execute(self, params: RegisterInput, context: ExecutionContext) -> RegisterResult:
        peripheral = params.peripheral.upper()
        register = params.register_name.upper()

        base = PERIPHERAL_BASES.get(peripheral)
        if base is None:
            message = f"Unknown peripheral: {peripheral}"
            return RegisterResult(success=False, description=message, error=message)

        definition = REGISTER_DEFS.get(peripheral, {}).get(register)
        if definition is None:
            message = f"Unknown register: {register} for {peripheral}"
            return RegisterResult(success=False, description=message, error=message)

        offset, description, fields = definition
        value = SIMULATED_VALUES.get((peripheral, register), 0)
        if params.action == "write" and params.value is not None:
            value = params.value & 0xFFFFFFFF
        elif params.action == "modify" and params.value is not None:
            mask = params.mask if params.mask is not None else 0xFFFFFFFF
            value = ((value & ~mask) | (params.value & mask)) & 0xFFFFFFFF

        return RegisterResult(
            success=True,
            value=value,
            hex_value=f"0x{value:08X}",
            binary_value=f"0b{value:032b}",
            address=f"0x{base + offset:08X}",
            bits=[
                BitField(name=name, position=pos, value=extract_bits(value, pos), description=desc)
                for name, pos, desc in fields
            ],
            description=f"{peripheral}->{register} ({description})",
        )
