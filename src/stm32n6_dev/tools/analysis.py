"""
Analysis tools.

    trace_analyze  function timing and coverage from an SWV/ETM capture
    memory_map     section layout, flash/RAM usage and largest symbols

Captures and ELF files are not decoded; both tools report a fixed profile
of a typical STM32N6 vision application.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.tools.base import Tool
from stm32n6_dev.tools.deploy import FLASH_SIZE, RAM_SIZE

SLOW_FUNCTION_MS = 1.0
LINE_COVERAGE_TARGET = 80.0


# =============================================================================
# trace_analyze
# =============================================================================

AnalysisType = Literal["timing", "coverage", "exceptions", "data", "pc-sampling", "itm"]


class TimeRange(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    start: float = Field(..., description="Start time in ms", ge=0)
    end: float = Field(..., description="End time in ms", ge=0)


class TraceInput(BaseModel):
    """Input contract for trace_analyze."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    trace_file: str = Field(..., description="Path to trace capture file")
    analysis_type: list[AnalysisType] = Field(..., description="Analyses to run", min_length=1)
    elf_file: str | None = Field(default=None, description="ELF file for symbol resolution")
    time_range: TimeRange | None = Field(default=None, description="Restrict analysis to a window")
    output_format: Literal["json", "html", "csv"] = Field(default="json", description="Report format")


class FunctionTiming(BaseModel):
    """Per-function timing in milliseconds."""

    name: str
    total_time: float
    call_count: int
    avg_time: float
    max_time: float
    min_time: float


class Coverage(BaseModel):
    line_coverage: float
    function_coverage: float
    uncovered_functions: list[str]


class TraceReport(BaseModel):
    duration: float
    total_instructions: int
    timing: list[FunctionTiming] | None = None
    coverage: Coverage | None = None
    exceptions: list[str] | None = None


class Visualization(BaseModel):
    type: str
    path: str


class TraceResult(BaseModel):
    success: bool
    analysis_report: TraceReport
    visualizations: list[Visualization]
    recommendations: list[str]


REFERENCE_TIMING = [
    FunctionTiming(name="main", total_time=850.5, call_count=1, avg_time=850.5, max_time=850.5, min_time=850.5),
    FunctionTiming(
        name="HAL_I2C_Master_Transmit", total_time=45.2, call_count=100, avg_time=0.452, max_time=1.2, min_time=0.38
    ),
    FunctionTiming(
        name="HAL_SPI_TransmitReceive", total_time=32.8, call_count=50, avg_time=0.656, max_time=0.9, min_time=0.55
    ),
    FunctionTiming(name="AI_Inference", total_time=15.5, call_count=10, avg_time=1.55, max_time=2.1, min_time=1.4),
    FunctionTiming(
        name="BSP_LED_Toggle", total_time=2.1, call_count=500, avg_time=0.0042, max_time=0.005, min_time=0.004
    ),
]

REFERENCE_COVERAGE = Coverage(
    line_coverage=78.5,
    function_coverage=85.2,
    uncovered_functions=["Error_Handler", "HardFault_Handler", "NMI_Handler"],
)


def trace_recommendations(report: TraceReport) -> list[str]:
    """Turn an analysis report into tuning advice."""
    recommendations = []

    if report.timing:
        slow = [f.name for f in report.timing if f.avg_time > SLOW_FUNCTION_MS]
        if slow:
            recommendations.append(f"Consider optimizing these slow functions: {', '.join(slow)}")

    if report.coverage and report.coverage.line_coverage < LINE_COVERAGE_TARGET:
        recommendations.append(
            f"Line coverage is {report.coverage.line_coverage}%. Consider adding more tests."
        )

    if report.exceptions:
        recommendations.append(f"{len(report.exceptions)} exceptions detected. Review exception handling.")

    recommendations.append("Enable ITM stimulus ports for more detailed logging")
    recommendations.append("Consider using PC sampling for execution profiling")
    return recommendations


class TraceAnalyzeTool(Tool):
    """Analyze SWV/ETM trace captures."""

    name = "trace_analyze"
    description = "Analyze SWV/ETM trace data for performance debugging"
    category = CapabilityCategory.ANALYSIS
    input_model = TraceInput

    async def execute(self, params: TraceInput, context: ExecutionContext) -> TraceResult | dict[str, Any]:
        if not await self.path_exists(params.trace_file, context):
            return self.failure(
                f"Trace file not found: {params.trace_file}",
                recommendations=["Trace file not found"],
            )

        report = TraceReport(
            duration=1000.0,
            total_instructions=50_000_000,
            timing=list(REFERENCE_TIMING) if "timing" in params.analysis_type else None,
            coverage=REFERENCE_COVERAGE if "coverage" in params.analysis_type else None,
            exceptions=[] if "exceptions" in params.analysis_type else None,
        )

        return TraceResult(
            success=True,
            analysis_report=report,
            visualizations=[
                Visualization(type="timing_flamegraph", path=f"{params.trace_file}_timing.svg"),
                Visualization(type="coverage_report", path=f"{params.trace_file}_coverage.html"),
            ],
            recommendations=trace_recommendations(report),
        )


# =============================================================================
# memory_map
# =============================================================================

SectionType = Literal["code", "rodata", "data", "bss", "heap", "stack"]

FLASH_SECTION_TYPES = {"code", "rodata"}
RAM_SECTION_TYPES = {"data", "bss", "heap", "stack"}


class MemoryMapInput(BaseModel):
    """Input contract for memory_map."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    elf_path: str | None = Field(default=None, description="Path to ELF file")
    map_path: str | None = Field(default=None, description="Path to linker map file")
    analysis_type: list[Literal["sections", "symbols", "peripheral", "usage"]] = Field(
        default_factory=lambda: ["sections", "usage"],
        description="Analyses to run",
    )
    output_format: Literal["json", "svg", "html"] = Field(default="json", description="Report format")


class MemorySection(BaseModel):
    name: str
    address: str
    size: int
    type: SectionType


class UsageDetail(BaseModel):
    used: int
    total: int
    percentage: float


class MemoryUsage(BaseModel):
    flash: UsageDetail
    ram: UsageDetail


class SymbolInfo(BaseModel):
    name: str
    size: int
    section: str
    address: str


class MemoryMapResult(BaseModel):
    success: bool
    sections: list[MemorySection]
    memory_usage: MemoryUsage
    largest_symbols: list[SymbolInfo]
    visualization_path: str | None = None


REFERENCE_SECTIONS = [
    MemorySection(name=".isr_vector", address="0x08000000", size=1024, type="code"),
    MemorySection(name=".text", address="0x08000400", size=45000, type="code"),
    MemorySection(name=".rodata", address="0x0800B400", size=2048, type="rodata"),
    MemorySection(name=".data", address="0x20000000", size=1024, type="data"),
    MemorySection(name=".bss", address="0x20000400", size=8192, type="bss"),
    MemorySection(name=".heap", address="0x20002400", size=32768, type="heap"),
    MemorySection(name=".stack", address="0x2000A400", size=16384, type="stack"),
    MemorySection(name=".ai_buffer", address="0x20100000", size=262144, type="data"),
]

REFERENCE_SYMBOLS = [
    SymbolInfo(name="ai_model_weights", size=850000, section=".rodata", address="0x08010000"),
    SymbolInfo(name="frame_buffer", size=307200, section=".bss", address="0x20100000"),
    SymbolInfo(name="neural_network_input", size=150528, section=".bss", address="0x2014B000"),
    SymbolInfo(name="dma_tx_buffer", size=4096, section=".bss", address="0x20000800"),
    SymbolInfo(name="dma_rx_buffer", size=4096, section=".bss", address="0x20001800"),
    SymbolInfo(name="freertos_heap", size=32768, section=".heap", address="0x20002400"),
    SymbolInfo(name="main_stack", size=16384, section=".stack", address="0x2000A400"),
]


def usage(sections: list[MemorySection], types: set[str], total: int) -> UsageDetail:
    used = sum(s.size for s in sections if s.type in types)
    return UsageDetail(used=used, total=total, percentage=used / total * 100)


class MemoryMapTool(Tool):
    """Report memory layout and usage."""

    name = "memory_map"
    description = "Generate memory map visualization and analysis"
    category = CapabilityCategory.ANALYSIS
    input_model = MemoryMapInput

    async def execute(self, params: MemoryMapInput, context: ExecutionContext) -> MemoryMapResult:
        sections = list(REFERENCE_SECTIONS)
        return MemoryMapResult(
            success=True,
            sections=sections,
            memory_usage=MemoryUsage(
                flash=usage(sections, FLASH_SECTION_TYPES, FLASH_SIZE),
                ram=usage(sections, RAM_SECTION_TYPES, RAM_SIZE),
            ),
            largest_symbols=list(REFERENCE_SYMBOLS),
            visualization_path=f"{params.elf_path}_memory_map.html" if params.elf_path else None,
        )
