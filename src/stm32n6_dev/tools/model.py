"""
Edge AI tools for the Neural-ART accelerator.

    model_convert   analyze a model and estimate its deployed footprint
    model_quantize  estimate size, latency and accuracy after quantization

Model contents are not parsed. Analysis returns a MobileNet-class profile
and sizes are derived from the input file on disk.
"""

import asyncio
import math
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.tools.base import Tool

Scheme = Literal["int8", "int4", "mixed", "fp16"]

REFERENCE_OPERATORS = [
    "Conv2D",
    "BatchNormalization",
    "ReLU",
    "DepthwiseConv2D",
    "GlobalAveragePooling2D",
    "FullyConnected",
    "Softmax",
]
REFERENCE_PARAMETERS = 3_400_000
ACTIVATIONS_RAM = 1024 * 1024
RUNTIME_FLASH = 32 * 1024

COMPRESSION_RATIOS: dict[str, int] = {"int8": 4, "int4": 8, "mixed": 3, "fp16": 2}
LATENCY_SPEEDUPS: dict[str, float] = {"int8": 2.5, "int4": 3.0, "mixed": 2.0, "fp16": 1.5}
ACCURACY_DROPS: dict[str, float] = {"int8": 0.005, "int4": 0.02, "mixed": 0.01, "fp16": 0.001}
BASE_ACCURACY = 0.92
BASE_LATENCY_MS = 15.0

# (layer, operator, share of the model size)
REFERENCE_LAYERS = [
    ("conv1", "Conv2D", 0.15),
    ("conv2_dw", "DepthwiseConv2D", 0.02),
    ("conv2_pw", "Conv2D", 0.12),
    ("conv3_dw", "DepthwiseConv2D", 0.02),
    ("conv3_pw", "Conv2D", 0.18),
    ("fc", "FullyConnected", 0.25),
]


def replace_suffix(path: str, replacement: str) -> str:
    """Swap the file extension for a suffix: model.onnx -> model_int8."""
    return re.sub(r"\.[^./]+$", replacement, path)


# =============================================================================
# model_convert
# =============================================================================


class ConvertInput(BaseModel):
    """Input contract for model_convert."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    input_model: str = Field(..., description="Path to input model file")
    input_format: Literal["onnx", "tflite", "pytorch", "keras"] = Field(..., description="Source framework")
    output_path: str | None = Field(default=None, description="Output path for the converted model")
    output_format: Literal["stedgeai", "tflite_micro"] = Field(default="stedgeai", description="Target format")
    target_device: str = Field(default="STM32N6570", description="Target MCU")
    optimize_for: Literal["latency", "memory", "balanced"] | None = Field(
        default=None,
        description="Optimization goal (defaults to the configured edge AI setting)",
    )
    use_cloud: bool = Field(default=False, description="Use ST Edge AI Developer Cloud")


class ModelInfo(BaseModel):
    name: str
    framework: str
    input_shape: list[int]
    output_shape: list[int]
    parameters: int
    operations: list[str]
    supported_operators: list[str]
    unsupported_operators: list[str]


class MemoryEstimate(BaseModel):
    """Deployed footprint in bytes, assuming int8 weights."""

    weights_ram: int
    activations_ram: int
    total_ram: int
    flash: int


class ConversionReport(BaseModel):
    path: str
    summary: str


class ConvertResult(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    success: bool
    output_path: str
    optimize_for: str
    model_info: ModelInfo
    memory_estimate: MemoryEstimate
    report: ConversionReport


def estimate_memory(parameters: int) -> MemoryEstimate:
    weights = math.ceil(parameters * 4 * 0.25)
    return MemoryEstimate(
        weights_ram=weights,
        activations_ram=ACTIVATIONS_RAM,
        total_ram=weights + ACTIVATIONS_RAM,
        flash=weights + RUNTIME_FLASH,
    )


def conversion_summary(info: ModelInfo, memory: MemoryEstimate) -> str:
    unsupported = ", ".join(info.unsupported_operators) or "None"
    return "\n".join(
        [
            "Model Conversion Summary",
            "========================",
            "",
            f"Model: {info.name}",
            f"Framework: {info.framework}",
            "",
            f"Input Shape:  {info.input_shape}",
            f"Output Shape: {info.output_shape}",
            "",
            f"Parameters: {info.parameters / 1_000_000:.2f}M",
            f"Operations: {len(info.operations)}",
            "",
            f"Supported Operators: {len(info.supported_operators)}/{len(info.operations)}",
            f"Unsupported: {unsupported}",
            "",
            "Memory Estimation (int8 quantized):",
            f"  Weights:     {memory.weights_ram / 1024:.1f} KB",
            f"  Activations: {memory.activations_ram / 1024:.1f} KB",
            f"  Total RAM:   {memory.total_ram / 1024:.1f} KB",
            f"  Flash:       {memory.flash / 1024:.1f} KB",
            "",
            "Status: Ready for Neural-ART deployment",
        ]
    )


class ModelConvertTool(Tool):
    """Convert an ML model for Neural-ART deployment."""

    name = "model_convert"
    description = "Convert ML models for STM32N6 Neural-ART deployment"
    category = CapabilityCategory.AI_ML
    input_model = ConvertInput

    async def execute(self, params: ConvertInput, context: ExecutionContext) -> ConvertResult | dict[str, Any]:
        if not await self.path_exists(params.input_model, context):
            return self.failure(f"Model file not found: {params.input_model}", output_path="")

        info = ModelInfo(
            name=params.input_model.rsplit("/", 1)[-1].split(".", 1)[0] or "model",
            framework=params.input_format,
            input_shape=[1, 224, 224, 3],
            output_shape=[1, 1000],
            parameters=REFERENCE_PARAMETERS,
            operations=list(REFERENCE_OPERATORS),
            supported_operators=list(REFERENCE_OPERATORS),
            unsupported_operators=[],
        )
        memory = estimate_memory(info.parameters)
        output_path = params.output_path or replace_suffix(params.input_model, "_converted")
        optimize_for = params.optimize_for or (
            context.server.config.edge_ai.optimize_for if context.server else "balanced"
        )

        return ConvertResult(
            success=True,
            output_path=output_path,
            optimize_for=optimize_for,
            model_info=info,
            memory_estimate=memory,
            report=ConversionReport(
                path=f"{output_path}_report.json",
                summary=conversion_summary(info, memory),
            ),
        )


# =============================================================================
# model_quantize
# =============================================================================


class QuantizeInput(BaseModel):
    """Input contract for model_quantize."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    input_model: str = Field(..., description="Path to converted model")
    output_path: str | None = Field(default=None, description="Output path for the quantized model")
    quantization_scheme: Scheme | None = Field(
        default=None,
        description="Quantization scheme (defaults to the configured edge AI setting)",
    )
    calibration_data: str | None = Field(default=None, description="Path to calibration dataset")
    calibration_samples: int = Field(default=100, description="Number of calibration samples", gt=0)
    evaluate_accuracy: bool = Field(default=True, description="Estimate the accuracy impact")
    evaluation_data: str | None = Field(default=None, description="Path to evaluation dataset")
    target_accuracy: float | None = Field(default=None, description="Minimum acceptable accuracy", ge=0, le=1)


class AccuracyMetrics(BaseModel):
    original_accuracy: float
    quantized_accuracy: float
    accuracy_drop: float


class QuantizationReport(BaseModel):
    original_size: int
    quantized_size: int
    compression_ratio: int
    estimated_latency: float
    accuracy_metrics: AccuracyMetrics | None = None


class LayerAnalysis(BaseModel):
    layer: str
    type: str
    original_size: int
    quantized_size: int
    dynamic_range: tuple[int, int]


class QuantizeResult(BaseModel):
    success: bool
    output_path: str
    scheme: str
    quantization_report: QuantizationReport
    layer_analysis: list[LayerAnalysis]
    meets_target: bool | None = None


class ModelQuantizeTool(Tool):
    """Estimate the effect of quantizing a model."""

    name = "model_quantize"
    description = "Quantize models for efficient Neural-ART execution"
    category = CapabilityCategory.AI_ML
    input_model = QuantizeInput

    async def execute(self, params: QuantizeInput, context: ExecutionContext) -> QuantizeResult | dict[str, Any]:
        path = self.resolve_path(params.input_model, context)
        if not await self.path_exists(params.input_model, context):
            return self.failure(f"Model file not found: {params.input_model}", output_path="")

        scheme = params.quantization_scheme or (
            context.server.config.edge_ai.default_quantization if context.server else "int8"
        )
        original_size = (await asyncio.to_thread(path.stat)).st_size
        ratio = COMPRESSION_RATIOS[scheme]

        accuracy = None
        meets_target = None
        if params.evaluate_accuracy:
            drop = ACCURACY_DROPS[scheme]
            accuracy = AccuracyMetrics(
                original_accuracy=BASE_ACCURACY,
                quantized_accuracy=round(BASE_ACCURACY - drop, 4),
                accuracy_drop=drop,
            )
            if params.target_accuracy is not None:
                meets_target = accuracy.quantized_accuracy >= params.target_accuracy

        return QuantizeResult(
            success=True,
            output_path=params.output_path or replace_suffix(params.input_model, f"_{scheme}"),
            scheme=scheme,
            quantization_report=QuantizationReport(
                original_size=original_size,
                quantized_size=math.ceil(original_size / ratio),
                compression_ratio=ratio,
                estimated_latency=BASE_LATENCY_MS / LATENCY_SPEEDUPS[scheme],
                accuracy_metrics=accuracy,
            ),
            layer_analysis=[
                LayerAnalysis(
                    layer=layer,
                    type=operator,
                    original_size=math.ceil(original_size * share),
                    quantized_size=math.ceil(original_size * share / ratio),
                    dynamic_range=(-128, 127),
                )
                for layer, operator, share in REFERENCE_LAYERS
            ],
            meets_target=meets_target,
        )
