"""
Edge AI agent for the Neural-ART NPU.
"""

import logging

from stm32n6_dev.agents.base import Agent, AgentInput, AgentResult
from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.schema import CapabilityCategory


class AiEngineerAgent(Agent):
    """Model conversion, quantization and deployment guidance."""

    name = "ai-engineer"
    description = "Edge AI and Neural-ART NPU specialist for STM32N6"
    category = CapabilityCategory.AI_ML
    capabilities = [
        "model-conversion",
        "model-quantization",
        "npu-programming",
        "computer-vision",
        "isp-configuration",
        "camera-setup",
    ]
    expertise = [
        "st-edge-ai",
        "neural-art",
        "model-zoo",
        "int8-quantization",
        "int4-quantization",
        "onnx",
        "tflite",
    ]

    async def execute(self, params: AgentInput, context: ExecutionContext) -> AgentResult:
        task = params.task.lower()

        # conversion takes precedence when a task mentions both
        if "convert" in task or "model" in task:
            self.log(context, logging.INFO, "Conversion workflow requested")
            return self._conversion()
        if "quantiz" in task:
            self.log(context, logging.INFO, "Quantization guidance requested")
            return self._quantization(context)
        if "deploy" in task or "inference" in task:
            self.log(context, logging.INFO, "Deployment workflow requested")
            return self._deployment()

        return self.success(
            "AI Engineer Agent ready. I can help with model conversion, quantization, "
            "and deployment to Neural-ART NPU.",
            data={
                "supported_formats": ["ONNX", "TensorFlow Lite", "PyTorch", "Keras"],
                "quantization_options": ["int8", "int4", "mixed", "fp16"],
                "npu_capabilities": {
                    "performance": "600 GOPS",
                    "clock": "1 GHz",
                    "memory_bandwidth": "High",
                },
            },
        )

    def _conversion(self) -> AgentResult:
        return self.success(
            "Model conversion workflow",
            data={
                "steps": [
                    "1. Analyze model architecture",
                    "2. Check operator compatibility",
                    "3. Convert to ST Edge AI format",
                    "4. Generate C code",
                    "5. Create inference wrapper",
                ],
                "supported_operators": ["Conv2D", "DepthwiseConv2D", "FullyConnected", "ReLU", "Softmax"],
                "estimated_flash_usage": "~850 KB (quantized)",
                "estimated_ram_usage": "~400 KB",
            },
            next_steps=["Run model_convert on the model file"],
        )

    def _quantization(self, context: ExecutionContext) -> AgentResult:
        default = context.server.config.edge_ai.default_quantization if context.server else "int8"
        return self.success(
            "Quantization recommendations",
            data={
                "default_scheme": default,
                "schemes": {
                    "int8": {"compression": "4x", "accuracy_loss": "<1%", "recommended": True},
                    "int4": {"compression": "8x", "accuracy_loss": "1-3%", "recommended": "for large models"},
                    "mixed": {"compression": "3-6x", "accuracy_loss": "<1%", "recommended": "for best balance"},
                },
                "workflow": [
                    "1. Prepare calibration dataset (100-1000 samples)",
                    "2. Run calibration",
                    "3. Evaluate accuracy",
                    "4. Fine-tune if needed",
                ],
            },
            next_steps=["Run model_quantize with a calibration dataset"],
        )

    def _deployment(self) -> AgentResult:
        return self.success(
            "Model deployment workflow for Neural-ART",
            data={
                "steps": [
                    "1. Initialize NPU",
                    "2. Load model weights",
                    "3. Allocate input/output buffers",
                    "4. Configure ISP (if camera input)",
                    "5. Run inference",
                    "6. Post-process results",
                ],
                "code_template": "ai_inference.c",
                "expected_latency": "5-50ms (model dependent)",
            },
        )
