"""
Configuration for the STM32N6 development server.

Configuration is resolved from four layers, later layers winning:

    1. Built-in defaults (the pydantic field defaults below)
    2. An optional YAML file
    3. Environment variables (toolchain paths, log level, timeout)
    4. Explicit overrides passed by the caller

Layers are deep-merged as plain dicts and validated once at the end, so a
partial YAML file or override only has to name the keys it changes.

Example YAML:
    server:
      log_level: debug
      timeout_ms: 120000
    toolchain:
      gcc_arm_path: /opt/arm-gnu-toolchain/bin
    debug:
      probe: jlink
"""

import os
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stm32n6_dev.errors import ConfigError
from stm32n6_dev.schema import LogLevel


# =============================================================================
# Settings Models
# =============================================================================


class ServerSettings(BaseModel):
    """Process-level settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Minimum log level")
    timeout_ms: int = Field(
        default=60000,
        description="Advisory time budget handed to every capability call",
        gt=0,
    )


class ToolchainSettings(BaseModel):
    """Install locations of external STM32 tooling."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    stm32cube_ide_path: str | None = Field(default=None, description="STM32CubeIDE install path")
    gcc_arm_path: str | None = Field(default=None, description="Arm GNU toolchain bin directory")
    stm32cube_prog_path: str | None = Field(default=None, description="STM32CubeProgrammer path")
    st_edge_ai_path: str | None = Field(default=None, description="ST Edge AI core path")
    openocd_path: str | None = Field(default=None, description="OpenOCD executable path")


class TargetSettings(BaseModel):
    """The MCU and board being developed for."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mcu: str = Field(default="STM32N6570", description="MCU part number")
    board: str = Field(default="STM32N6570-DK", description="Board name")
    flash_base: str = Field(default="0x08000000", description="Flash base address")
    ram_base: str = Field(default="0x20000000", description="RAM base address")


class DebugSettings(BaseModel):
    """Debug probe settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    probe: Literal["stlink", "jlink", "ulink"] = Field(default="stlink", description="Debug probe")
    interface: Literal["swd", "jtag"] = Field(default="swd", description="Debug interface")
    speed: int = Field(default=4000, description="Probe clock in kHz", gt=0)
    swo_enabled: bool = Field(default=True, description="Enable SWO trace output")


class BuildSettings(BaseModel):
    """Build defaults."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_build_type: Literal["Debug", "Release", "MinSizeRel"] = Field(
        default="Debug",
        description="Build configuration used when none is given",
    )
    parallel_jobs: int = Field(default=4, description="Parallel build jobs", gt=0)
    warnings_as_errors: bool = Field(default=False, description="Treat warnings as errors")


class EdgeAiSettings(BaseModel):
    """ST Edge AI settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    developer_cloud_api: str | None = Field(default=None, description="ST Developer Cloud API endpoint")
    default_quantization: Literal["int8", "int4", "mixed", "fp16"] = Field(
        default="int8",
        description="Quantization used when none is given",
    )
    optimize_for: Literal["latency", "memory", "balanced"] = Field(
        default="balanced",
        description="Model optimization goal",
    )


class Config(BaseModel):
    """Complete server configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    server: ServerSettings = Field(default_factory=ServerSettings)
    toolchain: ToolchainSettings = Field(default_factory=ToolchainSettings)
    target: TargetSettings = Field(default_factory=TargetSettings)
    debug: DebugSettings = Field(default_factory=DebugSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    edge_ai: EdgeAiSettings = Field(default_factory=EdgeAiSettings)


# =============================================================================
# Environment Mapping
# =============================================================================

TOOLCHAIN_ENV_VARS = {
    "STM32CUBE_IDE_PATH": "stm32cube_ide_path",
    "GCC_ARM_PATH": "gcc_arm_path",
    "STM32CUBE_PROG_PATH": "stm32cube_prog_path",
    "ST_EDGE_AI_PATH": "st_edge_ai_path",
    "OPENOCD_PATH": "openocd_path",
}
LOG_LEVEL_ENV_VAR = "STM32N6_LOG_LEVEL"
TIMEOUT_ENV_VAR = "STM32N6_TIMEOUT"


def config_from_environment(environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Extract configuration values from environment variables.

    An invalid log level or a non-integer timeout is ignored rather than
    reported, so a stray variable never prevents startup.
    """
    data: dict[str, Any] = {}

    toolchain = {
        field_name: environ[var]
        for var, field_name in TOOLCHAIN_ENV_VARS.items()
        if environ.get(var)
    }
    if toolchain:
        data["toolchain"] = toolchain

    server: dict[str, Any] = {}
    level = environ.get(LOG_LEVEL_ENV_VAR)
    if level in {lvl.value for lvl in LogLevel}:
        server["log_level"] = level
    timeout = environ.get(TIMEOUT_ENV_VAR)
    if timeout and timeout.strip().isdigit() and int(timeout) > 0:
        server["timeout_ms"] = int(timeout)
    if server:
        data["server"] = server

    return data


# =============================================================================
# Loading
# =============================================================================


def deep_merge(base: dict[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge update into a copy of base; None values are skipped."""
    result = dict(base)
    for key, value in update.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _format_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]


def validate_config(data: Mapping[str, Any]) -> tuple[bool, list[str]]:
    """
    Check configuration data without raising.

    Returns:
        (valid, errors) where errors are "path: message" strings
    """
    try:
        Config.model_validate(dict(data))
    except ValidationError as e:
        return False, _format_errors(e)
    return True, []


def load_config(
    path: Path | str | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Resolve the server configuration.

    Args:
        path: Optional YAML configuration file
        overrides: Highest-priority values, same shape as the YAML file
        environ: Environment to read variables from (defaults to os.environ)

    Returns:
        Validated Config

    Raises:
        ConfigError: If the file is unreadable or the result is invalid
    """
    data: dict[str, Any] = {}
    source = str(path) if path is not None else None

    if path is not None:
        try:
            with Path(path).open() as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(errors=[str(e)], source=source) from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(errors=["top level must be a mapping"], source=source)
        data = deep_merge(data, loaded or {})

    data = deep_merge(data, config_from_environment(os.environ if environ is None else environ))
    data = deep_merge(data, overrides or {})

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(errors=_format_errors(e), source=source) from e


def with_overrides(config: Config, overrides: Mapping[str, Any]) -> Config:
    """Return a new Config with overrides deep-merged over an existing one."""
    data = deep_merge(config.model_dump(mode="json", exclude_none=True), overrides)
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(errors=_format_errors(e)) from e


# =============================================================================
# Toolchain Helpers
# =============================================================================


def is_tool_available(config: Config, tool: str) -> bool:
    """Return True if a toolchain path is configured and non-empty."""
    return bool(getattr(config.toolchain, tool, None))


def get_tool_path(config: Config, tool: str, fallback: str | None = None) -> str | None:
    """Return a configured toolchain path, or the fallback."""
    value = getattr(config.toolchain, tool, None)
    return value if value is not None else fallback
