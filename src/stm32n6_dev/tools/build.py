"""
Build tool: compile an STM32N6 project.

The project type is detected from marker files in the project directory:

    .project        -> STM32CubeIDE (headless build)
    CMakeLists.txt  -> CMake
    Makefile        -> GNU Make

No compiler is invoked; the tool reports the build a real toolchain run
would produce for each project type.
"""

import asyncio
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.schema import CapabilityCategory
from stm32n6_dev.tools.base import Tool

ProjectType = Literal["cubeide", "cmake", "make"]
BuildType = Literal["Debug", "Release", "MinSizeRel"]

PROJECT_MARKERS: list[tuple[str, ProjectType]] = [
    (".project", "cubeide"),
    ("CMakeLists.txt", "cmake"),
    ("Makefile", "make"),
]


class BuildInput(BaseModel):
    """Input contract for stm32_build."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_path: str = Field(..., description="Path to STM32CubeIDE, CMake or Makefile project")
    build_type: BuildType | None = Field(
        default=None,
        description="Build configuration (defaults to the configured build type)",
    )
    target: str = Field(default="all", description="Build target")
    verbose: bool = Field(default=False, description="Verbose build output")
    clean: bool = Field(default=False, description="Clean before building")


class BuildMessage(BaseModel):
    """A compiler diagnostic."""

    file: str
    line: int
    column: int
    message: str


class SizeReport(BaseModel):
    """Section sizes in bytes as reported by arm-none-eabi-size."""

    text: int
    data: int
    bss: int
    flash: int
    ram: int


class BuildResult(BaseModel):
    """Result of stm32_build."""

    success: bool
    project_type: ProjectType | None = None
    build_type: str | None = None
    output: str = ""
    binary_path: str | None = None
    errors: list[BuildMessage] = Field(default_factory=list)
    warnings: list[BuildMessage] = Field(default_factory=list)
    size_report: SizeReport | None = None
    error: str | None = None


CUBEIDE_SIZE = SizeReport(text=45000, data=1024, bss=8192, flash=46024, ram=9216)
GCC_SIZE = SizeReport(text=42000, data=800, bss=4096, flash=42800, ram=4896)


def detect_project_type(project_dir: Path) -> ProjectType | None:
    """Return the project type for a directory, or None if unrecognised."""
    if not project_dir.is_dir():
        return None
    for marker, project_type in PROJECT_MARKERS:
        if (project_dir / marker).exists():
            return project_type
    return None


class BuildTool(Tool):
    """Build an STM32N6 project with the GCC Arm toolchain."""

    name = "stm32_build"
    description = "Build STM32N6 project using GCC ARM toolchain"
    category = CapabilityCategory.BUILD
    input_model = BuildInput

    async def execute(self, params: BuildInput, context: ExecutionContext) -> BuildResult:
        project_dir = self.resolve_path(params.project_path, context)
        project_type = await asyncio.to_thread(detect_project_type, project_dir)

        if project_type is None:
            message = (
                "Unable to detect project type. Ensure project contains "
                ".project (STM32CubeIDE), CMakeLists.txt, or Makefile"
            )
            return BuildResult(
                success=False,
                errors=[BuildMessage(file="", line=0, column=0, message=message)],
                error=message,
            )

        build_type = params.build_type or self._default_build_type(context)
        jobs = context.server.config.build.parallel_jobs if context.server else 4

        if project_type == "cubeide":
            output = self._cubeide_output(params, build_type)
            binary = f"{params.project_path}/{build_type}/project.elf"
            size = CUBEIDE_SIZE
        elif project_type == "cmake":
            output = self._cmake_output(params, build_type, jobs)
            binary = f"{params.project_path}/build/project.elf"
            size = GCC_SIZE
        else:
            output = self._make_output(params, build_type)
            binary = f"{params.project_path}/build/project.elf"
            size = GCC_SIZE

        return BuildResult(
            success=True,
            project_type=project_type,
            build_type=build_type,
            output=output,
            binary_path=binary,
            size_report=size,
        )

    @staticmethod
    def _default_build_type(context: ExecutionContext) -> str:
        if context.server is None:
            return "Debug"
        return context.server.config.build.default_build_type

    @staticmethod
    def _cubeide_output(params: BuildInput, build_type: str) -> str:
        return (
            f"Building STM32CubeIDE project at {params.project_path}\n"
            f"Configuration: {build_type}\n"
            f"Target: {params.target}\n"
            "\n"
            "Build configuration validated.\n"
            "Note: STM32CubeIDE CLI not available in simulation mode."
        )

    @staticmethod
    def _cmake_output(params: BuildInput, build_type: str, jobs: int) -> str:
        lines = [f"Building CMake project at {params.project_path}"]
        if params.clean:
            lines.append("Cleaning build directory...")
        lines += [
            f"Build type: {build_type}",
            f"Parallel jobs: {jobs}",
            "",
            "-- Configuring done",
            "-- Generating done",
            f"-- Build files have been written to: {params.project_path}/build",
            "[ 25%] Building C object CMakeFiles/project.dir/main.c.obj",
            "[ 50%] Building C object CMakeFiles/project.dir/stm32n6xx_it.c.obj",
            "[ 75%] Linking C executable project.elf",
            "[100%] Built target project",
            "",
            "Build finished: 0 errors, 0 warnings",
        ]
        return "\n".join(lines)

    @staticmethod
    def _make_output(params: BuildInput, build_type: str) -> str:
        opt = "-O0 -g3" if build_type == "Debug" else ("-Os" if build_type == "MinSizeRel" else "-O2")
        cc = f"arm-none-eabi-gcc -c -mcpu=cortex-m55 -mthumb {opt} -Wall"
        return "\n".join(
            [
                f"Building Makefile project at {params.project_path}",
                f"Build type: {build_type}",
                "",
                f"{cc} main.c -o build/main.o",
                f"{cc} system_stm32n6xx.c -o build/system.o",
                "arm-none-eabi-gcc -T linker.ld -nostartfiles -Wl,--gc-sections "
                "build/main.o build/system.o -o build/project.elf",
                "arm-none-eabi-size build/project.elf",
                "   text    data     bss     dec     hex filename",
                "  42000     800    4096   46896    b7310 build/project.elf",
                "",
                "Build successful",
            ]
        )
