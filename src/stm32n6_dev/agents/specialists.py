"""
Coordination and specialist agents.

    project-lead     points a task at the agents that cover it
    rtos-specialist  FreeRTOS task design and synchronization
    debug-engineer   GDB, trace and fault diagnosis
    test-engineer    unit testing, mocking and coverage
"""

import logging

from stm32n6_dev.agents.base import Agent, AgentInput, AgentResult
from stm32n6_dev.capability import ExecutionContext
from stm32n6_dev.schema import CapabilityCategory


class ProjectLeadAgent(Agent):
    """Workflow orchestration across the other agents."""

    name = "project-lead"
    description = "Workflow orchestration and task coordination"
    category = CapabilityCategory.BUILD
    capabilities = ["coordination", "planning", "review", "workflow"]
    expertise = ["devflow", "task-management", "code-review"]

    async def execute(self, params: AgentInput, context: ExecutionContext) -> AgentResult:
        if context.server is None:
            return self.success(
                "Project Lead Agent ready. I coordinate workflows and manage project tasks.",
                data={"available_agents": []},
            )

        registry = context.server.agents
        others = [agent.name for agent in registry if agent.name != self.name]
        assigned = [
            agent.name
            for agent in registry.select_agents_for_task(params.task)
            if agent.name != self.name
        ]
        self.log(context, logging.INFO, f"Assigned {len(assigned)} agent(s)")

        return self.success(
            "Project Lead Agent ready. I coordinate workflows and manage project tasks.",
            data={"available_agents": others, "assigned_agents": assigned},
            next_steps=[f"Ask {name} about: {params.task}" for name in assigned] or None,
        )


class RtosSpecialistAgent(Agent):
    """FreeRTOS and real-time systems expert."""

    name = "rtos-specialist"
    description = "FreeRTOS and real-time systems expert"
    category = CapabilityCategory.CODEGEN
    capabilities = ["freertos-config", "task-design", "synchronization", "memory-pools"]
    expertise = ["freertos", "tasks", "queues", "semaphores", "mutexes", "timers"]

    async def execute(self, params: AgentInput, context: ExecutionContext) -> AgentResult:
        return self.success(
            "RTOS Specialist Agent ready. I can help with FreeRTOS task design, queues, "
            "and synchronization.",
            data={
                "freertos_config": {
                    "version": "V10.6.2",
                    "recommended_heap": "128 KB",
                    "default_tick_rate": "1000 Hz",
                }
            },
        )


class DebugEngineerAgent(Agent):
    """Hardware debugging and troubleshooting specialist."""

    name = "debug-engineer"
    description = "Hardware debugging and troubleshooting specialist"
    category = CapabilityCategory.DEBUG
    capabilities = ["gdb-debugging", "swv-trace", "hard-fault", "memory-corruption"]
    expertise = ["gdb", "openocd", "swv", "etm", "hard-fault", "stack-overflow"]

    async def execute(self, params: AgentInput, context: ExecutionContext) -> AgentResult:
        return self.success(
            "Debug Engineer Agent ready. I can help with GDB debugging, trace analysis, "
            "and fault diagnosis.",
            data={
                "debug_probes": ["ST-Link V3", "J-Link", "ULINKplus"],
                "features": ["Breakpoints", "Watchpoints", "SWV", "ETM trace", "RTOS awareness"],
            },
            next_steps=["Start a session with stm32_debug", "Capture a trace and run trace_analyze"],
        )


class TestEngineerAgent(Agent):
    """Embedded testing and validation specialist."""

    __test__ = False

    name = "test-engineer"
    description = "Embedded testing and validation specialist"
    category = CapabilityCategory.ANALYSIS
    capabilities = ["unit-testing", "integration-testing", "coverage", "mocking"]
    expertise = ["unity", "cmock", "ceedling", "gcov", "hil-testing"]

    async def execute(self, params: AgentInput, context: ExecutionContext) -> AgentResult:
        return self.success(
            "Test Engineer Agent ready. I can help with unit testing, mocking, and "
            "coverage analysis.",
            data={
                "frameworks": ["Unity", "CMock", "Ceedling"],
                "features": ["Automated test generation", "Mock creation", "Coverage reporting"],
            },
        )
