"""
Orchestration Package

Core task graph engine:
- Plan parsing with single-task fallback
- Capability registry (role -> provider)
- Dependency-ordered graph scheduling with deadlock detection
- Bounded retry around single task execution
- Result synthesis
"""

from .decomposer import CONDUCTOR_SYSTEM_PROMPT, Decomposer, PlanGenerator
from .orchestrator import Orchestrator
from .plan_parser import PlanParser
from .registry import CapabilityRegistry, build_default_registry
from .retry import RetryPolicy, TaskRunner, build_task_input
from .scheduler import GraphScheduler, ScheduleReport
from .synthesizer import ResultSynthesizer

__all__ = [
    "CONDUCTOR_SYSTEM_PROMPT",
    "CapabilityRegistry",
    "Decomposer",
    "GraphScheduler",
    "Orchestrator",
    "PlanGenerator",
    "PlanParser",
    "ResultSynthesizer",
    "RetryPolicy",
    "ScheduleReport",
    "TaskRunner",
    "build_default_registry",
    "build_task_input",
]
