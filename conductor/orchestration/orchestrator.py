"""Orchestrator facade.

Wires the plan generator, plan parser, graph scheduler, retry controller and
result synthesizer around one :class:`Session` per run.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Sequence

from ..agents import ConductorAgent
from ..agents.base import CapabilityProvider
from ..core.config import Settings, get_settings
from ..core.errors import ProviderError
from ..core.logging import get_logger
from ..core.metrics import mark_orchestration_finished, mark_orchestration_started
from ..schemas.tasks import AgentRole, Session, TaskInput, TaskStatus
from ..services.llm import LLMService
from .decomposer import Decomposer, PlanGenerator
from .plan_parser import PlanParser
from .registry import CapabilityRegistry, build_default_registry
from .retry import RetryPolicy, TaskRunner
from .scheduler import GraphScheduler, ScheduleReport
from .synthesizer import ResultSynthesizer

logger = get_logger(name=__name__)


class Orchestrator:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        registry: CapabilityRegistry | None = None,
        decomposer: Decomposer | None = None,
        synthesis_provider: CapabilityProvider | None = None,
        llm_client: Any | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        config = self._settings.orchestrator
        if registry is None:
            registry = build_default_registry(self._settings, client=llm_client)
        self._registry = registry
        self._decomposer = decomposer or PlanGenerator(self._conductor_llm(llm_client))
        self._synthesizer = ResultSynthesizer(
            synthesis_provider or ConductorAgent.build(self._conductor_llm(llm_client))
        )
        self._parser = PlanParser(default_role=config.default_role)
        self._runner = TaskRunner(self._registry, RetryPolicy.from_settings(config))
        self._scheduler = GraphScheduler.from_settings(self._runner, config)
        self._session: Session | None = None
        self._last_report: ScheduleReport | None = None
        logger.info(
            "orchestrator_initialized",
            roles=list(self._registry.roles),
            max_concurrent_tasks=config.max_concurrent_tasks,
            auto_retry=config.auto_retry,
            max_retries=config.max_retries,
        )

    def _conductor_llm(self, client: Any | None) -> LLMService:
        conductor = self._settings.agents.conductor
        return LLMService.from_settings(
            self._settings,
            temperature=conductor.temperature,
            max_tokens=conductor.max_tokens,
            client=client,
        )

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def last_report(self) -> ScheduleReport | None:
        return self._last_report

    async def orchestrate(
        self,
        objective: str,
        context: str | None = None,
        constraints: Sequence[str] | None = None,
        preferred_roles: Sequence[str] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Session:
        """Decompose ``objective``, run the task graph and synthesize the result.

        Raises ``pydantic.ValidationError`` for a missing objective before any
        session exists. Task failures are recorded on the returned session;
        only an error from the synthesis step is re-raised, after the session
        has been finalized.
        """
        request = TaskInput(
            objective=objective,
            context=context,
            constraints=list(constraints or []),
            preferred_roles=list(preferred_roles or []),
        )

        session = Session(objective=request.objective)
        self._session = session
        started = time.perf_counter()
        mark_orchestration_started()
        log = logger.bind(session_id=session.id)
        log.info("orchestration_started", objective=request.objective)

        status = "cancelled"
        try:
            log.info("objective_analysis_started")
            try:
                raw_plan = await self._decomposer.decompose(
                    request.objective,
                    request.context,
                    request.constraints,
                    request.preferred_roles,
                )
            except ProviderError as exc:
                log.error("objective_analysis_failed", error=str(exc))
                raw_plan = ""
            session.tasks = self._parser.parse(raw_plan, request.objective)

            self._last_report = await self._scheduler.execute(session, cancel_event=cancel_event)

            log.info("synthesis_requested")
            session.result = await self._synthesizer.synthesize(session)
            status = "succeeded" if self._last_report.succeeded else "partial"
        except Exception:
            status = "failed"
            log.exception("orchestration_failed")
            raise
        finally:
            # runs on cancellation too
            session.mark_completed()
            mark_orchestration_finished(status=status, latency=time.perf_counter() - started)

        completed = len(session.tasks_with_status(TaskStatus.COMPLETED))
        log.info(
            "orchestration_completed",
            status=status,
            completed_tasks=completed,
            total_tasks=len(session.tasks),
            duration_seconds=session.duration_seconds,
        )
        return session

    def orchestrate_sync(
        self,
        objective: str,
        context: str | None = None,
        constraints: Sequence[str] | None = None,
        preferred_roles: Sequence[str] | None = None,
    ) -> Session:
        return asyncio.run(self.orchestrate(objective, context, constraints, preferred_roles))

    async def ask(self, role: str | AgentRole, request: str) -> str:
        """Send a single request straight to one provider, bypassing the task graph."""
        provider = self._registry.require(role)
        return await provider.invoke(request)

    async def ask_coder(self, request: str) -> str:
        return await self.ask(AgentRole.CODER, request)

    async def ask_reviewer(self, request: str) -> str:
        return await self.ask(AgentRole.REVIEWER, request)

    async def ask_architect(self, request: str) -> str:
        return await self.ask(AgentRole.ARCHITECT, request)
