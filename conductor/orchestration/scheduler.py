from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Sequence

from ..core.config import OrchestratorSettings
from ..core.logging import get_logger
from ..core.metrics import increment_task_event, record_schedule_metrics
from ..schemas.tasks import Session, Task, TaskStatus
from .retry import TaskRunner

logger = get_logger(name=__name__)


@dataclass(slots=True)
class ScheduleReport:
    rounds: int = 0
    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    blocked: list[str] = field(default_factory=list)
    unfinished: list[str] = field(default_factory=list)
    deadlocked: bool = False
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return not (self.failed or self.blocked or self.unfinished or self.deadlocked or self.cancelled)


class GraphScheduler:
    """Drives a session's task graph to completion in dependency order.

    Each round computes the ready set (pending tasks whose dependencies have all
    finished), runs up to ``max_concurrent_tasks`` of them concurrently and waits
    for the whole batch before computing the next ready set. An empty ready set
    while work remains is a deadlock and ends the loop early.

    With ``block_dependents_on_failure`` a failed task no longer satisfies its
    dependents; they are marked blocked instead of being scheduled.
    """

    def __init__(
        self,
        runner: TaskRunner,
        *,
        max_concurrent_tasks: int = 3,
        block_dependents_on_failure: bool = False,
        prioritize_ready_tasks: bool = False,
    ) -> None:
        if max_concurrent_tasks < 1:
            raise ValueError("max_concurrent_tasks must be at least 1")
        self._runner = runner
        self._max_concurrent_tasks = max_concurrent_tasks
        self._block_dependents = block_dependents_on_failure
        self._prioritize = prioritize_ready_tasks

    @classmethod
    def from_settings(cls, runner: TaskRunner, settings: OrchestratorSettings) -> "GraphScheduler":
        return cls(
            runner,
            max_concurrent_tasks=settings.max_concurrent_tasks,
            block_dependents_on_failure=settings.block_dependents_on_failure,
            prioritize_ready_tasks=settings.prioritize_ready_tasks,
        )

    async def execute(self, session: Session, *, cancel_event: asyncio.Event | None = None) -> ScheduleReport:
        tasks = session.tasks
        report = ScheduleReport()
        finished: set[str] = set()
        satisfied: set[str] = set()
        for task in tasks:
            if task.is_finished:
                finished.add(task.id)
                if task.status == TaskStatus.COMPLETED or not self._block_dependents:
                    satisfied.add(task.id)

        while len(finished) < len(tasks):
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.warning("scheduler_cancelled", session_id=session.id, finished=len(finished))
                break

            if self._block_dependents:
                self._block_failed_dependents(tasks, finished)
                if len(finished) >= len(tasks):
                    break

            ready = self.ready_tasks(tasks, satisfied)
            if not ready:
                stuck = [task.id for task in tasks if task.id not in finished]
                report.deadlocked = True
                session.deadlocked = True
                logger.error(
                    "scheduler_deadlock",
                    session_id=session.id,
                    detail="No ready tasks but not all finished - possible circular or missing dependency",
                    stuck=stuck,
                )
                break

            batch = ready[: self._max_concurrent_tasks]
            report.rounds += 1
            logger.debug(
                "scheduler_round",
                session_id=session.id,
                round=report.rounds,
                batch=[task.id for task in batch],
                ready=len(ready),
            )
            await asyncio.gather(*(self._runner.run(task, session) for task in batch))

            for task in batch:
                finished.add(task.id)
                if self._block_dependents:
                    if task.status == TaskStatus.COMPLETED:
                        satisfied.add(task.id)
                else:
                    satisfied.add(task.id)

        for task in tasks:
            if task.status == TaskStatus.COMPLETED:
                report.completed.append(task.id)
            elif task.status == TaskStatus.FAILED:
                report.failed.append(task.id)
            elif task.status == TaskStatus.BLOCKED:
                report.blocked.append(task.id)
            else:
                report.unfinished.append(task.id)

        record_schedule_metrics(rounds=report.rounds, deadlocked=report.deadlocked)
        logger.info(
            "scheduler_finished",
            session_id=session.id,
            rounds=report.rounds,
            completed=len(report.completed),
            failed=len(report.failed),
            blocked=len(report.blocked),
            unfinished=len(report.unfinished),
        )
        return report

    def ready_tasks(self, tasks: Sequence[Task], satisfied: set[str]) -> list[Task]:
        ready = [
            task
            for task in tasks
            if task.status == TaskStatus.PENDING and all(dep in satisfied for dep in task.dependencies)
        ]
        if self._prioritize:
            # sorted() is stable, so declaration order breaks ties
            ready = sorted(ready, key=lambda task: task.priority.rank)
        return ready

    def _block_failed_dependents(self, tasks: Sequence[Task], finished: set[str]) -> None:
        unusable = {task.id for task in tasks if task.status in (TaskStatus.FAILED, TaskStatus.BLOCKED)}
        changed = True
        while changed:
            changed = False
            for task in tasks:
                if task.status != TaskStatus.PENDING:
                    continue
                failed_deps = [dep for dep in task.dependencies if dep in unusable]
                if not failed_deps:
                    continue
                task.status = TaskStatus.BLOCKED
                unusable.add(task.id)
                finished.add(task.id)
                changed = True
                increment_task_event(role=task.assigned_to, event="blocked")
                logger.warning("task_blocked", task_id=task.id, title=task.title, failed_dependencies=failed_deps)
