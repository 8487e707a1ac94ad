from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from ..schemas.tasks import AgentRole

TASK_EVENT_TOTAL = Counter(
    "conductor_task_event_total",
    "Count of task lifecycle events (started/completed/failed/retried/blocked)",
    labelnames=("role", "event"),
)

PROVIDER_LATENCY_SECONDS = Histogram(
    "conductor_provider_invocation_latency_seconds",
    "Latency for each capability provider invocation",
    labelnames=("role",),
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300, float("inf")),
)

PLAN_OUTCOMES_TOTAL = Counter(
    "conductor_plan_total",
    "Count of parsed plans grouped by outcome",
    labelnames=("status",),
)

PLAN_TASKS = Histogram(
    "conductor_plan_tasks",
    "Number of tasks produced per parsed plan",
    buckets=(0, 1, 2, 3, 4, 5, 8, 13, 21),
)

PLAN_FALLBACK_TOTAL = Counter(
    "conductor_plan_fallback_total",
    "Plans replaced by the single-task fallback, grouped by reason",
    labelnames=("reason",),
)

SCHEDULER_DEADLOCK_TOTAL = Counter(
    "conductor_scheduler_deadlock_total",
    "Scheduling loops that stopped with no ready tasks while work remained",
)

SCHEDULER_ROUNDS = Histogram(
    "conductor_scheduler_rounds",
    "Scheduling rounds needed per session",
    buckets=(0, 1, 2, 3, 4, 5, 8, 13, 21, 34),
)

ORCHESTRATION_RUNS_TOTAL = Counter(
    "conductor_orchestration_runs_total",
    "Total orchestration runs by status",
    labelnames=("status",),
)

ORCHESTRATION_RUN_LATENCY_SECONDS = Histogram(
    "conductor_orchestration_run_latency_seconds",
    "End-to-end orchestration runtime",
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300, 600, 900, float("inf")),
)

ORCHESTRATION_ACTIVE_GAUGE = Gauge(
    "conductor_orchestration_runs_active",
    "Active orchestration runs in flight",
)


_KNOWN_ROLES = frozenset(role.value for role in AgentRole)


def role_label(role: str) -> str:
    """Known roles pass through; anything else is reported as ``unknown``."""
    return role if role in _KNOWN_ROLES else "unknown"


def increment_task_event(*, role: str, event: str) -> None:
    TASK_EVENT_TOTAL.labels(role=role_label(role), event=event).inc()


def observe_provider_latency(*, role: str, latency: float) -> None:
    PROVIDER_LATENCY_SECONDS.labels(role=role_label(role)).observe(latency)


def record_plan_metrics(*, status: str, tasks: int | None = None) -> None:
    PLAN_OUTCOMES_TOTAL.labels(status=status).inc()
    if tasks is not None:
        PLAN_TASKS.observe(tasks)


def increment_plan_fallback(*, reason: str) -> None:
    PLAN_FALLBACK_TOTAL.labels(reason=reason).inc()


def record_schedule_metrics(*, rounds: int, deadlocked: bool) -> None:
    SCHEDULER_ROUNDS.observe(rounds)
    if deadlocked:
        SCHEDULER_DEADLOCK_TOTAL.inc()


def mark_orchestration_started() -> None:
    ORCHESTRATION_ACTIVE_GAUGE.inc()
    ORCHESTRATION_RUNS_TOTAL.labels(status="started").inc()


def mark_orchestration_finished(*, status: str, latency: float) -> None:
    ORCHESTRATION_ACTIVE_GAUGE.dec()
    ORCHESTRATION_RUNS_TOTAL.labels(status=status).inc()
    ORCHESTRATION_RUN_LATENCY_SECONDS.observe(latency)
