"""Command line entry point for running orchestrations and single-agent requests."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Sequence

from pydantic import ValidationError

from .core.config import Settings, get_settings
from .core.errors import ConductorError
from .core.logging import configure_logging, get_logger
from .orchestration import Orchestrator
from .schemas.tasks import AgentRole, Session, TaskStatus

logger = get_logger(name=__name__)

DEMO_OBJECTIVE = "Create a simple Python function that validates email addresses with proper error handling"
DEMO_CONTEXT = "This will be used in a web service backend"

_SHORTCUTS = {
    "/code": AgentRole.CODER,
    "/review": AgentRole.REVIEWER,
    "/architect": AgentRole.ARCHITECT,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="conductor", description="Orchestrate specialized agents over a task graph")
    parser.add_argument("--log-level", default=None, help="Override the configured log level.")
    subcommands = parser.add_subparsers(dest="command", required=True)

    orchestrate = subcommands.add_parser("orchestrate", help="Start a full orchestration session")
    orchestrate.add_argument("objective", help="The objective to accomplish")
    orchestrate.add_argument("-c", "--context", default=None, help="Additional context")
    orchestrate.add_argument(
        "--constraint",
        dest="constraints",
        action="append",
        default=[],
        help="Constraint the plan must respect (repeatable).",
    )
    orchestrate.add_argument("--max-concurrent", type=int, default=None, help="Tasks executed per scheduling round.")
    orchestrate.add_argument("--no-retry", action="store_true", help="Disable automatic task retries.")

    for name, role in (("code", "Coder"), ("review", "Reviewer"), ("architect", "Architect")):
        shortcut = subcommands.add_parser(name, help=f"Quick access to the {role} agent")
        shortcut.add_argument("request", help="The request to send")

    subcommands.add_parser("demo", help="Run a demo orchestration")
    subcommands.add_parser("interactive", aliases=["i"], help="Start interactive orchestration mode")
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    updates: dict[str, object] = {}
    if getattr(args, "max_concurrent", None) is not None:
        updates["max_concurrent_tasks"] = args.max_concurrent
    if getattr(args, "no_retry", False):
        updates["auto_retry"] = False
    if not updates:
        return settings
    orchestrator = settings.orchestrator.model_copy(update=updates)
    return settings.model_copy(update={"orchestrator": orchestrator})


def format_session_summary(session: Session) -> str:
    completed = len(session.tasks_with_status(TaskStatus.COMPLETED))
    lines = [
        "Session Summary:",
        f"  ID: {session.id}",
        f"  Tasks Completed: {completed}/{len(session.tasks)}",
    ]
    if session.duration_seconds is not None:
        lines.append(f"  Duration: {session.duration_seconds:.1f}s")
    for task in session.tasks:
        lines.append(f"  [{task.status.value}] {task.id} {task.title} ({task.assigned_to})")
    if session.deadlocked:
        lines.append("  Scheduling stopped early: unresolved dependencies")
    if session.result:
        lines.extend(["", session.result])
    return "\n".join(lines)


async def _interactive(orchestrator: Orchestrator) -> None:
    print("Interactive mode - type an objective and press Enter")
    print("Commands: /code, /review, /architect, /exit")
    while True:
        try:
            line = await asyncio.to_thread(input, "conductor> ")
        except EOFError:
            break
        text = line.strip()
        if not text:
            continue
        if text in {"/exit", "exit"}:
            break
        command, _, request = text.partition(" ")
        try:
            if command in _SHORTCUTS:
                print(await orchestrator.ask(_SHORTCUTS[command], request))
            else:
                session = await orchestrator.orchestrate(text)
                print(format_session_summary(session))
        except (ConductorError, ValidationError) as exc:
            logger.error("interactive_request_failed", error=str(exc))
    print("Goodbye.")


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = _apply_overrides(get_settings(), args)
    configure_logging(args.log_level or settings.observability.log_level, fmt=settings.observability.log_format)
    orchestrator = Orchestrator(settings)

    if args.command in {"code", "review", "architect"}:
        role = _SHORTCUTS[f"/{args.command}"]
        try:
            print(asyncio.run(orchestrator.ask(role, args.request)))
        except ConductorError as exc:
            logger.error("agent_request_failed", role=role.value, error=str(exc))
            return 1
        return 0

    if args.command in {"interactive", "i"}:
        asyncio.run(_interactive(orchestrator))
        return 0

    if args.command == "demo":
        objective, context, constraints = DEMO_OBJECTIVE, DEMO_CONTEXT, []
    else:
        objective, context, constraints = args.objective, args.context, args.constraints

    try:
        session = orchestrator.orchestrate_sync(objective, context, constraints)
    except ValidationError as exc:
        logger.error("invalid_request", errors=exc.errors())
        return 2
    except Exception as exc:
        logger.error("orchestration_failed", error=str(exc))
        return 1
    print(format_session_summary(session))
    return 0


if __name__ == "__main__":
    sys.exit(main())
