import pytest
from pydantic import ValidationError

from conductor.schemas.tasks import Priority, Session, SessionStatus, TaskInput, TaskStatus

from helpers.stubs import make_task


def test_session_can_only_be_completed_once() -> None:
    session = Session(objective="once")

    session.mark_completed()

    assert session.status is SessionStatus.COMPLETED
    assert session.duration_seconds is not None and session.duration_seconds >= 0
    with pytest.raises(RuntimeError):
        session.mark_completed()


def test_session_lookup_helpers() -> None:
    done = make_task("task-2")
    done.status = TaskStatus.COMPLETED
    session = Session(objective="lookup", tasks=[make_task("task-1"), done])

    assert session.get_task("task-2") is done
    assert session.get_task("task-9") is None
    assert session.tasks_with_status(TaskStatus.COMPLETED) == [done]
    assert session.duration_seconds is None


def test_task_status_assignment_is_validated() -> None:
    task = make_task("task-1")

    task.status = "blocked"  # type: ignore[assignment]

    assert task.status is TaskStatus.BLOCKED
    assert task.is_finished
    with pytest.raises(ValidationError):
        task.status = "sleeping"  # type: ignore[assignment]


def test_priority_rank_orders_critical_first() -> None:
    ranked = sorted(Priority, key=lambda priority: priority.rank)

    assert ranked == [Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW]


def test_record_message_appends_to_log() -> None:
    session = Session(objective="log")

    message = session.record_message(sender="coder", recipient="conductor", type="result", content="x")

    assert session.messages == [message]
    assert message.id


@pytest.mark.parametrize("objective", ["", "  \t"])
def test_task_input_requires_objective(objective: str) -> None:
    with pytest.raises(ValidationError):
        TaskInput(objective=objective)


def test_task_input_coerces_optional_lists() -> None:
    request = TaskInput(objective="  trim me ", constraints="single", preferred_roles=None)

    assert request.objective == "trim me"
    assert request.constraints == ["single"]
    assert request.preferred_roles == []


def test_task_input_rejects_unknown_preferred_role() -> None:
    with pytest.raises(ValidationError):
        TaskInput(objective="x", preferred_roles=["wizard"])
