import pytest

from conductor.core.errors import ProviderError
from conductor.orchestration.synthesizer import (
    ResultSynthesizer,
    build_synthesis_prompt,
    render_completed_results,
)
from conductor.schemas.tasks import Session, TaskStatus

from helpers.stubs import ScriptedProvider, make_task, provider_error


def _session() -> Session:
    first = make_task("task-1", title="Design")
    first.status = TaskStatus.COMPLETED
    first.result = "use a queue"
    failed = make_task("task-2", title="Broken")
    failed.status = TaskStatus.FAILED
    third = make_task("task-3", title="Implement")
    third.status = TaskStatus.COMPLETED
    third.result = "done"
    return Session(objective="ship it", tasks=[first, failed, third])


def test_render_completed_results_skips_unfinished_work() -> None:
    rendered = render_completed_results(_session())

    assert rendered == "### Design\nuse a queue\n\n### Implement\ndone"


def test_synthesis_prompt_wraps_results() -> None:
    prompt = build_synthesis_prompt("### A\nx")

    assert prompt.startswith("Synthesize these task results")
    assert "### A\nx" in prompt


@pytest.mark.asyncio
async def test_synthesizer_invokes_provider_once() -> None:
    provider = ScriptedProvider("conductor", default="final answer")

    output = await ResultSynthesizer(provider).synthesize(_session())

    assert output == "final answer"
    assert len(provider.calls) == 1
    assert "### Design\nuse a queue" in provider.calls[0]
    assert "Broken" not in provider.calls[0]


@pytest.mark.asyncio
async def test_synthesizer_runs_with_no_completed_tasks() -> None:
    provider = ScriptedProvider("conductor", default="nothing to report")
    session = Session(objective="empty", tasks=[make_task("task-1")])

    assert await ResultSynthesizer(provider).synthesize(session) == "nothing to report"
    assert provider.calls == [build_synthesis_prompt("")]


@pytest.mark.asyncio
async def test_synthesizer_propagates_provider_errors() -> None:
    provider = ScriptedProvider("conductor", [provider_error("model down")])

    with pytest.raises(ProviderError, match="model down"):
        await ResultSynthesizer(provider).synthesize(_session())
