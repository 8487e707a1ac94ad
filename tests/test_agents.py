import asyncio

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from conductor.agents import (
    ArchitectAgent,
    CapabilityProvider,
    CoderAgent,
    ConductorAgent,
    ConversationHistory,
    ProviderError,
    ReviewerAgent,
)
from conductor.orchestration.decomposer import CONDUCTOR_SYSTEM_PROMPT, PlanGenerator, build_decomposition_prompt
from conductor.schemas.tasks import AgentMessage, MessageType
from conductor.services.llm import LLMService, LLMServiceError, build_messages

from helpers.stubs import FakeChatClient, make_settings


def _llm(client: FakeChatClient) -> LLMService:
    return LLMService.from_settings(make_settings(), client=client)


@pytest.mark.asyncio
async def test_agent_keeps_multi_turn_history() -> None:
    client = FakeChatClient(["first reply", "second reply"])
    coder = CoderAgent.build(_llm(client))

    assert await coder.think("hello") == "first reply"
    assert await coder.think("again") == "second reply"

    assert coder.history.snapshot() == [
        ("user", "hello"),
        ("assistant", "first reply"),
        ("user", "again"),
        ("assistant", "second reply"),
    ]
    second_call = client.received[1]
    assert isinstance(second_call[0], SystemMessage)
    assert [type(message) for message in second_call[1:]] == [HumanMessage, AIMessage, HumanMessage]


@pytest.mark.asyncio
async def test_caller_supplied_history_leaves_agent_buffer_untouched() -> None:
    client = FakeChatClient(["scoped"])
    reviewer = ReviewerAgent.build(_llm(client))
    scoped = ConversationHistory()

    await reviewer.think("review this", history=scoped)

    assert len(scoped) == 2
    assert len(reviewer.history) == 0


@pytest.mark.asyncio
async def test_model_failure_raises_provider_error_and_drops_turn() -> None:
    client = FakeChatClient([RuntimeError("connection refused")])
    architect = ArchitectAgent.build(_llm(client))

    with pytest.raises(ProviderError) as excinfo:
        await architect.invoke("design it")

    assert excinfo.value.role == "architect"
    assert isinstance(excinfo.value.__cause__, LLMServiceError)
    assert len(architect.history) == 0


@pytest.mark.asyncio
async def test_receive_message_labels_sender() -> None:
    client = FakeChatClient()
    coder = CoderAgent.build(_llm(client))
    message = AgentMessage(sender="reviewer", recipient="coder", type=MessageType.FEEDBACK, content="fix the loop")

    await coder.receive_message(message)

    assert client.received[0][-1].content == "[From REVIEWER] fix the loop"


@pytest.mark.asyncio
async def test_coder_helpers_build_prompts() -> None:
    client = FakeChatClient()
    coder = CoderAgent.build(_llm(client))

    await coder.write_code("parse dates")

    assert "parse dates" in client.received[0][-1].content
    assert client.received[0][0].content == coder.system_prompt


@pytest.mark.asyncio
async def test_conductor_agent_starts_fresh_each_synthesis() -> None:
    client = FakeChatClient(["one", "two"])
    conductor = ConductorAgent.build(_llm(client))

    await conductor.invoke("first synthesis")
    await conductor.invoke("second synthesis")

    assert len(client.received[1]) == 2
    assert conductor.history.snapshot() == [("user", "second synthesis"), ("assistant", "two")]


def test_agents_satisfy_capability_provider_protocol() -> None:
    llm = _llm(FakeChatClient())
    for agent in (CoderAgent.build(llm), ReviewerAgent.build(llm), ArchitectAgent.build(llm)):
        assert isinstance(agent, CapabilityProvider)
        assert agent.capabilities


def test_build_messages_maps_turn_roles() -> None:
    messages = build_messages([("user", "q"), ("assistant", "a")], system_prompt="sys")

    assert [type(message) for message in messages] == [SystemMessage, HumanMessage, AIMessage]


def test_decomposition_prompt_lists_request_fields() -> None:
    prompt = build_decomposition_prompt("Ship it", "legacy code", ["no downtime", "python"], ["coder"])

    assert "OBJECTIVE: Ship it" in prompt
    assert "CONTEXT: legacy code" in prompt
    assert "CONSTRAINTS: no downtime, python" in prompt
    assert "PREFERRED AGENTS: coder" in prompt


def test_decomposition_prompt_omits_empty_fields() -> None:
    prompt = build_decomposition_prompt("Ship it")

    assert "CONTEXT" not in prompt
    assert "CONSTRAINTS" not in prompt


@pytest.mark.asyncio
async def test_plan_generator_returns_raw_text() -> None:
    client = FakeChatClient(['{"tasks": []}'])
    generator = PlanGenerator(_llm(client))

    raw = await generator.decompose("Ship it", constraints=["fast"])

    assert raw == '{"tasks": []}'
    sent = client.received[0]
    assert sent[0].content == CONDUCTOR_SYSTEM_PROMPT
    assert "CONSTRAINTS: fast" in sent[-1].content
    assert len(generator.history) == 2


@pytest.mark.asyncio
async def test_plan_generator_failure_raises_provider_error() -> None:
    client = FakeChatClient([TimeoutError("slow")])
    generator = PlanGenerator(_llm(client))

    with pytest.raises(ProviderError) as excinfo:
        await generator.decompose("Ship it")

    assert excinfo.value.role == "conductor"
    assert len(generator.history) == 0


@pytest.mark.asyncio
async def test_role_helpers_embed_their_inputs() -> None:
    client = FakeChatClient()
    llm = _llm(client)
    coder = CoderAgent.build(llm)
    reviewer = ReviewerAgent.build(llm)
    architect = ArchitectAgent.build(llm)

    await coder.fix_bug("off by one", "range(n)")
    await coder.refactor("x=1", "readability")
    await coder.write_tests("def f(): pass")
    await reviewer.review_code("print(1)", context="cli")
    await reviewer.security_audit("eval(x)")
    await reviewer.suggest_improvements("pass")
    await architect.design_system("10k rps")
    await architect.evaluate_tradeoffs(["sqlite", "postgres"], "small team")
    await architect.plan_migration("monolith", "services")

    prompts = [call[-1].content for call in client.received]
    assert "Bug Description: off by one" in prompts[0]
    assert "Goals: readability" in prompts[1]
    assert "def f(): pass" in prompts[2]
    assert prompts[3].endswith("Context: cli")
    assert "eval(x)" in prompts[4]
    assert "pass" in prompts[5]
    assert "10k rps" in prompts[6]
    assert "- sqlite\n- postgres" in prompts[7]
    assert "Target state:\nservices" in prompts[8]


@pytest.mark.asyncio
async def test_generate_sends_single_turn() -> None:
    client = FakeChatClient(["pong"])

    assert await _llm(client).generate("ping", system_prompt="be brief") == "pong"
    assert [message.content for message in client.received[0]] == ["be brief", "ping"]


@pytest.mark.asyncio
async def test_concurrent_calls_on_own_history_run_one_at_a_time() -> None:
    client = FakeChatClient(["first", "second"], delay=0.01)
    coder = CoderAgent.build(_llm(client))

    await asyncio.gather(coder.invoke("a"), coder.invoke("b"))

    assert [message.content for message in client.received[1][1:]] == ["a", "first", "b"]
    assert coder.history.snapshot() == [
        ("user", "a"),
        ("assistant", "first"),
        ("user", "b"),
        ("assistant", "second"),
    ]


@pytest.mark.asyncio
async def test_failed_call_removes_only_its_own_turn_from_shared_history() -> None:
    client = FakeChatClient([RuntimeError("down"), "done"], delay=0.01)
    reviewer = ReviewerAgent.build(_llm(client))
    shared = ConversationHistory()

    results = await asyncio.gather(
        reviewer.think("first", history=shared),
        reviewer.think("second", history=shared),
        return_exceptions=True,
    )

    assert isinstance(results[0], ProviderError)
    assert results[1] == "done"
    assert shared.snapshot() == [("user", "second"), ("assistant", "done")]
