import pytest
from pydantic import BaseModel

from taskloop.agent import Agent
from taskloop.errors import AgentNotFoundError
from taskloop.models import AgentConfig, Capability
from taskloop.providers import ScriptedDecisionProvider
from taskloop.router import AgentRouter, RouterStats


class EchoInput(BaseModel):
    message: str


echo = Capability(name="echo", description="Echo a message", input_schema=EchoInput, execute=lambda i: i.message)


def _agent(name: str, decisions: list, max_iterations: int = 3) -> Agent:
    return Agent(
        AgentConfig(name=name, description=f"{name} agent", max_iterations=max_iterations),
        ScriptedDecisionProvider(decisions),
        capabilities=[echo],
    )


def test_register_get_and_unregister():
    router = AgentRouter()
    agent = _agent("alpha", [{"thought": "done"}])
    router.register(agent)

    assert router.get("alpha") is agent
    assert router.names() == ["alpha"]
    assert router.unregister("alpha") is True
    assert router.unregister("alpha") is False
    assert router.get("alpha") is None


def test_register_same_name_replaces():
    router = AgentRouter()
    first = _agent("alpha", [{"thought": "one"}])
    second = _agent("alpha", [{"thought": "two"}])
    router.register(first)
    router.register(second)

    assert router.get("alpha") is second
    assert router.names() == ["alpha"]


@pytest.mark.asyncio
async def test_execute_routes_to_named_agent():
    router = AgentRouter()
    router.register(_agent("alpha", [{"thought": "from alpha"}]))
    router.register(_agent("beta", [{"thought": "from beta"}]))

    result = await router.execute("beta", "hello")

    assert result.output == "from beta"


@pytest.mark.asyncio
async def test_execute_unknown_agent():
    router = AgentRouter()
    with pytest.raises(AgentNotFoundError, match="ghost"):
        await router.execute("ghost", "hello")
    assert router.stats().total_executions == 0


@pytest.mark.asyncio
async def test_stats_track_success_and_failure():
    router = AgentRouter()
    router.register(_agent("good", [{"thought": "done"}]))
    router.register(_agent("loops", [{"thought": "again", "action": {"capability": "echo", "input": {"message": "x"}}}]))

    await router.execute("good", "a")
    await router.execute("good", "b")
    await router.execute("loops", "c")

    stats = router.stats()
    assert stats.total_executions == 3
    assert stats.successful_executions == 2
    assert stats.failed_executions == 1
    assert stats.success_rate == pytest.approx(2 / 3)

    router.reset_stats()
    assert router.stats() == RouterStats()


@pytest.mark.asyncio
async def test_execute_resets_agent_state_by_default():
    router = AgentRouter()
    agent = _agent("alpha", [{"thought": "done"}])
    router.register(agent)

    await router.execute("alpha", "first")
    await router.execute("alpha", "second")

    user_messages = [m.content for m in agent.state.messages if m.role == "user"]
    assert user_messages == ["second"]


@pytest.mark.asyncio
async def test_execute_can_keep_history():
    router = AgentRouter()
    agent = _agent("alpha", [{"thought": "done"}])
    router.register(agent)

    await router.execute("alpha", "first")
    await router.execute("alpha", "second", reset=False)

    user_messages = [m.content for m in agent.state.messages if m.role == "user"]
    assert user_messages == ["first", "second"]
