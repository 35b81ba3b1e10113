import logging
from unittest.mock import patch

import pytest
from pydantic import BaseModel
from rich.console import Console

from taskloop import display
from taskloop.agent import Agent
from taskloop.models import AgentConfig, Capability
from taskloop.providers import ScriptedDecisionProvider


class EchoInput(BaseModel):
    message: str


echo = Capability(name="echo", description="Echo a message", input_schema=EchoInput, execute=lambda i: i.message)


@pytest.fixture
def recorded():
    console = Console(record=True, width=120, color_system=None)
    with patch.object(display, "console", console):
        yield console


def _agent(decisions: list, max_iterations: int = 3) -> Agent:
    return Agent(
        AgentConfig(name="shown", description="Rendered agent", max_iterations=max_iterations),
        ScriptedDecisionProvider(decisions),
        capabilities=[echo],
        listeners=[display.report],
    )


@pytest.mark.asyncio
async def test_successful_run_is_rendered(recorded):
    agent = _agent(
        [
            {"thought": "say it", "action": {"capability": "echo", "input": {"message": "hello there"}}},
            {"thought": "All done."},
        ]
    )
    await agent.run("Greet the user")

    text = recorded.export_text()
    assert "shown" in text
    assert "GOAL" in text
    assert "Greet the user" in text
    assert "STEP 1" in text
    assert "echo" in text
    assert "hello there" in text
    assert "RUN SUMMARY" in text
    assert "RESULT" in text
    assert "All done." in text


@pytest.mark.asyncio
async def test_failed_run_is_rendered(recorded):
    agent = _agent([{"thought": "loop", "action": {"capability": "ghost", "input": {}}}], max_iterations=1)
    await agent.run("Call a missing capability")

    text = recorded.export_text()
    assert "ERROR" in text
    assert "CapabilityNotFoundError at step 1" in text
    assert "FAILED" in text


def test_long_values_are_truncated(recorded):
    display.capability_result("echo", "x" * 500)
    text = recorded.export_text()
    assert "…" in text
    assert "x" * 141 not in text


def test_configure_logging_routes_through_rich(recorded):
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    display.configure_logging("INFO")
    try:
        logging.getLogger("taskloop.test").info("hello from the logger")
        assert "hello from the logger" in recorded.export_text()
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
