import asyncio
import logging

import pytest
from pydantic import TypeAdapter, ValidationError

from taskloop.events import (
    AgentEvent,
    ErrorEvent,
    EventBus,
    StartEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from taskloop.models import AgentConfig, ErrorInfo


def _start() -> StartEvent:
    return StartEvent(config=AgentConfig(name="bus", description="bus test"), input="goal")


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_listeners_run_in_registration_order():
    seen = []
    bus = EventBus([lambda e: seen.append(("first", e.type)), lambda e: seen.append(("second", e.type))])

    await bus.emit(_start())
    await bus.emit(ToolCallEvent(capability="echo", input={"text": "hi"}))

    assert seen == [
        ("first", "start"),
        ("second", "start"),
        ("first", "tool_call"),
        ("second", "tool_call"),
    ]


@pytest.mark.asyncio
async def test_async_listener_is_awaited_before_the_next():
    seen = []

    async def slow(event):
        await asyncio.sleep(0.01)
        seen.append("slow")

    bus = EventBus([slow, lambda e: seen.append("fast")])
    await bus.emit(_start())

    assert seen == ["slow", "fast"]


@pytest.mark.asyncio
async def test_bus_without_listeners():
    bus = EventBus()
    await bus.emit(_start())
    assert bus.listeners == ()


# ---------------------------------------------------------------------------
# Listener failures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_failing_listener_is_isolated(caplog):
    seen = []

    def broken(event):
        raise RuntimeError("listener bug")

    bus = EventBus([broken, lambda e: seen.append(e.type)])
    with caplog.at_level(logging.ERROR, logger="taskloop.events"):
        await bus.emit(_start())

    assert seen == ["start"]
    assert "listener bug" in caplog.text


@pytest.mark.asyncio
async def test_failing_listener_propagates_when_asked():
    seen = []

    async def broken(event):
        raise RuntimeError("listener bug")

    bus = EventBus([broken, lambda e: seen.append(e.type)], propagate_errors=True)
    with pytest.raises(RuntimeError, match="listener bug"):
        await bus.emit(_start())

    assert seen == []


# ---------------------------------------------------------------------------
# Event models
# ---------------------------------------------------------------------------

def test_events_are_immutable():
    event = ToolResultEvent(capability="echo", output="hi")
    with pytest.raises(ValidationError):
        event.output = "changed"


def test_discriminated_union_picks_variant():
    adapter = TypeAdapter(AgentEvent)

    event = adapter.validate_python(
        {"type": "error", "error": {"type": "ValueError", "message": "bad"}, "step_number": 2}
    )

    assert isinstance(event, ErrorEvent)
    assert event.error == ErrorInfo(type="ValueError", message="bad")
    assert event.step_number == 2

    with pytest.raises(ValidationError):
        adapter.validate_python({"type": "unknown"})


def test_event_dump_keeps_type_tag():
    dumped = ToolCallEvent(capability="echo", input={"x": 1}).model_dump()
    assert dumped == {"type": "tool_call", "capability": "echo", "input": {"x": 1}}
