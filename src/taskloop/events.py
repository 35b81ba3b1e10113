# events.py
# Typed lifecycle notifications and the bus that delivers them.
#
# Emission is sequential: each listener is awaited before the next one runs,
# so observers see events in loop order and in registration order.

import inspect
import logging
from typing import Annotated, Any, Awaitable, Callable, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from taskloop.models import AgentConfig, AgentResult, ErrorInfo, Step

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event variants
# ---------------------------------------------------------------------------


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class StartEvent(_Event):
    type: Literal["start"] = "start"
    config: AgentConfig
    input: str


class StepEvent(_Event):
    type: Literal["step"] = "step"
    step: Step


class ToolCallEvent(_Event):
    type: Literal["tool_call"] = "tool_call"
    capability: str
    input: Any = None


class ToolResultEvent(_Event):
    type: Literal["tool_result"] = "tool_result"
    capability: str
    output: Any = None


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    error: ErrorInfo
    step_number: int | None = None


class FinishEvent(_Event):
    type: Literal["finish"] = "finish"
    result: AgentResult


AgentEvent = Annotated[
    Union[StartEvent, StepEvent, ToolCallEvent, ToolResultEvent, ErrorEvent, FinishEvent],
    Field(discriminator="type"),
]

EventListener = Callable[[Any], Union[None, Awaitable[None]]]


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------


class EventBus:
    """
    Fan-out of agent events to a fixed list of listeners.

    Listeners are added through the constructor (there is no add_listener());
    the set never changes afterwards.

    Listeners may be plain functions or coroutine functions. With
    propagate_errors=False (the default) a failing listener is logged and the
    remaining listeners still run. With propagate_errors=True the first
    failure propagates to whoever called emit().

    A single bus may be shared by several agents; events from concurrent runs
    interleave.
    """

    def __init__(self, listeners: Iterable[EventListener] = (), *, propagate_errors: bool = False) -> None:
        self._listeners: tuple[EventListener, ...] = tuple(listeners)
        self._propagate_errors = propagate_errors

    @property
    def listeners(self) -> tuple[EventListener, ...]:
        return self._listeners

    async def emit(self, event: _Event) -> None:
        for listener in self._listeners:
            if self._propagate_errors:
                await _invoke(listener, event)
                continue
            try:
                await _invoke(listener, event)
            except Exception:
                logger.exception(
                    "Event listener %r failed on %s event; continuing.",
                    getattr(listener, "__qualname__", listener),
                    event.type,
                )


async def _invoke(listener: EventListener, event: _Event) -> None:
    outcome = listener(event)
    if inspect.isawaitable(outcome):
        await outcome
