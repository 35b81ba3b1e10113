# models.py
# Data contracts for the taskloop runtime.
# No business logic lives here, pure schema and validation.

import traceback
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class AgentConfig(BaseModel):
    """Static agent configuration. Frozen once constructed."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Agent identifier.")
    description: str = Field(..., description="What the agent is for.")
    max_iterations: int = Field(default=10, gt=0, description="Hard ceiling on loop iterations.")
    temperature: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Advisory; passed through to the decision provider."
    )
    verbose: bool = Field(default=False, description="Log run progress at info level.")
    system_prompt: str | None = Field(
        default=None, description="Derived from name, description and capabilities when absent."
    )


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class CapabilityExample(BaseModel):
    """Documentation-only usage example. Never executed."""

    model_config = ConfigDict(frozen=True)

    input: dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    description: str | None = None


class Capability(BaseModel):
    """A named unit of external action with a validated input schema."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Unique key within a registry.")
    description: str = Field(..., description="Shown to the decision provider.")
    input_schema: type[BaseModel] = Field(..., description="pydantic model the input must satisfy.")
    execute: Callable[[Any], Any] = Field(
        ..., description="Receives the validated input_schema instance. May be async."
    )
    examples: list[CapabilityExample] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Decisions and execution records
# ---------------------------------------------------------------------------


class Action(BaseModel):
    """A request to invoke one capability."""

    model_config = ConfigDict(frozen=True)

    capability: str = Field(..., description="Capability name, looked up in the registry.")
    input: Any = Field(default_factory=dict, description="Raw input, validated before execution.")


class Decision(BaseModel):
    """What the decision provider wants to do next. No action means finish."""

    model_config = ConfigDict(frozen=True)

    thought: str
    action: Action | None = None


class ErrorInfo(BaseModel):
    """Serialisable record of a failure, kept on steps, events and results."""

    model_config = ConfigDict(frozen=True)

    type: str
    message: str
    cause: str | None = None
    traceback: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        cause = exc.__cause__
        return cls(
            type=type(exc).__name__,
            message=str(exc) or type(exc).__name__,
            cause=f"{type(cause).__name__}: {cause}" if cause is not None else None,
            traceback="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )


class Step(BaseModel):
    """Immutable record of one loop iteration."""

    model_config = ConfigDict(frozen=True)

    iteration: int = Field(..., ge=1, description="1-based iteration number.")
    thought: str = ""
    action: Action | None = None
    observation: Any = None
    error: ErrorInfo | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class Message(BaseModel):
    """One entry of the conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant", "capability"]
    content: str
    name: str | None = Field(default=None, description="Capability name for capability messages.")
    timestamp: datetime = Field(default_factory=utcnow)


class AgentState(BaseModel):
    """Mutable execution state. Owned by exactly one Agent."""

    iteration: int = Field(default=0, ge=0)
    messages: list[Message] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    is_finished: bool = False
    final_output: str | None = None


class RunMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_time: datetime
    end_time: datetime
    duration_ms: float = Field(..., ge=0.0, description="Measured on the monotonic clock.")


class AgentResult(BaseModel):
    """Outcome of Agent.run(). Always well-formed, even on failure."""

    model_config = ConfigDict(frozen=True)

    output: str
    steps: list[Step]
    iterations: int
    success: bool
    error: ErrorInfo | None = None
    metadata: RunMetadata
