# agent.py
# Execution loop.
#
# The Agent is the kernel. The decision provider and the capabilities are
# passive collaborators. This class owns iteration, state, dispatch and
# event emission. Neither collaborator ever sees the live state.
#
# Control flow:
#   start → user message → [decide → tool_call? → validate + execute
#   → tool_result | error → step] × n → finish
#
# Step-local failures are recorded on the Step and the loop moves on.
# Anything else is caught at the top of run() and returned in the result.

import logging
import time
from typing import Any, Iterable

from taskloop.errors import AgentBusyError
from taskloop.events import (
    ErrorEvent,
    EventBus,
    EventListener,
    FinishEvent,
    StartEvent,
    StepEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from taskloop.memory import MemoryStore
from taskloop.models import (
    AgentConfig,
    AgentResult,
    AgentState,
    Capability,
    ErrorInfo,
    Message,
    RunMetadata,
    Step,
    utcnow,
)
from taskloop.providers import DecisionProvider, FinishImmediately, resolve_decision
from taskloop.registry import CapabilityRegistry, render_json

logger = logging.getLogger(__name__)

NO_OUTPUT = "No output generated"


# ---------------------------------------------------------------------------
# System Prompt
# ---------------------------------------------------------------------------

DEFAULT_SYSTEM_PROMPT = """\
You are {name}, an autonomous agent.

Description: {description}

Available capabilities:
{capabilities}

Instructions:
1. Think step-by-step about the request.
2. Use a capability when you need information or need to act.
3. Give a clear, helpful answer.
4. If you cannot complete the task, explain why.

When using a capability, respond in this format:
Thought: <your reasoning>
Action: <capability name>
Action Input: <JSON input for the capability>

When you have a final answer, respond:
Thought: <your reasoning>
Final Answer: <your response>\
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _default_system_prompt(config: AgentConfig, registry: CapabilityRegistry) -> str:
    listing = "\n".join(f"- {c.name}: {c.description}" for c in registry.list())
    return DEFAULT_SYSTEM_PROMPT.format(
        name=config.name,
        description=config.description,
        capabilities=listing or "(No capabilities available)",
    )


def _format_observation(observation: Any) -> str:
    if isinstance(observation, str):
        return observation
    return render_json(observation)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class Agent:
    """
    Runs goals through a bounded decide → act → observe loop.

    Example:
        agent = Agent(
            AgentConfig(name="calc", description="Does arithmetic", max_iterations=5),
            ScriptedDecisionProvider([
                {"thought": "add", "action": {"capability": "calculator",
                                              "input": {"operation": "add", "a": 2, "b": 3}}},
                {"thought": "The answer is 5."},
            ]),
            capabilities=[calculator],
        )
        result = await agent.run("What is 2 + 3?")

    One agent runs one goal at a time. Registry, memory and event bus may be
    shared between agents.
    """

    def __init__(
        self,
        config: AgentConfig,
        decision_provider: DecisionProvider | None = None,
        *,
        registry: CapabilityRegistry | None = None,
        capabilities: Iterable[Capability] = (),
        memory: MemoryStore | None = None,
        listeners: Iterable[EventListener] = (),
        event_bus: EventBus | None = None,
        capability_timeout: float | None = None,
    ) -> None:
        listeners = tuple(listeners)
        if event_bus is not None and listeners:
            raise ValueError("Pass either listeners or event_bus, not both.")

        self._decider: DecisionProvider = decision_provider or FinishImmediately()
        self._registry = registry if registry is not None else CapabilityRegistry()
        for capability in capabilities:
            self._registry.register(capability)
        self._memory = memory
        self._bus = event_bus if event_bus is not None else EventBus(listeners)
        self._capability_timeout = capability_timeout or None

        if config.system_prompt is None:
            config = config.model_copy(
                update={"system_prompt": _default_system_prompt(config, self._registry)}
            )
        self._config = config

        self._running = False
        self._state = self._fresh_state()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def memory(self) -> MemoryStore | None:
        return self._memory

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def state(self) -> AgentState:
        """
        Snapshot of the current state. Reassigning its fields or editing its
        lists has no effect on the agent.

        Messages and steps are frozen, so the lists are copied and the records
        shared. Observations are opaque capability output and are never copied.
        """
        return self._snapshot()

    def register_capability(self, capability: Capability, category: str | None = None) -> None:
        self._registry.register(capability, category)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _fresh_state(self) -> AgentState:
        return AgentState(messages=[Message(role="system", content=self._config.system_prompt or "")])

    def _snapshot(self) -> AgentState:
        state = self._state
        return AgentState(
            iteration=state.iteration,
            messages=list(state.messages),
            steps=list(state.steps),
            is_finished=state.is_finished,
            final_output=state.final_output,
        )

    def reset(self) -> None:
        """Back to iteration 0 with only the system message. Registry and memory are kept."""
        if self._running:
            raise AgentBusyError(f"Agent {self.name!r} cannot be reset while running.")
        self._state = self._fresh_state()

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    async def _execute_step(self) -> Step:
        """
        One iteration: ask for a decision, then act on it.

        Decision-provider and listener failures propagate (run-level). A
        failing capability call is caught and recorded on the returned Step.
        """
        iteration = self._state.iteration
        decision = await resolve_decision(self._decider, self._snapshot())
        self._state.messages.append(Message(role="assistant", content=decision.thought))

        action = decision.action
        if action is None:
            return Step(iteration=iteration, thought=decision.thought)

        await self._bus.emit(ToolCallEvent(capability=action.capability, input=action.input))
        try:
            observation = await self._registry.execute(
                action.capability, action.input, timeout=self._capability_timeout
            )
        except Exception as exc:
            error = ErrorInfo.from_exception(exc)
            logger.warning(
                "Agent %r step %d: capability %r failed: %s",
                self.name,
                iteration,
                action.capability,
                error.message,
            )
            await self._bus.emit(ErrorEvent(error=error, step_number=iteration))
            return Step(iteration=iteration, thought=decision.thought, action=action, error=error)

        self._state.messages.append(
            Message(
                role="capability",
                name=action.capability,
                content=_format_observation(observation),
            )
        )
        await self._bus.emit(ToolResultEvent(capability=action.capability, output=observation))
        return Step(
            iteration=iteration,
            thought=decision.thought,
            action=action,
            observation=observation,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, input: str) -> AgentResult:
        """
        Run one goal to completion.

        Always returns an AgentResult; the caller gets partial steps and
        timing metadata even when the run fails.
        """
        if self._running:
            raise AgentBusyError(f"Agent {self.name!r} is already running.")
        self._running = True
        try:
            return await self._run(input)
        finally:
            self._running = False

    async def _run(self, input: str) -> AgentResult:
        start_time = utcnow()
        started = time.perf_counter()
        log = logger.info if self._config.verbose else logger.debug
        state = self._state

        def metadata() -> RunMetadata:
            return RunMetadata(
                start_time=start_time,
                end_time=utcnow(),
                duration_ms=(time.perf_counter() - started) * 1000.0,
            )

        log("Agent %r starting (max_iterations=%d)", self.name, self._config.max_iterations)

        try:
            await self._bus.emit(StartEvent(config=self._config, input=input))
            state.messages.append(Message(role="user", content=input))

            while state.iteration < self._config.max_iterations and not state.is_finished:
                state.iteration += 1
                step = await self._execute_step()
                state.steps.append(step)

                if step.action is None:
                    state.is_finished = True
                    state.final_output = step.thought

                await self._bus.emit(StepEvent(step=step))

            result = AgentResult(
                output=state.final_output if state.final_output is not None else NO_OUTPUT,
                steps=list(state.steps),
                iterations=state.iteration,
                success=state.is_finished and not any(s.error for s in state.steps),
                metadata=metadata(),
            )
            await self._bus.emit(FinishEvent(result=result))

            log(
                "Agent %r finished: success=%s iterations=%d (%.1f ms)",
                self.name,
                result.success,
                result.iterations,
                result.metadata.duration_ms,
            )
            return result

        except Exception as exc:
            logger.exception("Agent %r run failed at iteration %d", self.name, state.iteration)
            error = ErrorInfo.from_exception(exc)
            result = AgentResult(
                output="",
                steps=list(state.steps),
                iterations=state.iteration,
                success=False,
                error=error,
                metadata=metadata(),
            )
            try:
                await self._bus.emit(ErrorEvent(error=error, step_number=state.iteration))
                await self._bus.emit(FinishEvent(result=result))
            except Exception:
                logger.exception("Agent %r: listener failed while reporting a failed run", self.name)
            return result
