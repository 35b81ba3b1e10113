# providers.py
# Decision providers: the pluggable "what next?" side of the loop.
#
# The agent hands a provider a snapshot of its state and gets back a
# Decision. Real reasoning backends implement the same protocol; the
# providers here cover placeholders, scripted runs and plain functions.

import inspect
from typing import Any, Awaitable, Callable, Iterable, Mapping, Protocol, Union, runtime_checkable

from taskloop.models import AgentState, Decision

DecisionLike = Union[Decision, Mapping[str, Any]]


@runtime_checkable
class DecisionProvider(Protocol):
    def decide(self, state: AgentState) -> Union[DecisionLike, Awaitable[DecisionLike]]: ...


async def resolve_decision(provider: DecisionProvider, state: AgentState) -> Decision:
    """Call provider.decide() and coerce whatever comes back into a Decision."""
    outcome = provider.decide(state)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    if isinstance(outcome, Decision):
        return outcome
    return Decision.model_validate(outcome)


class FinishImmediately:
    """Placeholder provider: every run ends on its first step."""

    def __init__(self, thought: str = "Analyzing the request and determining next steps...") -> None:
        self._thought = thought

    def decide(self, state: AgentState) -> Decision:
        return Decision(thought=self._thought)


class ScriptedDecisionProvider:
    """
    Replays a fixed list of decisions, one per call.

    Once the script is exhausted the last decision is repeated, so a
    one-element script means "always decide this".
    """

    def __init__(self, decisions: Iterable[DecisionLike]) -> None:
        self._decisions = [
            d if isinstance(d, Decision) else Decision.model_validate(d) for d in decisions
        ]
        if not self._decisions:
            raise ValueError("ScriptedDecisionProvider needs at least one decision.")
        self._cursor = 0
        self.seen_states: list[AgentState] = []

    def decide(self, state: AgentState) -> Decision:
        self.seen_states.append(state)
        decision = self._decisions[min(self._cursor, len(self._decisions) - 1)]
        self._cursor += 1
        return decision

    def rewind(self) -> None:
        self._cursor = 0
        self.seen_states.clear()


class CallableDecisionProvider:
    """Adapts a plain (sync or async) function of AgentState into a provider."""

    def __init__(self, fn: Callable[[AgentState], Any]) -> None:
        self._fn = fn

    def decide(self, state: AgentState) -> Any:
        return self._fn(state)
