# router.py
# Dispatches goals to named agents and keeps execution counters.

import logging

from pydantic import BaseModel

from taskloop.agent import Agent
from taskloop.errors import AgentNotFoundError
from taskloop.models import AgentResult

logger = logging.getLogger(__name__)


class RouterStats(BaseModel):
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    success_rate: float = 0.0


class AgentRouter:
    """Holds agents by config name. Registering a name twice replaces the agent."""

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._stats = RouterStats()

    def register(self, agent: Agent) -> None:
        if agent.name in self._agents:
            logger.info("Replacing agent %r in router", agent.name)
        self._agents[agent.name] = agent

    def unregister(self, name: str) -> bool:
        return self._agents.pop(name, None) is not None

    def get(self, name: str) -> Agent | None:
        return self._agents.get(name)

    def names(self) -> list[str]:
        return list(self._agents)

    async def execute(self, name: str, input: str, *, reset: bool = True) -> AgentResult:
        """
        Run input on the named agent.

        With reset=True (default) the agent's state is cleared first, so each
        routed goal starts from a clean history.
        """
        agent = self._agents.get(name)
        if agent is None:
            raise AgentNotFoundError(f"Agent {name!r} not registered")
        if reset:
            agent.reset()

        result = await agent.run(input)
        self._record(result.success)
        return result

    def _record(self, success: bool) -> None:
        total = self._stats.total_executions + 1
        successful = self._stats.successful_executions + int(success)
        self._stats = RouterStats(
            total_executions=total,
            successful_executions=successful,
            failed_executions=total - successful,
            success_rate=successful / total,
        )

    def stats(self) -> RouterStats:
        return self._stats.model_copy()

    def reset_stats(self) -> None:
        self._stats = RouterStats()
