# run.py
# Entry point. Config and wiring only. No logic lives here.
#
# Decisions are scripted: plug a real DecisionProvider in place of
# ScriptedDecisionProvider to drive the loop from a reasoning backend.

import asyncio

from taskloop import display
from taskloop.agent import Agent
from taskloop.capabilities import memory_capabilities, register_builtins
from taskloop.config import Settings
from taskloop.memory import DurableMemory, EphemeralMemory
from taskloop.providers import ScriptedDecisionProvider
from taskloop.registry import CapabilityRegistry

# Demo scripts: one clean run, one that recovers from bad input.
SCRIPTS = {
    "What is 12 * 7, shouted?": [
        {
            "thought": "Multiply first.",
            "action": {"capability": "calculator", "input": {"operation": "multiply", "a": 12, "b": 7}},
        },
        {
            "thought": "Now shout it.",
            "action": {"capability": "string_manipulation", "input": {"text": "eighty-four", "operation": "uppercase"}},
        },
        {
            "thought": "Remember the answer for later.",
            "action": {"capability": "remember", "input": {"key": "last_answer", "value": 84}},
        },
        {"thought": "12 * 7 = EIGHTY-FOUR"},
    ],
    "Divide 1 by 0, then by 2.": [
        {
            "thought": "Try the division as asked.",
            "action": {"capability": "calculator", "input": {"operation": "divide", "a": 1, "b": 0}},
        },
        {
            "thought": "Capability rejected that; send a malformed request to show validation.",
            "action": {"capability": "calculator", "input": {"operation": "modulo", "a": 1}},
        },
        {
            "thought": "Fall back to a valid divisor.",
            "action": {"capability": "calculator", "input": {"operation": "divide", "a": 1, "b": 2}},
        },
        {"thought": "1 / 0 is undefined; 1 / 2 = 0.5"},
    ],
}


async def _main(settings: Settings) -> None:
    registry = CapabilityRegistry()
    register_builtins(registry)

    with DurableMemory(settings.memory_path, autosave_interval=settings.autosave_interval) as memory:
        memory.load()
        for capability in memory_capabilities(memory):
            registry.register(capability, "memory")

        for goal, script in SCRIPTS.items():
            agent = Agent(
                settings.agent_config("demo", "Scripted demonstration agent"),
                ScriptedDecisionProvider(script),
                registry=registry,
                memory=EphemeralMemory(settings.short_term_size),
                listeners=[display.report],
                capability_timeout=settings.capability_timeout,
            )
            await agent.run(goal)


def main() -> None:
    settings = Settings.from_env()
    display.configure_logging(settings.log_level)
    asyncio.run(_main(settings))


if __name__ == "__main__":
    main()
