# registry.py
# Capability registry, the only path from an agent to a capability.
#
# The agent never calls capability functions directly: it asks the registry,
# which looks the capability up, validates the input against its schema and
# then executes it.
#
# Writes (register / unregister / clear) are serialised by a lock and publish
# fresh dicts, so readers never need the lock.

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import threading
from typing import Any

from pydantic import BaseModel, ValidationError

from taskloop.errors import (
    CapabilityError,
    CapabilityExecutionError,
    CapabilityNotFoundError,
    CapabilityTimeoutError,
    CapabilityValidationError,
    DuplicateCapabilityError,
)
from taskloop.models import Capability

logger = logging.getLogger(__name__)


class RegistryStats(BaseModel):
    total_capabilities: int
    total_categories: int
    capabilities_by_category: dict[str, int]


def render_json(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


async def _call(capability: Capability, validated: BaseModel) -> Any:
    """Await async capabilities; run sync ones in a worker thread."""
    if inspect.iscoroutinefunction(capability.execute):
        return await capability.execute(validated)
    outcome = await asyncio.to_thread(capability.execute, validated)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome


class CapabilityRegistry:
    """
    Named capabilities, optionally grouped into non-exclusive categories.

    Example:
        registry = CapabilityRegistry()
        registry.register(calculator, category="math")
        result = await registry.execute("calculator", {"operation": "add", "a": 2, "b": 3})
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._capabilities: dict[str, Capability] = {}
        self._categories: dict[str, tuple[str, ...]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, capability: Capability, category: str | None = None) -> None:
        with self._lock:
            if capability.name in self._capabilities:
                raise DuplicateCapabilityError(capability.name)

            capabilities = dict(self._capabilities)
            capabilities[capability.name] = capability
            categories = dict(self._categories)
            if category:
                members = categories.get(category, ())
                if capability.name not in members:
                    categories[category] = members + (capability.name,)

            self._capabilities = capabilities
            self._categories = categories

        logger.debug("Registered capability %r (category=%r)", capability.name, category)

    def categorize(self, name: str, category: str) -> None:
        """Add an already registered capability to another category."""
        with self._lock:
            if name not in self._capabilities:
                raise CapabilityNotFoundError(name)
            members = self._categories.get(category, ())
            if name in members:
                return
            categories = dict(self._categories)
            categories[category] = members + (name,)
            self._categories = categories

    def unregister(self, name: str) -> bool:
        """Remove a capability and scrub it from every category."""
        with self._lock:
            if name not in self._capabilities:
                return False
            capabilities = {k: v for k, v in self._capabilities.items() if k != name}
            categories = {
                category: tuple(member for member in members if member != name)
                for category, members in self._categories.items()
            }
            self._capabilities = capabilities
            self._categories = categories

        logger.debug("Unregistered capability %r", name)
        return True

    def clear(self) -> None:
        with self._lock:
            self._capabilities = {}
            self._categories = {}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> Capability | None:
        return self._capabilities.get(name)

    def has(self, name: str) -> bool:
        return name in self._capabilities

    def list(self) -> list[Capability]:
        return list(self._capabilities.values())

    def list_by_category(self, category: str) -> list[Capability]:
        capabilities = self._capabilities
        return [
            capabilities[name]
            for name in self._categories.get(category, ())
            if name in capabilities
        ]

    def names(self) -> list[str]:
        return list(self._capabilities)

    def categories(self) -> list[str]:
        return list(self._categories)

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, name: str, input: Any, *, timeout: float | None = None) -> Any:
        """
        Validate input and run the named capability.

        Raises CapabilityNotFoundError, CapabilityValidationError,
        CapabilityTimeoutError (timeout > 0 and the deadline passed) or
        CapabilityExecutionError wrapping whatever the capability raised.

        A timed-out sync capability keeps running in its worker thread; only
        the caller stops waiting for it.
        """
        capability = self._capabilities.get(name)
        if capability is None:
            raise CapabilityNotFoundError(name)

        try:
            validated = capability.input_schema.model_validate(input)
        except ValidationError as exc:
            raise CapabilityValidationError(name, exc.errors(include_url=False)) from exc

        async def _guarded() -> Any:
            try:
                return await _call(capability, validated)
            except CapabilityError:
                raise
            except Exception as exc:
                raise CapabilityExecutionError(name, f"Capability '{name}' failed: {exc}") from exc

        if not timeout:
            return await _guarded()
        # Capability exceptions are already wrapped, so a TimeoutError here is the deadline.
        try:
            return await asyncio.wait_for(_guarded(), timeout)
        except asyncio.TimeoutError as exc:
            raise CapabilityTimeoutError(name, timeout) from exc

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def describe(self) -> str:
        """Render every capability with its examples, for decision-provider prompts."""
        blocks: list[str] = []
        for capability in self._capabilities.values():
            lines = [f"{capability.name}: {capability.description}"]
            if capability.examples:
                lines.append("Examples:")
                for example in capability.examples:
                    if example.description:
                        lines.append(f"  # {example.description}")
                    lines.append(f"  Input: {render_json(example.input)}")
                    lines.append(f"  Output: {render_json(example.output)}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def stats(self) -> RegistryStats:
        categories = self._categories
        return RegistryStats(
            total_capabilities=len(self._capabilities),
            total_categories=len(categories),
            capabilities_by_category={k: len(v) for k, v in categories.items()},
        )


# ---------------------------------------------------------------------------
# Process-wide default registry
# ---------------------------------------------------------------------------

_default_registry: CapabilityRegistry | None = None
_default_lock = threading.Lock()


def get_default_registry() -> CapabilityRegistry:
    """Return the shared registry, creating it on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = CapabilityRegistry()
        return _default_registry


def reset_default_registry() -> None:
    """Drop the shared registry; the next get_default_registry() builds a new one."""
    global _default_registry
    with _default_lock:
        _default_registry = None
