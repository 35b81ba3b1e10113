# errors.py
# Exception hierarchy for the taskloop runtime.
#
# Step-local failures (capability errors) are recorded on the Step and never
# abort a run. Persistence failures always reach the caller.


class TaskloopError(Exception):
    """Base class for every error raised by taskloop."""


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class CapabilityError(TaskloopError):
    """Base class for failures tied to one named capability."""

    def __init__(self, capability: str, message: str) -> None:
        super().__init__(message)
        self.capability = capability


class CapabilityNotFoundError(CapabilityError):
    """Raised when an action names a capability absent from the registry."""

    def __init__(self, capability: str) -> None:
        super().__init__(capability, f"Capability not found: {capability}")


class DuplicateCapabilityError(CapabilityError):
    """Raised when registering a name that is already taken."""

    def __init__(self, capability: str) -> None:
        super().__init__(capability, f"Capability already registered (duplicate): {capability}")


class CapabilityValidationError(CapabilityError):
    """Raised when capability input fails its schema. Carries pydantic's error list."""

    def __init__(self, capability: str, errors: list[dict]) -> None:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())) or '<root>'}: {err.get('msg', '')}"
            for err in errors
        )
        super().__init__(
            capability,
            f"Input validation failed for capability '{capability}': {details}",
        )
        self.errors = errors


class CapabilityExecutionError(CapabilityError):
    """Raised when a capability's own logic fails. The original error is __cause__."""


class CapabilityTimeoutError(CapabilityExecutionError):
    """Raised when a capability does not finish before its deadline."""

    def __init__(self, capability: str, timeout: float) -> None:
        super().__init__(
            capability, f"Capability '{capability}' timed out after {timeout:g}s"
        )
        self.timeout = timeout


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------


class PersistenceError(TaskloopError):
    """Raised when the durable memory store cannot be written. Never swallowed."""


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


class AgentBusyError(TaskloopError):
    """Raised when run() is called on an agent that is already running."""


class AgentNotFoundError(TaskloopError):
    """Raised by the router for an unregistered agent name."""
