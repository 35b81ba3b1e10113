# capabilities.py
# Built-in capabilities.
# Agents never call these functions directly. They go through a
# CapabilityRegistry, which validates input against each input_schema first.

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from taskloop.memory import MemoryStore
from taskloop.models import Capability, CapabilityExample
from taskloop.registry import CapabilityRegistry
from taskloop.validators import ApiRequestInput, NonEmptyStr, PositiveInt

MAX_BODY_CHARS = 4000


# ---------------------------------------------------------------------------
# Input schemas
# ---------------------------------------------------------------------------


class CalculatorInput(BaseModel):
    operation: Literal["add", "subtract", "multiply", "divide"]
    a: float
    b: float


class WebSearchInput(BaseModel):
    query: NonEmptyStr
    limit: PositiveInt = Field(default=5, le=10)


class NoInput(BaseModel):
    pass


class StringManipulationInput(BaseModel):
    text: NonEmptyStr
    operation: Literal["uppercase", "lowercase", "reverse", "length"]


class RememberInput(BaseModel):
    key: NonEmptyStr
    value: Any


class RecallInput(BaseModel):
    key: NonEmptyStr


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------


def _calculate(input: CalculatorInput) -> float:
    if input.operation == "add":
        return input.a + input.b
    if input.operation == "subtract":
        return input.a - input.b
    if input.operation == "multiply":
        return input.a * input.b
    if input.b == 0:
        raise ValueError("Division by zero")
    return input.a / input.b


def _search(input: WebSearchInput) -> list[dict[str, str]]:
    from ddgs import DDGS

    # Coerce the generator to a list so the request actually runs here.
    results = list(DDGS().text(input.query, max_results=input.limit))
    return [
        {
            "title": r.get("title", "No Title"),
            "snippet": r.get("body", ""),
            "url": r.get("href", ""),
        }
        for r in results[: input.limit]
    ]


def _current_time(input: NoInput) -> str:
    return datetime.now(timezone.utc).isoformat()


def _manipulate_string(input: StringManipulationInput) -> str | int:
    if input.operation == "uppercase":
        return input.text.upper()
    if input.operation == "lowercase":
        return input.text.lower()
    if input.operation == "reverse":
        return input.text[::-1]
    return len(input.text)


def _http_request(input: ApiRequestInput) -> dict[str, Any]:
    import httpx

    response = httpx.request(
        input.method,
        str(input.url),
        headers=input.headers,
        json=input.body if input.method != "GET" else None,
        timeout=10,
    )
    body = response.text
    return {
        "status_code": response.status_code,
        "body": body[:MAX_BODY_CHARS] if len(body) > MAX_BODY_CHARS else body,
    }


# ---------------------------------------------------------------------------
# Capability objects
# ---------------------------------------------------------------------------

calculator = Capability(
    name="calculator",
    description="Performs basic arithmetic operations (add, subtract, multiply, divide)",
    input_schema=CalculatorInput,
    execute=_calculate,
    examples=[
        CapabilityExample(input={"operation": "add", "a": 5, "b": 3}, output=8, description="Adding two numbers"),
        CapabilityExample(
            input={"operation": "multiply", "a": 4, "b": 7}, output=28, description="Multiplying two numbers"
        ),
    ],
)

search = Capability(
    name="search",
    description="Search the web (DuckDuckGo) and return titles, snippets and URLs",
    input_schema=WebSearchInput,
    execute=_search,
    examples=[
        CapabilityExample(
            input={"query": "autonomous agents", "limit": 1},
            output=[{"title": "Result 1", "snippet": "Information about autonomous agents...", "url": "https://..."}],
        ),
    ],
)

get_current_time = Capability(
    name="get_current_time",
    description="Get the current date and time in ISO 8601 format (UTC)",
    input_schema=NoInput,
    execute=_current_time,
    examples=[
        CapabilityExample(input={}, output="2026-02-05T10:30:00+00:00", description="Getting current timestamp"),
    ],
)

string_manipulation = Capability(
    name="string_manipulation",
    description="Perform string operations (uppercase, lowercase, reverse, length)",
    input_schema=StringManipulationInput,
    execute=_manipulate_string,
    examples=[
        CapabilityExample(input={"text": "Hello World", "operation": "uppercase"}, output="HELLO WORLD"),
        CapabilityExample(input={"text": "Hello World", "operation": "length"}, output=11),
    ],
)

http_request = Capability(
    name="http_request",
    description="Send an HTTP request and return the status code and (truncated) body",
    input_schema=ApiRequestInput,
    execute=_http_request,
    examples=[
        CapabilityExample(
            input={"url": "https://example.com", "method": "GET"},
            output={"status_code": 200, "body": "<!doctype html>..."},
        ),
    ],
)

BUILTIN_CAPABILITIES: list[Capability] = [
    calculator,
    search,
    get_current_time,
    string_manipulation,
    http_request,
]


def register_builtins(registry: CapabilityRegistry, category: str | None = "builtin") -> None:
    for capability in BUILTIN_CAPABILITIES:
        registry.register(capability, category)


def memory_capabilities(store: MemoryStore) -> list[Capability]:
    """remember / recall capabilities bound to one memory store."""

    def _remember(input: RememberInput) -> str:
        store.save(input.key, input.value)
        return f"Stored {input.key}."

    def _recall(input: RecallInput) -> Any:
        return store.get(input.key)

    return [
        Capability(
            name="remember",
            description="Store a value in memory under a key",
            input_schema=RememberInput,
            execute=_remember,
            examples=[CapabilityExample(input={"key": "user:name", "value": "Ada"}, output="Stored user:name.")],
        ),
        Capability(
            name="recall",
            description="Fetch the value stored under a key (null when absent)",
            input_schema=RecallInput,
            execute=_recall,
            examples=[CapabilityExample(input={"key": "user:name"}, output="Ada")],
        ),
    ]
