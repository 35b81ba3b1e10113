# validators.py
# Reusable constrained types and input schemas for capability authors.
#
# Every capability declares a pydantic model as its input_schema; these are
# the building blocks most capabilities need.

import json
import re
from datetime import datetime
from typing import Annotated, Any, Callable, Literal, TypeVar

from pydantic import AfterValidator, BaseModel, Field, HttpUrl, ValidationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_FILE_PATH_RE = re.compile(r"^[a-zA-Z0-9_\-./\\]+$")


# ---------------------------------------------------------------------------
# Check functions
# ---------------------------------------------------------------------------


def _check_iso_datetime(value: str) -> str:
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError("Invalid ISO 8601 date string") from exc
    return value


def _check_json(value: str) -> str:
    try:
        json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON string") from exc
    return value


def _check_file_path(value: str) -> str:
    if not _FILE_PATH_RE.match(value):
        raise ValueError("Invalid file path")
    return value


# ---------------------------------------------------------------------------
# Constrained types
# ---------------------------------------------------------------------------

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveInt = Annotated[int, Field(gt=0)]
NonNegativeInt = Annotated[int, Field(ge=0)]
Probability = Annotated[float, Field(ge=0.0, le=1.0)]
Url = HttpUrl
IsoDateString = Annotated[str, AfterValidator(_check_iso_datetime)]
JsonString = Annotated[str, AfterValidator(_check_json)]
FilePath = Annotated[str, AfterValidator(_check_file_path)]


def limited_string(max_length: int) -> Any:
    """String of at most max_length characters."""
    return Annotated[str, Field(max_length=max_length)]


def bounded_list(item_type: Any, min_length: int, max_length: int) -> Any:
    """List of item_type with a size between min_length and max_length inclusive."""
    return Annotated[list[item_type], Field(min_length=min_length, max_length=max_length)]


def string_enum(*values: str) -> Any:
    """One of the given string literals."""
    if not values:
        raise ValueError("string_enum() needs at least one value.")
    return Literal[values]


# ---------------------------------------------------------------------------
# Common input schemas
# ---------------------------------------------------------------------------


class TextInput(BaseModel):
    text: NonEmptyStr


class QueryInput(BaseModel):
    query: NonEmptyStr
    limit: PositiveInt | None = None
    offset: NonNegativeInt | None = None


class FileInput(BaseModel):
    path: FilePath
    encoding: Literal["utf-8", "ascii", "base64"] | None = None


class ApiRequestInput(BaseModel):
    url: Url
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
    headers: dict[str, str] | None = None
    body: Any = None


class SearchInput(BaseModel):
    query: NonEmptyStr
    filters: dict[str, Any] | None = None
    limit: PositiveInt = 10


class IdInput(BaseModel):
    id: NonEmptyStr


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def validate_input(schema: type[M]) -> Callable[[Any], M]:
    """
    Return a function that validates raw input against schema.

    The returned function raises pydantic.ValidationError on bad input, which
    the registry converts into CapabilityValidationError.
    """

    def _validate(raw: Any) -> M:
        return schema.model_validate(raw)

    return _validate


def is_valid(schema: type[BaseModel], raw: Any) -> bool:
    try:
        schema.model_validate(raw)
    except ValidationError:
        return False
    return True
