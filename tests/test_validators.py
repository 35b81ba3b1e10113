import pytest
from pydantic import BaseModel, ValidationError

from taskloop.validators import (
    ApiRequestInput,
    FileInput,
    FilePath,
    IdInput,
    IsoDateString,
    JsonString,
    Probability,
    QueryInput,
    SearchInput,
    TextInput,
    bounded_list,
    is_valid,
    limited_string,
    string_enum,
    validate_input,
)


# ---------------------------------------------------------------------------
# Constrained types
# ---------------------------------------------------------------------------

class _Typed(BaseModel):
    when: IsoDateString | None = None
    payload: JsonString | None = None
    path: FilePath | None = None
    ratio: Probability | None = None


@pytest.mark.parametrize("value", ["2026-02-05T10:30:00Z", "2026-02-05T10:30:00+02:00", "2026-02-05"])
def test_iso_date_accepts(value):
    assert _Typed(when=value).when == value


def test_iso_date_rejects():
    with pytest.raises(ValidationError, match="Invalid ISO 8601 date string"):
        _Typed(when="next tuesday")


def test_json_string():
    assert _Typed(payload='{"a": [1, 2]}').payload == '{"a": [1, 2]}'
    with pytest.raises(ValidationError, match="Invalid JSON string"):
        _Typed(payload="{oops")


def test_file_path():
    assert _Typed(path="data/notes_1.txt").path == "data/notes_1.txt"
    with pytest.raises(ValidationError, match="Invalid file path"):
        _Typed(path="rm -rf; echo")


def test_probability_bounds():
    assert _Typed(ratio=0.0).ratio == 0.0
    assert _Typed(ratio=1.0).ratio == 1.0
    with pytest.raises(ValidationError):
        _Typed(ratio=1.5)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def test_limited_string():
    class Model(BaseModel):
        name: limited_string(5)

    assert Model(name="abcde").name == "abcde"
    with pytest.raises(ValidationError):
        Model(name="abcdef")


def test_bounded_list():
    class Model(BaseModel):
        tags: bounded_list(str, 1, 2)

    assert Model(tags=["a"]).tags == ["a"]
    with pytest.raises(ValidationError):
        Model(tags=[])
    with pytest.raises(ValidationError):
        Model(tags=["a", "b", "c"])


def test_string_enum():
    class Model(BaseModel):
        colour: string_enum("red", "green")

    assert Model(colour="green").colour == "green"
    with pytest.raises(ValidationError):
        Model(colour="blue")


def test_string_enum_needs_values():
    with pytest.raises(ValueError):
        string_enum()


# ---------------------------------------------------------------------------
# Common schemas
# ---------------------------------------------------------------------------

def test_text_and_id_inputs_reject_empty():
    assert not is_valid(TextInput, {"text": ""})
    assert not is_valid(IdInput, {"id": ""})
    assert is_valid(IdInput, {"id": "abc"})


def test_query_input():
    assert is_valid(QueryInput, {"query": "q", "limit": 5, "offset": 0})
    assert not is_valid(QueryInput, {"query": "q", "limit": 0})
    assert not is_valid(QueryInput, {"query": "q", "offset": -1})


def test_search_input_defaults():
    assert SearchInput(query="agents").limit == 10


def test_file_input_encoding():
    assert is_valid(FileInput, {"path": "a.txt", "encoding": "base64"})
    assert not is_valid(FileInput, {"path": "a.txt", "encoding": "latin-1"})


def test_api_request_input():
    request = ApiRequestInput(url="https://example.com/x", method="POST", body={"a": 1})
    assert str(request.url) == "https://example.com/x"
    assert not is_valid(ApiRequestInput, {"url": "ftp-ish", "method": "GET"})
    assert not is_valid(ApiRequestInput, {"url": "https://example.com", "method": "HEAD"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_validate_input_returns_model():
    validate = validate_input(TextInput)

    assert validate({"text": "hi"}) == TextInput(text="hi")
    with pytest.raises(ValidationError):
        validate({})
