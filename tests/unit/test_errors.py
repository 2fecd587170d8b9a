import pytest

from jsonwalk import where
from jsonwalk.errors import (
    JsonWalkArgumentError,
    JsonWalkConversionError,
    JsonWalkError,
    JsonWalkMutationError,
    JsonWalkParseError,
    JsonWalkResolutionError,
)
from jsonwalk.path import compile_path


@pytest.mark.parametrize(
    "path",
    [
        "$.a[",
        "$.a.",
        "$..",
        "$.a[]",
        "$.a[x]",
        "$.a[1:2:3]",
        "$.a['b]",
        "$.a[?(@.b ==)]",
        "$.a[?(@.b == 1 &&)]",
        "$.a[?@.b]",
        "$.a.length().b",
        "$.a.unknown()",
        "$..length()",
        "$ a",
    ],
)
def test_compile_path_raises_parse_error_for_malformed_path(path):
    with pytest.raises(JsonWalkParseError):
        compile_path(path)


def test_compile_path_raises_parse_error_when_predicates_are_missing():
    with pytest.raises(JsonWalkParseError):
        compile_path("$.a[?]")


def test_compile_path_raises_parse_error_for_unused_predicates():
    with pytest.raises(JsonWalkParseError):
        compile_path("$.a", [where("b").eq(1)])


@pytest.mark.parametrize("path", [None, "", "   "])
def test_compile_path_rejects_blank_path(path):
    with pytest.raises(JsonWalkArgumentError):
        compile_path(path)


def test_read_rejects_none_path(parse_context):
    with pytest.raises(ValueError):
        parse_context.parse({"a": 1}).read(None)


def test_parse_error_carries_path_and_token():
    with pytest.raises(JsonWalkParseError) as exc_info:
        compile_path("$.a[x]")

    assert exc_info.value.path == "$.a[x]"
    assert exc_info.value.token == "[x]"


def test_resolution_error_carries_path_and_token(parse_context):
    with pytest.raises(JsonWalkResolutionError) as exc_info:
        parse_context.parse({"a": {}}).read("$.a.b.c")

    assert exc_info.value.path == "$.a.b.c"
    assert exc_info.value.token == "['b']"


def test_error_hierarchy():
    assert issubclass(JsonWalkArgumentError, JsonWalkError)
    assert issubclass(JsonWalkArgumentError, ValueError)
    assert issubclass(JsonWalkParseError, JsonWalkError)
    assert issubclass(JsonWalkResolutionError, JsonWalkError)
    assert issubclass(JsonWalkMutationError, TypeError)
    assert issubclass(JsonWalkConversionError, TypeError)


@pytest.mark.parametrize("path", [123, ["$.a"], b"$.a"])
def test_non_string_path_raises_argument_error(parse_context, path):
    with pytest.raises(JsonWalkArgumentError):
        parse_context.parse({"a": 1}).read(path)
    with pytest.raises(JsonWalkArgumentError):
        compile_path(path)
