import io

import pytest

from jsonwalk import Configuration, Option, ParseContext, where
from jsonwalk import compile as compile_jsonwalk
from jsonwalk.errors import (
    JsonWalkArgumentError,
    JsonWalkConversionError,
    JsonWalkResolutionError,
)


def test_read__definite_property_path(parse_context, store):
    path = "$.store.book[0].author"
    expected = "Nigel Rees"

    assert parse_context.parse(store).read(path) == expected


def test_read__relative_path_is_rooted(parse_context, store):
    assert parse_context.parse(store).read("store.bicycle.color") == "red"


def test_read__bracket_notation_property(parse_context, store):
    assert parse_context.parse(store).read("$['store']['bicycle']['color']") == "red"


def test_read__wildcard_over_list(parse_context, store):
    path = "$.store.book[*].author"
    expected = ["Nigel Rees", "Evelyn Waugh", "Herman Melville", "J. R. R. Tolkien"]

    assert parse_context.parse(store).read(path) == expected


def test_read__wildcard_over_object(parse_context, store):
    path = "$.store.*"
    expected = [store["store"]["book"], store["store"]["bicycle"]]

    assert parse_context.parse(store).read(path) == expected


def test_read__deep_scan_property(parse_context, store):
    path = "$..author"
    expected = ["Nigel Rees", "Evelyn Waugh", "Herman Melville", "J. R. R. Tolkien"]

    assert parse_context.parse(store).read(path) == expected


def test_read__deep_scan_from_nested_node(parse_context, store):
    path = "$.store..price"
    expected = [8.95, 12.99, 8.99, 22.99, 19.95]

    assert parse_context.parse(store).read(path) == expected


def test_read__deep_scan_then_index(parse_context, store):
    path = "$..book[2].title"
    expected = ["Moby Dick"]

    assert parse_context.parse(store).read(path) == expected


def test_read__negative_slice(parse_context, store):
    path = "$..book[-1:].title"
    expected = ["The Lord of the Rings"]

    assert parse_context.parse(store).read(path) == expected


def test_read__leading_slice(parse_context, store):
    path = "$.store.book[:2].title"
    expected = ["Sayings of the Century", "Sword of Honour"]

    assert parse_context.parse(store).read(path) == expected


def test_read__multiple_indexes(parse_context, store):
    path = "$.store.book[0,3].title"
    expected = ["Sayings of the Century", "The Lord of the Rings"]

    assert parse_context.parse(store).read(path) == expected


def test_read__negative_index_is_definite(parse_context, store):
    assert parse_context.parse(store).read("$.store.book[-1].title") == "The Lord of the Rings"


def test_read__multiple_properties(parse_context, store):
    path = "$.store.bicycle['color','price']"
    expected = ["red", 19.95]

    assert parse_context.parse(store).read(path) == expected


def test_read__inline_filter_existence(parse_context, store):
    path = "$..book[?(@.isbn)].title"
    expected = ["Moby Dick", "The Lord of the Rings"]

    assert parse_context.parse(store).read(path) == expected


def test_read__inline_filter_comparison(parse_context, store):
    path = "$.store.book[?(@.price < 10)].title"
    expected = ["Sayings of the Century", "Moby Dick"]

    assert parse_context.parse(store).read(path) == expected


def test_read__inline_filter_against_root_value(parse_context, store):
    path = "$..book[?(@.price <= $['expensive'])].title"
    expected = ["Sayings of the Century", "Moby Dick"]

    assert parse_context.parse(store).read(path) == expected


def test_read__inline_filter_regex(parse_context, store):
    path = "$..book[?(@.author =~ /.*REES/i)].title"
    expected = ["Sayings of the Century"]

    assert parse_context.parse(store).read(path) == expected


def test_read__inline_filter_in_list(parse_context, store):
    path = "$.store.book[?(@.category in ['reference'])].author"
    expected = ["Nigel Rees"]

    assert parse_context.parse(store).read(path) == expected


def test_read__inline_filter_and(parse_context, store):
    path = "$.store.book[?(@.category == 'fiction' && @.price > 10)].title"
    expected = ["Sword of Honour", "The Lord of the Rings"]

    assert parse_context.parse(store).read(path) == expected


def test_read__inline_filter_not_and_or(parse_context, store):
    path = "$.store.book[?(!(@.category == 'fiction') || @.price > 20)].title"
    expected = ["Sayings of the Century", "The Lord of the Rings"]

    assert parse_context.parse(store).read(path) == expected


def test_read__placeholder_filter_with_criteria(parse_context, store):
    path = "$.store.book[?].title"
    expected = ["Sayings of the Century"]

    result = parse_context.parse(store).read(path, where("category").eq("reference"))

    assert result == expected


def test_read__placeholder_filter_with_callable(parse_context, store):
    path = "$.store.book[?].title"
    expected = ["The Lord of the Rings"]

    result = parse_context.parse(store).read(path, lambda ctx: ctx.item["price"] > 20)

    assert result == expected


def test_read__two_placeholders_take_predicates_in_order(parse_context):
    data = {"a": [[{"x": 1}, {"x": 2}], [{"x": 3}]]}
    path = "$.a[?][?].x"

    result = parse_context.parse(data).read(
        path,
        lambda ctx: len(ctx.item) == 2,
        where("x").gt(1),
    )

    assert result == [2]


def test_read__indefinite_path_without_matches_returns_empty_list(parse_context, store):
    assert parse_context.parse(store).read("$.store.book[?(@.price > 100)].title") == []


def test_read__missing_definite_leaf_raises(parse_context, store):
    with pytest.raises(JsonWalkResolutionError):
        parse_context.parse(store).read("$.store.missing")


def test_read__missing_definite_intermediate_raises(parse_context, store):
    with pytest.raises(JsonWalkResolutionError):
        parse_context.parse(store).read("$.store.missing.value")


def test_read__property_on_list_in_definite_path_raises(parse_context, store):
    with pytest.raises(JsonWalkResolutionError):
        parse_context.parse(store).read("$.store.book.title")


def test_read__suppress_exceptions_returns_none(path_cache, store):
    configuration = Configuration.default().add_options(Option.SUPPRESS_EXCEPTIONS)
    context = ParseContext(configuration, path_cache).parse(store)

    assert context.read("$.store.missing.value") is None


def test_read__default_path_leaf_to_null(path_cache, store):
    configuration = Configuration.default().add_options(Option.DEFAULT_PATH_LEAF_TO_NULL)
    context = ParseContext(configuration, path_cache).parse(store)
    expected = [None, None, "0-553-21311-3", "0-395-19395-8"]

    assert context.read("$.store.book[*].isbn") == expected
    assert context.read("$.store.bicycle.gears") is None


def test_read__require_properties_raises_for_missing_property(path_cache, store):
    configuration = Configuration.default().add_options(Option.REQUIRE_PROPERTIES)
    context = ParseContext(configuration, path_cache).parse(store)

    with pytest.raises(JsonWalkResolutionError):
        context.read("$.store.book[*].isbn")


def test_read__always_return_list(path_cache, store):
    configuration = Configuration.default().add_options(Option.ALWAYS_RETURN_LIST)
    context = ParseContext(configuration, path_cache).parse(store)

    assert context.read("$.expensive") == [10]


def test_read__as_path_list(path_cache, store):
    configuration = Configuration.default().add_options(Option.AS_PATH_LIST)
    context = ParseContext(configuration, path_cache).parse(store)
    expected = [
        "$['store']['book'][0]['author']",
        "$['store']['book'][1]['author']",
        "$['store']['book'][2]['author']",
        "$['store']['book'][3]['author']",
    ]

    assert context.read("$..author") == expected


def test_read__converts_to_requested_type(parse_context, store):
    context = parse_context.parse(store)

    assert context.read("$.expensive", type=str) == "10"
    assert context.read("$.store.book[*].price", type=list[str]) == [
        "8.95",
        "12.99",
        "8.99",
        "22.99",
    ]


def test_read__conversion_failure_propagates(parse_context, store):
    with pytest.raises(JsonWalkConversionError):
        parse_context.parse(store).read("$.store.book[0].author", type=int)


def test_read__precompiled_path_bypasses_cache(parse_context, path_cache, store):
    compiled = compile_jsonwalk("$.store.bicycle.color")

    assert parse_context.parse(store).read(compiled) == "red"
    assert len(path_cache) == 0


def test_read__precompiled_path_rejects_predicates(parse_context, store):
    compiled = compile_jsonwalk("$.store.book[?]", where("price").lt(10))

    with pytest.raises(JsonWalkArgumentError):
        parse_context.parse(store).read(compiled, where("price").lt(10))


def test_read__blank_path_is_rejected(parse_context, store):
    with pytest.raises(JsonWalkArgumentError):
        parse_context.parse(store).read("   ")


def test_parse__json_text(parse_context):
    assert parse_context.parse('{"a": [1, 2]}').read("$.a[1]") == 2


def test_parse__binary_stream_with_charset(parse_context):
    stream = io.BytesIO('{"name": "café"}'.encode("latin-1"))

    assert parse_context.parse_stream(stream, "latin-1").read("$.name") == "café"
    assert stream.closed


def test_parse__object_with_read_is_treated_as_stream(parse_context):
    assert parse_context.parse(io.StringIO('{"a": 1}')).read("$.a") == 1


def test_parse__file(parse_context, tmp_path):
    json_file = tmp_path / "doc.json"
    json_file.write_text('{"a": {"b": true}}', encoding="utf-8")

    assert parse_context.parse_file(json_file).read("$.a.b") is True


def test_parse__rejects_none_and_blank_text(parse_context):
    with pytest.raises(JsonWalkArgumentError):
        parse_context.parse(None)
    with pytest.raises(JsonWalkArgumentError):
        parse_context.parse("  ")


def test_parse__rejects_invalid_json_text(parse_context):
    with pytest.raises(JsonWalkArgumentError):
        parse_context.parse("{not json")


def test_json_string__renders_document(parse_context):
    context = parse_context.parse({"a": [1, {"b": None}]})

    assert context.json_string() == '{"a":[1,{"b":null}]}'


def test_read__root_path_returns_document(parse_context, store):
    context = parse_context.parse(store)

    assert context.read("$") is context.json
