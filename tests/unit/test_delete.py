import copy
import logging

import pytest

from jsonwalk.errors import JsonWalkMutationError


def test_delete__removes_list_element(parse_context, store):
    context = parse_context.parse(store).delete("$.store.book[0]")

    assert [book["title"] for book in store["store"]["book"]] == [
        "Sword of Honour",
        "Moby Dick",
        "The Lord of the Rings",
    ]
    assert context.last_modified_paths == ["$['store']['book'][0]"]


def test_delete__removes_key_from_every_match(parse_context, store):
    context = parse_context.parse(store).delete("$.store.book[*].isbn")

    assert all("isbn" not in book for book in store["store"]["book"])
    assert context.last_modified_paths == [
        "$['store']['book'][2]['isbn']",
        "$['store']['book'][3]['isbn']",
    ]


def test_delete__filter_matches_keep_indexes_valid(parse_context, store):
    context = parse_context.parse(store).delete("$.store.book[?(@.category == 'fiction')]")

    assert [book["title"] for book in store["store"]["book"]] == ["Sayings of the Century"]
    assert context.last_modified_paths == [
        "$['store']['book'][1]",
        "$['store']['book'][2]",
        "$['store']['book'][3]",
    ]


def test_delete__slice(parse_context, store):
    parse_context.parse(store).delete("$.store.book[1:3]")

    assert [book["title"] for book in store["store"]["book"]] == [
        "Sayings of the Century",
        "The Lord of the Rings",
    ]


def test_delete__negative_index(parse_context):
    data = {"a": [1, 2, 3]}

    parse_context.parse(data).delete("$.a[-1]")

    assert data == {"a": [1, 2]}


def test_delete__deep_scan(parse_context, store):
    context = parse_context.parse(store).delete("$..price")

    assert len(context.last_modified_paths) == 5
    assert "price" not in store["store"]["bicycle"]


def test_delete__missing_path_is_a_no_op(parse_context, store):
    before = copy.deepcopy(store)

    context = parse_context.parse(store).delete("$.missing")

    assert context.last_modified_paths == []
    assert store == before
    assert context.json_string() == parse_context.parse(before).json_string()


def test_delete__document_root_is_rejected(parse_context, store):
    with pytest.raises(JsonWalkMutationError):
        parse_context.parse(store).delete("$")


def test_delete__logs_each_modified_path(parse_context, caplog):
    caplog.set_level(logging.DEBUG, logger="jsonwalk.context")

    parse_context.parse({"a": 1, "b": 2}).delete("$['a','b']")

    assert "Delete path $['a']" in caplog.text
    assert "Delete path $['b']" in caplog.text
