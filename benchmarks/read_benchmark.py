from benchbro import Case

import jsonwalk

read_case = Case(
    name="read",
    case_type="cpu",
    metric_type="time",
    tags=["jsonwalk", "read"],
    warmup_iterations=5,
    min_iterations=50,
    repeats=10,
)

_ITEMS = {
    "a": {
        "b": [
            {"id": 1, "c": 1},
            {"id": 2, "c": 2},
            {"id": 3, "c": 3},
            {"id": 4, "c": 4},
            {"id": 5, "c": 5},
            {"id": 6, "c": 6},
        ]
    }
}
_PRECOMPILED = jsonwalk.compile("$.a.b[?(@.id > 2 && @.id <= 5)].c")


@read_case.benchmark()
def simple_path():
    data = {"a": {"b": {"c": 1}}}
    path = "$.a.b.c"

    jsonwalk.read(data, path)


@read_case.benchmark()
def cached_filter_path():
    jsonwalk.read(_ITEMS, "$.a.b[?(@.id > 2 && @.id <= 5)].c")


@read_case.benchmark()
def precompiled_filter_path():
    jsonwalk.parse(_ITEMS).read(_PRECOMPILED)


@read_case.benchmark()
def criteria_filter_path():
    jsonwalk.read(_ITEMS, "$.a.b[?].c", jsonwalk.where("id").gt(2).and_("id").lte(5))


@read_case.benchmark()
def deep_scan_with_function():
    data = {"a": {"b": {"c": {"d": {"e": {"f": {"g": {"h": {"i": {"j": [1, 2, 3]}}}}}}}}}}

    jsonwalk.read(data, "$..j.sum()")


@read_case.benchmark()
def limited_wildcard():
    jsonwalk.parse(_ITEMS).limit(2).read("$.a.b[*].c")
