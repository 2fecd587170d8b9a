import statistics
from types import MappingProxyType
from typing import Any


def _numbers(value: Any) -> list[int | float]:
    if not isinstance(value, list | tuple):
        value = [value]
    numbers = [item for item in value if isinstance(item, int | float) and not isinstance(item, bool)]
    if not numbers:
        raise ValueError("Aggregation function attempted to calculate value using empty array.")
    return numbers


def _length(value: Any) -> int:
    if isinstance(value, list | tuple | dict | str):
        return len(value)
    raise TypeError(f"length() is not defined for {type(value).__name__}.")


def _keys(value: Any) -> list[str]:
    if isinstance(value, dict):
        return list(value.keys())
    raise TypeError(f"keys() is not defined for {type(value).__name__}.")


def _first(value: Any) -> Any:
    if isinstance(value, list | tuple):
        if not value:
            raise ValueError("first() attempted on an empty array.")
        return value[0]
    raise TypeError(f"first() is not defined for {type(value).__name__}.")


def _last(value: Any) -> Any:
    if isinstance(value, list | tuple):
        if not value:
            raise ValueError("last() attempted on an empty array.")
        return value[-1]
    raise TypeError(f"last() is not defined for {type(value).__name__}.")


def _distinct(value: Any) -> list[Any]:
    if not isinstance(value, list | tuple):
        raise TypeError(f"distinct() is not defined for {type(value).__name__}.")
    seen: list[Any] = []
    for item in value:
        if item not in seen:
            seen.append(item)
    return seen


DEFAULT_PATH_FUNCTION_REGISTRY = MappingProxyType(
    {
        "length": _length,
        "size": _length,
        "min": lambda x: min(_numbers(x)),
        "max": lambda x: max(_numbers(x)),
        "sum": lambda x: sum(_numbers(x)),
        "avg": lambda x: statistics.fmean(_numbers(x)),
        "stddev": lambda x: statistics.pstdev(_numbers(x)),
        "keys": _keys,
        "first": _first,
        "last": _last,
        "distinct": _distinct,
        "sorted": lambda x: sorted(x) if isinstance(x, list | tuple) else x,
    }
)
