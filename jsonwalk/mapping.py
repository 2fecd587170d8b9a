from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, get_args, get_origin

from .errors import JsonWalkConversionError

if TYPE_CHECKING:
    from .configuration import Configuration


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        raise TypeError("Booleans are not timestamps.")
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str):
        raise TypeError(f"Cannot read a datetime from {type(value).__name__}.")
    normalized = value.replace("Z", "+00:00")
    return datetime.fromisoformat(normalized)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "y", "on"}:
            return True
        if lowered in {"0", "false", "no", "n", "off", ""}:
            return False
        raise ValueError(f"'{value}' is not a boolean literal.")
    if isinstance(value, int | float):
        return bool(value)
    raise TypeError(f"Cannot read a boolean from {type(value).__name__}.")


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("Booleans are not integers.")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{value} has a fractional part.")
    return int(value)


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("Booleans are not numbers.")
    return float(value)


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("Booleans are not numbers.")
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _as_str(value: Any) -> str:
    if isinstance(value, dict | list):
        raise TypeError(f"Cannot read a string from {type(value).__name__}.")
    if value is None:
        raise TypeError("Cannot read a string from null.")
    return str(value)


def _as_sequence(value: Any) -> list:
    if isinstance(value, list | tuple | set):
        return list(value)
    raise TypeError(f"Expected an array, got {type(value).__name__}.")


def _as_dict(value: Any) -> dict:
    if isinstance(value, dict):
        return dict(value)
    raise TypeError(f"Expected an object, got {type(value).__name__}.")


DEFAULT_CONVERTER_REGISTRY = MappingProxyType(
    {
        object: lambda x: x,
        str: _as_str,
        int: _as_int,
        float: _as_float,
        bool: _as_bool,
        Decimal: _as_decimal,
        datetime: _as_datetime,
        list: _as_sequence,
        tuple: lambda x: tuple(_as_sequence(x)),
        set: lambda x: set(_as_sequence(x)),
        dict: _as_dict,
    }
)


class MappingProvider:
    def __init__(
        self,
        registry: "MappingProxyType[type, Callable[[Any], Any]] | None" = None,
    ):
        self._registry = registry if registry is not None else DEFAULT_CONVERTER_REGISTRY

    def map(self, value: Any, target: Any, configuration: "Configuration") -> Any:
        """
        Convert an extracted value into `target`.

        `target` is either a registered type (`int`, `Decimal`, `dict`, ...) or a
        parametrized container of registered types such as `list[int]`,
        `tuple[str, ...]`, `set[int]` or `dict[str, float]`, converted element
        by element.

        Raises:
            JsonWalkConversionError: If `target` is not supported or the value
                cannot be converted.
        """
        origin = get_origin(target)
        if origin is None:
            return self._convert(value, target)

        container = self._convert(value, origin)
        args = get_args(target)
        if origin is dict:
            key_type, value_type = args
            return {
                self.map(k, key_type, configuration): self.map(v, value_type, configuration)
                for k, v in container.items()
            }
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return tuple(self.map(item, args[0], configuration) for item in container)
            if len(args) != len(container):
                raise JsonWalkConversionError(
                    value, target, f"Expected {len(args)} items, got {len(container)}."
                )
            return tuple(
                self.map(item, item_type, configuration)
                for item, item_type in zip(container, args)
            )
        if origin in (list, set):
            (item_type,) = args
            return origin(self.map(item, item_type, configuration) for item in container)
        raise JsonWalkConversionError(value, target, "Unsupported target type.")

    def _convert(self, value: Any, target: Any) -> Any:
        try:
            converter = self._registry[target]
        except (KeyError, TypeError) as ex:
            raise JsonWalkConversionError(
                value, target, "Unsupported target type."
            ) from ex
        try:
            return converter(value)
        except (TypeError, ValueError, ArithmeticError, InvalidOperation) as ex:
            raise JsonWalkConversionError(value, target, str(ex)) from ex
