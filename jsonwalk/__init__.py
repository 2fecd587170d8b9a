from typing import Any

from .cache import resolve_cache
from .configuration import Configuration, JsonProvider, Option
from .context import DocumentContext, ParseContext
from .filters import Criteria, PredicateContext, where
from .listeners import (
    EvaluationContinuation,
    EvaluationListener,
    FoundResult,
    LimitingEvaluationListener,
)
from .mapping import MappingProvider
from .path import CompiledPath, compile_path

cache_name, path_cache = resolve_cache()


def using(configuration: Configuration) -> ParseContext:
    return ParseContext(configuration, path_cache)


def parse(json: Any, configuration: Configuration | None = None) -> DocumentContext:
    return using(configuration or Configuration.default()).parse(json)


def compile(path: str, *predicates: Any) -> CompiledPath:
    return compile_path(path, predicates)


def read(json: Any, path: str, *predicates: Any) -> Any:
    return parse(json).read(path, *predicates)


__all__ = [
    "CompiledPath",
    "Configuration",
    "Criteria",
    "DocumentContext",
    "EvaluationContinuation",
    "EvaluationListener",
    "FoundResult",
    "JsonProvider",
    "LimitingEvaluationListener",
    "MappingProvider",
    "Option",
    "ParseContext",
    "PredicateContext",
    "cache_name",
    "compile",
    "parse",
    "path_cache",
    "read",
    "using",
    "where",
]
