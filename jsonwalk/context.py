import logging
from collections.abc import Callable
from os import PathLike
from typing import IO, Any

from .cache import PathCache, cache_key
from .configuration import Configuration, Option
from .errors import JsonWalkArgumentError
from .filters import Predicate
from .listeners import EvaluationListener, LimitingEvaluationListener
from .path import CompiledPath, MutationKind, compile_path

logger = logging.getLogger(__name__)


class ParseContext:
    """Build `DocumentContext`s that share one configuration and path cache."""

    def __init__(self, configuration: Configuration, cache: PathCache):
        if configuration is None:
            raise JsonWalkArgumentError("Configuration can not be null.")
        if cache is None:
            raise JsonWalkArgumentError("Path cache can not be null.")
        self.configuration = configuration
        self.cache = cache

    def parse(self, json: Any) -> "DocumentContext":
        """
        Wrap `json` in a `DocumentContext`.

        `str` and `bytes` are parsed as JSON text, objects with a `read` method as
        streams; anything else is used as the document itself.
        """
        if json is None:
            raise JsonWalkArgumentError("Json object can not be null.")
        if isinstance(json, str | bytes):
            if not json.strip():
                raise JsonWalkArgumentError("Json string can not be null or empty.")
            document = self.configuration.json_provider.parse(json)
        elif hasattr(json, "read"):
            return self.parse_stream(json)
        else:
            document = json
        return DocumentContext(document, self.configuration, self.cache)

    def parse_stream(self, stream: IO[Any], charset: str = "utf-8") -> "DocumentContext":
        if stream is None:
            raise JsonWalkArgumentError("Json input stream can not be null.")
        if not charset:
            raise JsonWalkArgumentError("Charset can not be null or empty.")
        try:
            document = self.configuration.json_provider.parse_stream(stream, charset)
        finally:
            stream.close()
        return DocumentContext(document, self.configuration, self.cache)

    def parse_file(self, path: str | PathLike, charset: str = "utf-8") -> "DocumentContext":
        if path is None:
            raise JsonWalkArgumentError("Json file can not be null.")
        with open(path, "rb") as stream:
            return self.parse_stream(stream, charset)


class DocumentContext:
    """
    A document bound to a configuration and a compiled-path cache.

    Reads and mutations accept either path text, compiled through the cache at
    most once per distinct (path, predicates) pair, or a `CompiledPath`.
    Mutations change the document in place and return the context so calls can
    be chained; the concrete paths touched by the latest mutation are available
    from `last_modified_paths`.
    """

    def __init__(self, document: Any, configuration: Configuration, cache: PathCache):
        if configuration is None:
            raise JsonWalkArgumentError("Configuration can not be null.")
        if cache is None:
            raise JsonWalkArgumentError("Path cache can not be null.")
        self._document = document
        self._configuration = configuration
        self._cache = cache
        self._last_modified_paths: list[str] = []

    @property
    def configuration(self) -> Configuration:
        return self._configuration

    @property
    def cache(self) -> PathCache:
        return self._cache

    @property
    def json(self) -> Any:
        return self._document

    def json_string(self) -> str:
        return self._configuration.json_provider.to_json(self._document)

    @property
    def last_modified_paths(self) -> list[str]:
        return list(self._last_modified_paths)

    def compile(self, path: str, *predicates: Predicate) -> CompiledPath:
        """
        Return the compiled form of `path`, from the cache when possible.

        Raises:
            JsonWalkArgumentError: If `path` is not a string or is blank.
            JsonWalkParseError: If the expression is malformed. Nothing is cached.
        """
        if not isinstance(path, str) or not path.strip():
            raise JsonWalkArgumentError("Path can not be null or empty.")
        key = cache_key(path, predicates)
        compiled = self._cache.get(key)
        if compiled is None:
            logger.debug("Compiling path %r", key[0])
            compiled = compile_path(key[0], predicates)
            self._cache.put(key, compiled)
        return compiled

    def _resolve(self, path: str | CompiledPath, predicates: tuple[Predicate, ...]) -> CompiledPath:
        if isinstance(path, CompiledPath):
            if predicates:
                raise JsonWalkArgumentError(
                    "Predicates can not be supplied with a compiled path."
                )
            return path
        return self.compile(path, *predicates)

    def read(
        self,
        path: str | CompiledPath,
        *predicates: Predicate,
        type: Any = None,
    ) -> Any:
        """
        Read the value(s) at `path`.

        Args:
            path: Path text or a `CompiledPath`.
            predicates: Predicates filling the `[?]` placeholders of `path`.
            type: Optional target type (`int`, `list[str]`, ...) the result is
                converted to through the configured mapping provider.

        Raises:
            JsonWalkArgumentError: If `path` is blank.
            JsonWalkParseError: If `path` is malformed.
            JsonWalkResolutionError: If the path cannot be resolved.
            JsonWalkConversionError: If the result cannot be converted to `type`.
        """
        compiled = self._resolve(path, predicates)
        result = compiled.read(self._document, self._configuration)
        if type is None:
            return result
        return self._configuration.mapping_provider.map(result, type, self._configuration)

    def limit(self, max_results: int) -> "DocumentContext":
        return self.with_listeners(LimitingEvaluationListener(max_results))

    def with_listeners(self, *listeners: EvaluationListener) -> "DocumentContext":
        return DocumentContext(
            self._document,
            self._configuration.add_evaluation_listeners(*listeners),
            self._cache,
        )

    def _mutate(
        self,
        path: str | CompiledPath,
        predicates: tuple[Predicate, ...],
        kind: MutationKind,
        *operands: Any,
    ) -> list[str]:
        self._last_modified_paths = []
        compiled = self._resolve(path, predicates)
        modified = compiled.mutate(
            self._document,
            self._configuration.add_options(Option.AS_PATH_LIST),
            kind,
            *operands,
        )
        self._last_modified_paths = modified
        return modified

    def set(self, path: str | CompiledPath, value: Any, *predicates: Predicate) -> "DocumentContext":
        modified = self._mutate(path, predicates, MutationKind.SET, value)
        if logger.isEnabledFor(logging.DEBUG):
            for modified_path in modified:
                logger.debug("Set path %s new value %r", modified_path, value)
        return self

    def map(
        self,
        path: str | CompiledPath,
        map_function: Callable[[Any], Any],
        *predicates: Predicate,
    ) -> "DocumentContext":
        modified = self._mutate(path, predicates, MutationKind.MAP, map_function)
        if logger.isEnabledFor(logging.DEBUG):
            for modified_path in modified:
                logger.debug("Map path %s", modified_path)
        return self

    def delete(self, path: str | CompiledPath, *predicates: Predicate) -> "DocumentContext":
        modified = self._mutate(path, predicates, MutationKind.DELETE)
        if logger.isEnabledFor(logging.DEBUG):
            for modified_path in modified:
                logger.debug("Delete path %s", modified_path)
        return self

    def add(self, path: str | CompiledPath, value: Any, *predicates: Predicate) -> "DocumentContext":
        modified = self._mutate(path, predicates, MutationKind.ADD, value)
        if logger.isEnabledFor(logging.DEBUG):
            for modified_path in modified:
                logger.debug("Add path %s new value %r", modified_path, value)
        return self

    def put(
        self,
        path: str | CompiledPath,
        key: str,
        value: Any,
        *predicates: Predicate,
    ) -> "DocumentContext":
        modified = self._mutate(path, predicates, MutationKind.PUT, key, value)
        if logger.isEnabledFor(logging.DEBUG):
            for modified_path in modified:
                logger.debug("Put path %s key %s value %r", modified_path, key, value)
        return self

    def rename_key(
        self,
        path: str | CompiledPath,
        old_key: str,
        new_key: str,
        *predicates: Predicate,
    ) -> "DocumentContext":
        modified = self._mutate(path, predicates, MutationKind.RENAME_KEY, old_key, new_key)
        if logger.isEnabledFor(logging.DEBUG):
            for modified_path in modified:
                logger.debug("Rename path %s new key %s", modified_path, new_key)
        return self
