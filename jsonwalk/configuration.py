import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import IO, Any

from .errors import JsonWalkArgumentError
from .listeners import EvaluationListener
from .mapping import MappingProvider


class Option(Enum):
    AS_PATH_LIST = "as_path_list"
    SUPPRESS_EXCEPTIONS = "suppress_exceptions"
    DEFAULT_PATH_LEAF_TO_NULL = "default_path_leaf_to_null"
    ALWAYS_RETURN_LIST = "always_return_list"
    REQUIRE_PROPERTIES = "require_properties"


class JsonProvider:
    def parse(self, text: str | bytes) -> Any:
        try:
            return json.loads(text)
        except ValueError as ex:
            raise JsonWalkArgumentError(f"Invalid JSON document: {ex}") from ex

    def parse_stream(self, stream: IO[Any], charset: str = "utf-8") -> Any:
        content = stream.read()
        if isinstance(content, bytes):
            try:
                content = content.decode(charset)
            except (LookupError, UnicodeDecodeError) as ex:
                raise JsonWalkArgumentError(
                    f"Unable to decode JSON document as {charset}: {ex}"
                ) from ex
        return self.parse(content)

    def to_json(self, document: Any) -> str:
        return json.dumps(document, separators=(",", ":"))


@dataclass(frozen=True, kw_only=True)
class Configuration:
    json_provider: JsonProvider = field(default_factory=JsonProvider)
    mapping_provider: MappingProvider = field(default_factory=MappingProvider)
    options: frozenset[Option] = frozenset()
    evaluation_listeners: tuple[EvaluationListener, ...] = ()

    @classmethod
    def default(cls) -> "Configuration":
        return cls()

    def contains_option(self, option: Option) -> bool:
        return option in self.options

    def add_options(self, *options: Option) -> "Configuration":
        return replace(self, options=self.options | frozenset(options))

    def set_options(self, *options: Option) -> "Configuration":
        return replace(self, options=frozenset(options))

    def add_evaluation_listeners(
        self, *listeners: EvaluationListener
    ) -> "Configuration":
        return replace(
            self, evaluation_listeners=self.evaluation_listeners + tuple(listeners)
        )

    def set_evaluation_listeners(
        self, *listeners: EvaluationListener
    ) -> "Configuration":
        return replace(self, evaluation_listeners=tuple(listeners))
