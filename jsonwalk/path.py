from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .configuration import Configuration, Option
from .errors import (
    JsonWalkArgumentError,
    JsonWalkError,
    JsonWalkMutationError,
    JsonWalkParseError,
    JsonWalkResolutionError,
)
from .filters import Predicate, PredicateContext, parse_filter_expression
from .functions import DEFAULT_PATH_FUNCTION_REGISTRY
from .listeners import EvaluationContinuation, FoundResult, notify_listeners


@dataclass(frozen=True)
class PathRef:
    value: Any
    path: str
    parent: Any = None
    key: str | int | None = None

    @property
    def is_root(self) -> bool:
        return self.key is None

    @property
    def is_present(self) -> bool:
        if self.is_root:
            return True
        if isinstance(self.parent, dict):
            return self.key in self.parent
        return True


class MutationKind(Enum):
    SET = "set"
    MAP = "map"
    DELETE = "delete"
    ADD = "add"
    PUT = "put"
    RENAME_KEY = "rename_key"


class _EvaluationContext:
    def __init__(
        self, path: str, root: Any, configuration: Configuration, *, lenient: bool
    ):
        self.path = path
        self.root = root
        self.configuration = configuration
        self.suppress = lenient or configuration.contains_option(
            Option.SUPPRESS_EXCEPTIONS
        )
        self.leaf_to_null = configuration.contains_option(
            Option.DEFAULT_PATH_LEAF_TO_NULL
        )
        self.require_properties = not lenient and configuration.contains_option(
            Option.REQUIRE_PROPERTIES
        )

    def fail(self, token: "PathToken", message: str):
        if not self.suppress:
            raise JsonWalkResolutionError(path=self.path, token=token.text, message=message)


class PathToken(Protocol):
    text: str
    definite: bool
    upstream_definite: bool

    def walk(
        self,
        ref: PathRef,
        remaining: list["PathToken"],
        ctx: _EvaluationContext,
    ) -> Iterator[PathRef]: ...


def _child_path(path: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    escaped = key.replace("\\", "\\\\").replace("'", "\\'")
    return f"{path}['{escaped}']"


def _iter_children(ref: PathRef) -> Iterator[PathRef]:
    current = ref.value
    if isinstance(current, dict):
        for key, child in list(current.items()):
            yield PathRef(child, _child_path(ref.path, key), current, key)
    elif isinstance(current, list):
        for idx, child in enumerate(list(current)):
            yield PathRef(child, _child_path(ref.path, idx), current, idx)


def _walk_recurse(
    ref: PathRef, remaining: list[PathToken], ctx: _EvaluationContext
) -> Iterator[PathRef]:
    if not remaining:
        yield ref
        return

    tok = remaining[0]
    yield from tok.walk(ref, remaining, ctx)


class _RootToken(PathToken):
    def __init__(self):
        self.text = "$"
        self.definite = True
        self.upstream_definite = True

    def walk(self, ref, remaining, ctx):
        yield from _walk_recurse(ref, remaining[1:], ctx)


class _PropertyToken(PathToken):
    def __init__(self, names: tuple[str, ...], text: str):
        self.names = names
        self.text = text
        self.definite = len(names) == 1
        self.upstream_definite = True

    def walk(self, ref, remaining, ctx):
        current = ref.value
        if not isinstance(current, dict):
            if self.upstream_definite:
                ctx.fail(
                    self,
                    f"Expected to find an object with property {self.text} in path "
                    f"{ref.path} but found '{type(current).__name__}'.",
                )
            return

        is_leaf = len(remaining) == 1
        for name in self.names:
            child_path = _child_path(ref.path, name)
            if name in current:
                yield from _walk_recurse(
                    PathRef(current[name], child_path, current, name),
                    remaining[1:],
                    ctx,
                )
                continue
            if is_leaf:
                if ctx.leaf_to_null:
                    yield PathRef(None, child_path, current, name)
                elif ctx.require_properties:
                    ctx.fail(self, f"No results for path: {child_path}.")
                continue
            if (self.upstream_definite and self.definite) or ctx.require_properties:
                ctx.fail(self, f"Missing property in path {child_path}.")


class _WildcardToken(PathToken):
    def __init__(self, text: str = "*"):
        self.text = text
        self.definite = False
        self.upstream_definite = True

    def walk(self, ref, remaining, ctx):
        for child in _iter_children(ref):
            yield from _walk_recurse(child, remaining[1:], ctx)


class _DeepScanToken(PathToken):
    def __init__(self):
        self.text = ".."
        self.definite = False
        self.upstream_definite = True

    def walk(self, ref, remaining, ctx):
        # A filter after '..' tests each object once, not each list entry again.
        next_tok = remaining[1]
        if not (isinstance(next_tok, _FilterToken) and isinstance(ref.value, list)):
            yield from _walk_recurse(ref, remaining[1:], ctx)
        for child in _iter_children(ref):
            if isinstance(child.value, dict | list):
                yield from self.walk(child, remaining, ctx)


class _IndexToken(PathToken):
    def __init__(self, indexes: tuple[int, ...], text: str):
        self.indexes = indexes
        self.text = text
        self.definite = len(indexes) == 1
        self.upstream_definite = True

    def walk(self, ref, remaining, ctx):
        current = ref.value
        if not isinstance(current, list):
            if self.upstream_definite:
                ctx.fail(
                    self,
                    f"Filter: {self.text} can only be applied to arrays. "
                    f"Current context is: {type(current).__name__}.",
                )
            return
        for idx in self.indexes:
            effective = idx + len(current) if idx < 0 else idx
            if not 0 <= effective < len(current):
                continue
            yield from _walk_recurse(
                PathRef(current[effective], _child_path(ref.path, effective), current, effective),
                remaining[1:],
                ctx,
            )


class _SliceToken(PathToken):
    def __init__(self, index: slice, text: str):
        self.index = index
        self.text = text
        self.definite = False
        self.upstream_definite = True

    def _iter_slice_indexes(self, lst: list[Any]) -> list[int]:
        start, stop, step = self.index.indices(len(lst))
        return list(range(start, stop, step))

    def walk(self, ref, remaining, ctx):
        current = ref.value
        if not isinstance(current, list):
            if self.upstream_definite:
                ctx.fail(
                    self,
                    f"Filter: {self.text} can only be applied to arrays. "
                    f"Current context is: {type(current).__name__}.",
                )
            return
        for idx in self._iter_slice_indexes(current):
            yield from _walk_recurse(
                PathRef(current[idx], _child_path(ref.path, idx), current, idx),
                remaining[1:],
                ctx,
            )


class _FilterToken(PathToken):
    def __init__(self, predicates: tuple[Predicate, ...], text: str):
        self.predicates = predicates
        self.text = text
        self.definite = False
        self.upstream_definite = True

    def _accepts(self, item: Any, ctx: _EvaluationContext) -> bool:
        predicate_ctx = PredicateContext(
            item=item, root=ctx.root, configuration=ctx.configuration
        )
        return all(predicate(predicate_ctx) for predicate in self.predicates)

    def walk(self, ref, remaining, ctx):
        current = ref.value
        if isinstance(current, list):
            for idx, item in enumerate(list(current)):
                if self._accepts(item, ctx):
                    yield from _walk_recurse(
                        PathRef(item, _child_path(ref.path, idx), current, idx),
                        remaining[1:],
                        ctx,
                    )
            return
        if isinstance(current, dict) and self._accepts(current, ctx):
            yield from _walk_recurse(ref, remaining[1:], ctx)


def _unquote(segment: str, path: str) -> str:
    quote = segment[0]
    if len(segment) < 2 or segment[-1] != quote:
        raise JsonWalkParseError(
            path=path, token=segment, message="Unterminated quoted property name."
        )
    return segment[1:-1].replace(f"\\{quote}", quote).replace("\\\\", "\\")


def _split_outside_quotes(content: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    escaped = False
    for ch in content:
        if escaped:
            current.append(ch)
            escaped = False
            continue
        if ch == "\\" and quote is not None:
            current.append(ch)
            escaped = True
            continue
        if quote is not None:
            if ch == quote:
                quote = None
            current.append(ch)
            continue
        if ch in {"'", '"'}:
            quote = ch
            current.append(ch)
            continue
        if ch == ",":
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return parts


class _PathCompiler:
    def __init__(self, path: str, predicates: Sequence[Predicate]):
        self._path = path
        self._predicates = list(predicates)
        self._next_predicate = 0
        self._idx = 0
        self._function_name: str | None = None

    def compile(self) -> "CompiledPath":
        text = self._path
        if not text.startswith("$"):
            text = "$" + text if text.startswith("[") else "$." + text
        self._path = text
        self._idx = 1

        tokens: list[PathToken] = [_RootToken()]
        while self._idx < len(text):
            if self._function_name is not None:
                raise self._error(
                    text[self._idx :], "Path functions must be the last path segment."
                )
            if text.startswith("..", self._idx):
                self._idx += 2
                tokens.append(_DeepScanToken())
                if self._idx >= len(text):
                    raise self._error("..", "Path must not end with a '..'.")
                if text[self._idx] == "[":
                    continue
                segment = self._parse_dot_segment()
                if segment is None:
                    raise self._error(
                        text[self._idx :], "Path functions can not follow '..'."
                    )
                tokens.append(segment)
                continue
            ch = text[self._idx]
            if ch == ".":
                self._idx += 1
                if self._idx >= len(text):
                    raise self._error(".", "Path must not end with a '.'.")
                segment = self._parse_dot_segment()
                if segment is not None:
                    tokens.append(segment)
                continue
            if ch == "[":
                tokens.append(self._parse_bracket_segment())
                continue
            raise self._error(ch, f"Unexpected character '{ch}'.")

        if self._next_predicate != len(self._predicates):
            raise self._error(
                None,
                f"Path has {self._next_predicate} filter placeholder(s) but "
                f"{len(self._predicates)} predicate(s) were supplied.",
            )

        upstream_definite = True
        for tok in tokens:
            tok.upstream_definite = upstream_definite
            upstream_definite = upstream_definite and tok.definite

        function = None
        if self._function_name is not None:
            try:
                function = DEFAULT_PATH_FUNCTION_REGISTRY[self._function_name]
            except KeyError as ex:
                raise self._error(
                    f"{self._function_name}()",
                    f"Path function '{self._function_name}' is not registered.",
                ) from ex

        return CompiledPath(
            self._path,
            tuple(tokens),
            tuple(self._predicates),
            function_name=self._function_name,
            function=function,
        )

    def _error(self, token: str | None, message: str) -> JsonWalkParseError:
        return JsonWalkParseError(path=self._path, token=token, message=message)

    def _parse_dot_segment(self) -> PathToken | None:
        text = self._path
        if text[self._idx] == "*":
            self._idx += 1
            return _WildcardToken()
        start = self._idx
        while self._idx < len(text) and text[self._idx] not in {".", "[", "("}:
            self._idx += 1
        name = text[start : self._idx]
        if not name or name.strip() != name:
            raise self._error(name, f"Invalid property name '{name}'.")
        if text.startswith("()", self._idx):
            self._idx += 2
            self._function_name = name
            return None
        if self._idx < len(text) and text[self._idx] == "(":
            raise self._error(text[start:], "Path function arguments are not supported.")
        return _PropertyToken((name,), f"['{name}']")

    def _find_bracket_end(self) -> int:
        text = self._path
        quote: str | None = None
        depth = 0
        i = self._idx
        while i < len(text):
            ch = text[i]
            if quote is not None:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif ch in {"'", '"'}:
                quote = ch
            elif ch == "[":
                depth += 1
            elif ch == "]":
                depth -= 1
                if depth == 0:
                    return i
            i += 1
        raise self._error(text[self._idx :], "Unterminated '[' in path.")

    def _parse_bracket_segment(self) -> PathToken:
        end = self._find_bracket_end()
        raw = self._path[self._idx : end + 1]
        content = raw[1:-1].strip()
        self._idx = end + 1

        if not content:
            raise self._error(raw, "Empty brackets in path.")
        if content == "*":
            return _WildcardToken("[*]")
        if all(part.strip() == "?" for part in content.split(",")):
            return _FilterToken(self._take_predicates(content.count("?"), raw), raw)
        if content.startswith("?"):
            expression = content[1:].strip()
            if not (expression.startswith("(") and expression.endswith(")")):
                raise self._error(raw, "Inline filters must be written as '[?(<expression>)]'.")
            return _FilterToken((parse_filter_expression(expression[1:-1]),), raw)
        if content[0] in {"'", '"'}:
            names = tuple(
                _unquote(part, self._path) for part in _split_outside_quotes(content)
            )
            return _PropertyToken(names, raw)
        if ":" in content:
            return _SliceToken(self._parse_slice(content, raw), raw)
        try:
            indexes = tuple(int(part) for part in content.split(","))
        except ValueError as ex:
            raise self._error(raw, f"Invalid array index '{content}'.") from ex
        return _IndexToken(indexes, raw)

    def _parse_slice(self, content: str, raw: str) -> slice:
        parts = content.split(":")
        if len(parts) != 2:
            raise self._error(raw, "Array slices take the form '[start:end]'.")
        try:
            start, end = (int(part) if part.strip() else None for part in parts)
        except ValueError as ex:
            raise self._error(raw, f"Invalid array slice '{content}'.") from ex
        return slice(start, end)

    def _take_predicates(self, count: int, raw: str) -> tuple[Predicate, ...]:
        end = self._next_predicate + count
        if end > len(self._predicates):
            raise self._error(raw, "Not enough predicates supplied for filter placeholder.")
        taken = tuple(self._predicates[self._next_predicate : end])
        self._next_predicate = end
        return taken


def _require_non_root(refs: list[PathRef], operation: str):
    for ref in refs:
        if ref.is_root:
            raise JsonWalkMutationError(f"Cannot {operation} the document root.")


def _require_container(refs: list[PathRef], container: type, message: str):
    for ref in refs:
        if not isinstance(ref.value, container):
            raise JsonWalkMutationError(
                f"{message}, but '{ref.path}' is {type(ref.value).__name__}."
            )


def _set_values(refs: list[PathRef], value: Any) -> list[str]:
    _require_non_root(refs, "set")
    for ref in refs:
        ref.parent[ref.key] = value
    return [ref.path for ref in refs]


def _map_values(refs: list[PathRef], map_function: Callable[[Any], Any]) -> list[str]:
    _require_non_root(refs, "map")
    new_values = [map_function(ref.value) for ref in refs]
    for ref, new_value in zip(refs, new_values):
        ref.parent[ref.key] = new_value
    return [ref.path for ref in refs]


def _delete_values(refs: list[PathRef]) -> list[str]:
    _require_non_root(refs, "delete")
    refs = [ref for ref in refs if ref.is_present]
    list_removals: dict[int, tuple[list, set[int]]] = {}
    for ref in refs:
        if isinstance(ref.parent, list):
            list_removals.setdefault(id(ref.parent), (ref.parent, set()))[1].add(ref.key)
        else:
            ref.parent.pop(ref.key, None)
    # Highest index first per list so earlier indexes stay valid.
    for parent, indexes in list_removals.values():
        for idx in sorted(indexes, reverse=True):
            del parent[idx]
    return [ref.path for ref in refs]


def _add_values(refs: list[PathRef], value: Any) -> list[str]:
    _require_container(refs, list, "Can only add to an array")
    for ref in refs:
        ref.value.append(value)
    return [ref.path for ref in refs]


def _put_values(refs: list[PathRef], key: str, value: Any) -> list[str]:
    _require_container(refs, dict, "Can only add properties to an object")
    for ref in refs:
        ref.value[key] = value
    return [ref.path for ref in refs]


def _rename_keys(refs: list[PathRef], old_key: str, new_key: str) -> list[str]:
    _require_container(refs, dict, "Can only rename properties of an object")
    renamed = [ref for ref in refs if old_key in ref.value]
    for ref in renamed:
        items = [
            (key, value)
            for key, value in ref.value.items()
            if key != new_key or key == old_key
        ]
        ref.value.clear()
        for key, value in items:
            ref.value[new_key if key == old_key else key] = value
    return [ref.path for ref in renamed]


_MUTATIONS: dict[MutationKind, Callable[..., list[str]]] = {
    MutationKind.SET: _set_values,
    MutationKind.MAP: _map_values,
    MutationKind.DELETE: _delete_values,
    MutationKind.ADD: _add_values,
    MutationKind.PUT: _put_values,
    MutationKind.RENAME_KEY: _rename_keys,
}


class CompiledPath:
    """
    A parsed path expression bound to its predicate arguments.

    Instances are immutable and safe to share between documents, configurations
    and threads. Use `compile_path` (or `jsonwalk.compile`) to build one.
    """

    def __init__(
        self,
        path: str,
        tokens: tuple[PathToken, ...],
        predicates: tuple[Predicate, ...] = (),
        *,
        function_name: str | None = None,
        function: Callable[[Any], Any] | None = None,
    ):
        self._path = path
        self._tokens = tokens
        self._predicates = predicates
        self._function_name = function_name
        self._function = function
        self._definite = all(tok.definite for tok in tokens)

    @property
    def path(self) -> str:
        return self._path

    @property
    def predicates(self) -> tuple[Predicate, ...]:
        return self._predicates

    @property
    def is_definite(self) -> bool:
        return self._definite

    @property
    def is_function_path(self) -> bool:
        return self._function_name is not None

    def iter_matches(
        self, document: Any, configuration: Configuration, *, lenient: bool = False
    ) -> Iterator[PathRef]:
        """
        Lazily yield a `PathRef` for every node the path matches, in document order.

        With `lenient=True` missing properties and type mismatches are skipped
        regardless of the configuration options.
        """
        ctx = _EvaluationContext(self._path, document, configuration, lenient=lenient)
        yield from _walk_recurse(PathRef(document, "$"), list(self._tokens), ctx)

    def evaluate(self, document: Any, configuration: Configuration) -> list[PathRef]:
        return list(self.iter_matches(document, configuration))

    def read(self, document: Any, configuration: Configuration) -> Any:
        """
        Evaluate the path against `document` and shape the result.

        Every attached evaluation listener sees each match as a `FoundResult`;
        enumeration stops at the first match any listener answers with
        `EvaluationContinuation.ABORT`.

        Returns:
            A list of concrete paths when `Option.AS_PATH_LIST` is set, the single
            matched value for definite paths (unless `Option.ALWAYS_RETURN_LIST`),
            otherwise the list of matched values. A trailing path function is
            applied to that result.

        Raises:
            JsonWalkResolutionError: If a definite path has no match, or the path
                cannot be resolved, and `Option.SUPPRESS_EXCEPTIONS` is not set.
        """
        listeners = configuration.evaluation_listeners
        refs: list[PathRef] = []
        for index, ref in enumerate(self.iter_matches(document, configuration)):
            refs.append(ref)
            if not listeners:
                continue
            found = FoundResult(index=index, path=ref.path, result=ref.value)
            if notify_listeners(listeners, found) is EvaluationContinuation.ABORT:
                break

        if configuration.contains_option(Option.AS_PATH_LIST):
            if self.is_function_path:
                raise JsonWalkArgumentError(
                    "Path functions can not be combined with Option.AS_PATH_LIST."
                )
            return [ref.path for ref in refs]

        suppress = configuration.contains_option(Option.SUPPRESS_EXCEPTIONS)
        if self._definite and not configuration.contains_option(
            Option.ALWAYS_RETURN_LIST
        ):
            if not refs:
                if suppress:
                    return None
                raise JsonWalkResolutionError(
                    path=self._path, token=None, message="No results for path."
                )
            result = refs[0].value
        else:
            result = [ref.value for ref in refs]

        if self._function is None:
            return result
        try:
            return self._function(result)
        except (TypeError, ValueError) as ex:
            if suppress:
                return None
            raise JsonWalkResolutionError(
                path=self._path, token=f"{self._function_name}()", message=str(ex)
            ) from ex

    def mutate(
        self,
        document: Any,
        configuration: Configuration,
        kind: MutationKind,
        *operands: Any,
    ) -> Any:
        """
        Apply a structural change to every node the path matches.

        All matches are collected before anything changes, and type checks run
        before the first write, so a failing call leaves `document` untouched.

        Returns:
            The list of concrete paths changed, in match order, when
            `Option.AS_PATH_LIST` is set; otherwise `document`.

        Raises:
            JsonWalkParseError: If the path ends in a path function.
            JsonWalkMutationError: If a match cannot take this kind of change.
        """
        if self.is_function_path:
            raise JsonWalkParseError(
                path=self._path,
                token=f"{self._function_name}()",
                message="Path functions are only supported in read paths.",
            )

        refs: list[PathRef] = []
        seen: set[str] = set()
        for ref in self.iter_matches(document, configuration):
            if ref.path in seen:
                continue
            seen.add(ref.path)
            refs.append(ref)

        modified = _MUTATIONS[kind](refs, *operands)
        if configuration.contains_option(Option.AS_PATH_LIST):
            return modified
        return document

    def set(self, document: Any, value: Any, configuration: Configuration) -> Any:
        return self.mutate(document, configuration, MutationKind.SET, value)

    def map(
        self,
        document: Any,
        map_function: Callable[[Any], Any],
        configuration: Configuration,
    ) -> Any:
        return self.mutate(document, configuration, MutationKind.MAP, map_function)

    def delete(self, document: Any, configuration: Configuration) -> Any:
        return self.mutate(document, configuration, MutationKind.DELETE)

    def add(self, document: Any, value: Any, configuration: Configuration) -> Any:
        return self.mutate(document, configuration, MutationKind.ADD, value)

    def put(
        self, document: Any, key: str, value: Any, configuration: Configuration
    ) -> Any:
        return self.mutate(document, configuration, MutationKind.PUT, key, value)

    def rename_key(
        self,
        document: Any,
        old_key: str,
        new_key: str,
        configuration: Configuration,
    ) -> Any:
        return self.mutate(
            document, configuration, MutationKind.RENAME_KEY, old_key, new_key
        )

    def __repr__(self) -> str:
        return f"CompiledPath({self._path!r})"

    def __str__(self) -> str:
        return self._path


def compile_path(path: str, predicates: Sequence[Predicate] = ()) -> CompiledPath:
    """
    Compile a path expression.

    Args:
        path: Path expression, e.g. `$.store.book[?(@.price < 10)].title`.
            Text without a leading `$` is treated as relative to the root.
        predicates: Predicates filling the `[?]` placeholders, in order.

    Raises:
        JsonWalkArgumentError: If `path` is not a string or is blank.
        JsonWalkParseError: If the expression is malformed.
    """
    if not isinstance(path, str) or not path.strip():
        raise JsonWalkArgumentError("Path can not be null or empty.")
    try:
        return _PathCompiler(path.strip(), predicates).compile()
    except JsonWalkError:
        raise
    except Exception as ex:
        raise JsonWalkParseError(
            path=path, token=None, message="Failed to parse path."
        ) from ex
