import ast
import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Any

from .errors import JsonWalkArgumentError, JsonWalkError, JsonWalkParseError

if TYPE_CHECKING:
    from .configuration import Configuration

_MISSING = object()

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}
_SYMBOL_OPERATORS = ("==", "!=", "<=", ">=", "=~", "<", ">")
_WORD_OPERATOR_PATTERN = re.compile(r"\s+(nin|in|size|empty)\s+")


@dataclass(frozen=True)
class PredicateContext:
    item: Any
    root: Any
    configuration: "Configuration"


Predicate = Callable[[PredicateContext], Any]
_Operand = Callable[[PredicateContext], Any]


def _equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _regex_match(left: Any, pattern: re.Pattern) -> bool:
    return isinstance(left, str) and pattern.fullmatch(left) is not None


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": _equals,
    "!=": lambda left, right: not _equals(left, right),
    "<": lambda left, right: left < right,
    "<=": lambda left, right: left <= right,
    ">": lambda left, right: left > right,
    ">=": lambda left, right: left >= right,
    "=~": _regex_match,
    "in": lambda left, right: left in right,
    "nin": lambda left, right: left not in right,
    "size": lambda left, right: len(left) == right,
    "empty": lambda left, right: (len(left) == 0) == bool(right),
}


def _tokenize_filter_expression(expression: str) -> list[str]:
    tokens: list[str] = []
    i = 0
    while i < len(expression):
        ch = expression[i]
        if ch.isspace():
            i += 1
            continue
        if expression.startswith("&&", i) or expression.startswith("||", i):
            tokens.append(expression[i : i + 2])
            i += 2
            continue
        if ch in {"(", ")"} or (ch == "!" and not expression.startswith("!=", i)):
            tokens.append(ch)
            i += 1
            continue

        start = i
        quote: str | None = None
        bracket_depth = 0
        while i < len(expression):
            c = expression[i]
            if quote is not None:
                if c == "\\":
                    i += 2
                    continue
                if c == quote:
                    quote = None
                i += 1
                continue
            if bracket_depth == 0 and expression.startswith("()", i):
                i += 2
                continue
            if c in {"'", '"', "/"}:
                quote = c
            elif c == "[":
                bracket_depth += 1
            elif c == "]":
                bracket_depth = max(0, bracket_depth - 1)
            elif bracket_depth == 0 and (
                c in {"(", ")"}
                or expression.startswith("&&", i)
                or expression.startswith("||", i)
                or (c == "!" and not expression.startswith("!=", i))
            ):
                break
            i += 1
        if quote is not None:
            raise JsonWalkParseError(
                path=expression,
                token=expression[start:],
                message="Unterminated literal in filter expression.",
            )
        tokens.append(expression[start:i].strip())

    return tokens


def _split_comparison(chunk: str) -> tuple[str, str | None, str | None]:
    quote: str | None = None
    bracket_depth = 0
    i = 0
    while i < len(chunk):
        c = chunk[i]
        if quote is not None:
            if c == "\\":
                i += 2
                continue
            if c == quote:
                quote = None
            i += 1
            continue
        if c in {"'", '"', "/"}:
            quote = c
        elif c == "[":
            bracket_depth += 1
        elif c == "]":
            bracket_depth = max(0, bracket_depth - 1)
        elif bracket_depth == 0:
            for operator in _SYMBOL_OPERATORS:
                if chunk.startswith(operator, i):
                    return (
                        chunk[:i].strip(),
                        operator,
                        chunk[i + len(operator) :].strip(),
                    )
            word = _WORD_OPERATOR_PATTERN.match(chunk, i)
            if word is not None and i > 0:
                return chunk[:i].strip(), word.group(1), chunk[word.end() :].strip()
        i += 1
    return chunk.strip(), None, None


def _parse_literal(expression: str, text: str) -> Any:
    if text.startswith("/"):
        end = text.rfind("/")
        if end == 0:
            raise JsonWalkParseError(
                path=expression, token=text, message="Invalid regex literal."
            )
        flags = text[end + 1 :]
        if any(flag not in _REGEX_FLAGS for flag in flags):
            raise JsonWalkParseError(
                path=expression, token=text, message=f"Unsupported regex flags '{flags}'."
            )
        compile_flags = 0
        for flag in flags:
            compile_flags |= _REGEX_FLAGS[flag]
        try:
            return re.compile(text[1:end], compile_flags)
        except re.error as ex:
            raise JsonWalkParseError(
                path=expression, token=text, message=f"Invalid regex literal: {ex}."
            ) from ex
    try:
        return json.loads(text)
    except ValueError:
        pass
    try:
        return ast.literal_eval(text)
    except (ValueError, SyntaxError) as ex:
        raise JsonWalkParseError(
            path=expression, token=text, message=f"Invalid literal '{text}'."
        ) from ex


def _path_operand(text: str) -> _Operand:
    from .path import compile_path

    relative = text.startswith("@")
    compiled = compile_path("$" + text[1:] if relative else text)

    def _evaluate(ctx: PredicateContext) -> Any:
        target = ctx.item if relative else ctx.root
        if compiled.is_function_path:
            # Function operands ignore the caller's options and listeners.
            configuration = ctx.configuration.set_options().set_evaluation_listeners()
            try:
                return compiled.read(target, configuration)
            except JsonWalkError:
                return _MISSING
        values = [
            ref.value
            for ref in compiled.iter_matches(target, ctx.configuration, lenient=True)
        ]
        if not compiled.is_definite:
            return values
        return values[0] if values else _MISSING

    return _evaluate


def _operand(expression: str, text: str) -> _Operand:
    if not text:
        raise JsonWalkParseError(
            path=expression, token=text, message="Missing operand in filter expression."
        )
    if text[0] in {"@", "$"}:
        return _path_operand(text)
    value = _parse_literal(expression, text)
    return lambda ctx, value=value: value


def _comparison(expression: str, chunk: str) -> _Operand:
    left_text, operator, right_text = _split_comparison(chunk)
    left = _operand(expression, left_text)
    if operator is None:
        return lambda ctx, left=left: left(ctx) is not _MISSING

    right = _operand(expression, right_text or "")
    compare = _OPERATORS[operator]

    def _evaluate(ctx: PredicateContext) -> bool:
        left_value = left(ctx)
        right_value = right(ctx)
        if left_value is _MISSING or right_value is _MISSING:
            return False
        try:
            return bool(compare(left_value, right_value))
        except TypeError:
            return False

    return _evaluate


class _FilterExpressionParser:
    def __init__(self, expression: str):
        self._expression = expression
        self._tokens = _tokenize_filter_expression(expression)
        self._idx = 0

    def parse(self) -> _Operand:
        result = self._parse_or()
        if self._idx != len(self._tokens):
            raise JsonWalkParseError(
                path=self._expression,
                token=self._tokens[self._idx],
                message=f"Unexpected token '{self._tokens[self._idx]}' in filter expression.",
            )
        return result

    def _parse_or(self) -> _Operand:
        left = self._parse_and()
        while self._peek() == "||":
            self._consume("||")
            right = self._parse_and()
            left = lambda ctx, left=left, right=right: (
                bool(left(ctx)) or bool(right(ctx))
            )
        return left

    def _parse_and(self) -> _Operand:
        left = self._parse_not()
        while self._peek() == "&&":
            self._consume("&&")
            right = self._parse_not()
            left = lambda ctx, left=left, right=right: (
                bool(left(ctx)) and bool(right(ctx))
            )
        return left

    def _parse_not(self) -> _Operand:
        if self._peek() == "!":
            self._consume("!")
            inner = self._parse_not()
            return lambda ctx, inner=inner: not bool(inner(ctx))
        return self._parse_primary()

    def _parse_primary(self) -> _Operand:
        if self._peek() == "(":
            self._consume("(")
            inner = self._parse_or()
            self._consume(")")
            return inner

        token = self._peek()
        if token is None or token in {"&&", "||", ")"}:
            raise JsonWalkParseError(
                path=self._expression,
                token=token,
                message="Unexpected end of filter expression.",
            )
        self._idx += 1
        return _comparison(self._expression, token)

    def _peek(self) -> str | None:
        if self._idx >= len(self._tokens):
            return None
        return self._tokens[self._idx]

    def _consume(self, expected: str):
        token = self._peek()
        if token != expected:
            raise JsonWalkParseError(
                path=self._expression,
                token=token,
                message=f"Expected '{expected}' in filter expression, got '{token}'.",
            )
        self._idx += 1


class InlineFilter:
    """A compiled `[?(<expression>)]` filter."""

    def __init__(self, expression: str):
        self.expression = expression.strip()
        if not self.expression:
            raise JsonWalkParseError(
                path=expression, token=None, message="Filter expression cannot be empty."
            )
        self._evaluate = _FilterExpressionParser(self.expression).parse()

    def __call__(self, ctx: PredicateContext) -> bool:
        return bool(self._evaluate(ctx))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, InlineFilter) and other.expression == self.expression

    def __hash__(self) -> int:
        return hash(("inline", self.expression))

    def __repr__(self) -> str:
        return f"[?({self.expression})]"


def parse_filter_expression(expression: str) -> InlineFilter:
    return InlineFilter(expression)


def _render_field(field: str) -> str:
    if field.startswith(("@", "$")):
        return field
    return "@" + "".join(
        "['{}']".format(part.replace("'", "\\'")) for part in field.split(".")
    )


def _render_regex(pattern: re.Pattern) -> str:
    unsupported = pattern.flags & ~(re.UNICODE | sum(_REGEX_FLAGS.values()))
    if unsupported:
        raise JsonWalkArgumentError(
            f"Regex flags {re.RegexFlag(unsupported)!r} can not be used in a filter."
        )
    if not isinstance(pattern.pattern, str):
        raise JsonWalkArgumentError("Filter regexes must be str patterns.")
    flags = "".join(
        name for name, flag in _REGEX_FLAGS.items() if pattern.flags & flag
    )
    escaped = re.sub(r"(\\.)|/", lambda m: m.group(1) or "\\/", pattern.pattern)
    return f"/{escaped}/{flags}"


def _render_value(value: Any) -> str:
    if isinstance(value, re.Pattern):
        return _render_regex(value)
    return json.dumps(value)


@dataclass(frozen=True, repr=False)
class Criteria:
    """
    Programmatic filter predicate.

    Built fluently and rendered to the equivalent inline filter text, which is
    also what the criteria compares and hashes by:

        >>> where("price").lt(10).and_("category").eq("fiction")
        [?(@['price'] < 10 && @['category'] == "fiction")]
    """

    clauses: tuple[str, ...] = ()
    pending_field: str | None = None

    def and_(self, field: str) -> "Criteria":
        return Criteria(self.clauses, field)

    def eq(self, value: Any) -> "Criteria":
        return self._with("==", value)

    def ne(self, value: Any) -> "Criteria":
        return self._with("!=", value)

    def lt(self, value: Any) -> "Criteria":
        return self._with("<", value)

    def lte(self, value: Any) -> "Criteria":
        return self._with("<=", value)

    def gt(self, value: Any) -> "Criteria":
        return self._with(">", value)

    def gte(self, value: Any) -> "Criteria":
        return self._with(">=", value)

    def regex(self, pattern: str | re.Pattern) -> "Criteria":
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        return self._with("=~", pattern)

    def in_(self, *values: Any) -> "Criteria":
        return self._with("in", list(values))

    def nin(self, *values: Any) -> "Criteria":
        return self._with("nin", list(values))

    def size(self, length: int) -> "Criteria":
        return self._with("size", length)

    def empty(self, is_empty: bool = True) -> "Criteria":
        return self._with("empty", is_empty)

    def exists(self, should_exist: bool = True) -> "Criteria":
        field = self._require_field()
        clause = _render_field(field)
        return Criteria(self.clauses + (clause if should_exist else f"!{clause}",))

    def _require_field(self) -> str:
        if self.pending_field is None:
            raise JsonWalkArgumentError(
                "Criteria need a field; call where() or and_() before adding a condition."
            )
        return self.pending_field

    def _with(self, operator: str, value: Any) -> "Criteria":
        field = self._require_field()
        clause = f"{_render_field(field)} {operator} {_render_value(value)}"
        return Criteria(self.clauses + (clause,))

    @property
    def expression(self) -> str:
        return " && ".join(self.clauses)

    @cached_property
    def _filter(self) -> InlineFilter:
        if not self.clauses:
            raise JsonWalkArgumentError("Criteria have no conditions.")
        return InlineFilter(self.expression)

    def __call__(self, ctx: PredicateContext) -> bool:
        return self._filter(ctx)

    def __repr__(self) -> str:
        return f"[?({self.expression})]"


def where(field: str) -> Criteria:
    return Criteria(pending_field=field)
