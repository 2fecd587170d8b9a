from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .errors import JsonWalkArgumentError


class EvaluationContinuation(Enum):
    CONTINUE = "continue"
    ABORT = "abort"


@dataclass(frozen=True)
class FoundResult:
    index: int
    path: str
    result: Any


class EvaluationListener(Protocol):
    def result_found(self, found: FoundResult) -> EvaluationContinuation: ...


class LimitingEvaluationListener:
    """Stop enumeration once `limit` results have been found."""

    def __init__(self, limit: int):
        if limit <= 0:
            raise JsonWalkArgumentError(f"Limit must be positive, got {limit}.")
        self.limit = limit

    def result_found(self, found: FoundResult) -> EvaluationContinuation:
        if found.index == self.limit - 1:
            return EvaluationContinuation.ABORT
        return EvaluationContinuation.CONTINUE

    def __repr__(self) -> str:
        return f"LimitingEvaluationListener(limit={self.limit})"


def notify_listeners(
    listeners: tuple[EvaluationListener, ...], found: FoundResult
) -> EvaluationContinuation:
    # Every listener is consulted; any ABORT stops enumeration.
    decision = EvaluationContinuation.CONTINUE
    for listener in listeners:
        if listener.result_found(found) is EvaluationContinuation.ABORT:
            decision = EvaluationContinuation.ABORT
    return decision
