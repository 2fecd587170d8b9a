import logging
import os
import threading
from collections import OrderedDict
from collections.abc import Hashable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .path import CompiledPath

logger = logging.getLogger(__name__)

CACHE_ENV_VAR = "JSONWALK_CACHE"
DEFAULT_LRU_LIMIT = 400
_VALID_CACHES = {"lru", "unbounded", "none"}

CacheKey = tuple[str, tuple[Any, ...]]


class PathCache(Protocol):
    def get(self, key: CacheKey) -> "CompiledPath | None": ...

    def put(self, key: CacheKey, compiled: "CompiledPath") -> None: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


def _predicate_signature(predicate: Any) -> Any:
    if isinstance(predicate, Hashable):
        try:
            hash(predicate)
        except TypeError:
            return repr(predicate)
        return predicate
    return repr(predicate)


def cache_key(path: str, predicates: Sequence[Any] = ()) -> CacheKey:
    """
    Build the cache key for a path expression and its predicate arguments.

    The path text is trimmed. Each predicate contributes one entry, in order:
    the predicate itself when hashable, otherwise its `repr`. Callables hash
    by identity and stay referenced by the key while the entry is cached.
    """
    return path.strip(), tuple(_predicate_signature(p) for p in predicates)


class LRUPathCache:
    def __init__(self, limit: int = DEFAULT_LRU_LIMIT):
        if limit <= 0:
            raise ValueError(f"Cache limit must be positive, got {limit}.")
        self.limit = limit
        self._entries: OrderedDict[CacheKey, "CompiledPath"] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> "CompiledPath | None":
        with self._lock:
            compiled = self._entries.get(key)
            if compiled is not None:
                self._entries.move_to_end(key)
            return compiled

    def put(self, key: CacheKey, compiled: "CompiledPath") -> None:
        with self._lock:
            self._entries[key] = compiled
            self._entries.move_to_end(key)
            while len(self._entries) > self.limit:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted compiled path %r", evicted[0])

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class UnboundedPathCache:
    def __init__(self):
        self._entries: dict[CacheKey, "CompiledPath"] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> "CompiledPath | None":
        with self._lock:
            return self._entries.get(key)

    def put(self, key: CacheKey, compiled: "CompiledPath") -> None:
        with self._lock:
            self._entries[key] = compiled

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class NoopPathCache:
    def get(self, key: CacheKey) -> "CompiledPath | None":
        return None

    def put(self, key: CacheKey, compiled: "CompiledPath") -> None:
        return None

    def clear(self) -> None:
        return None

    def __len__(self) -> int:
        return 0


def resolve_cache(preference: str | None = None) -> tuple[str, PathCache]:
    requested = (preference or os.getenv(CACHE_ENV_VAR, "lru")).strip().lower()

    if requested not in _VALID_CACHES:
        valid_options = ", ".join(sorted(_VALID_CACHES))
        raise ValueError(
            f"Invalid path cache '{requested}'. Expected one of: {valid_options}."
        )

    if requested == "unbounded":
        return requested, UnboundedPathCache()
    if requested == "none":
        return requested, NoopPathCache()
    return requested, LRUPathCache()
