import copy
from typing import Any

import pytest

from jsonwalk import Configuration, ParseContext
from jsonwalk.cache import LRUPathCache

STORE_DOCUMENT: dict[str, Any] = {
    "store": {
        "book": [
            {
                "category": "reference",
                "author": "Nigel Rees",
                "title": "Sayings of the Century",
                "price": 8.95,
            },
            {
                "category": "fiction",
                "author": "Evelyn Waugh",
                "title": "Sword of Honour",
                "price": 12.99,
            },
            {
                "category": "fiction",
                "author": "Herman Melville",
                "title": "Moby Dick",
                "isbn": "0-553-21311-3",
                "price": 8.99,
            },
            {
                "category": "fiction",
                "author": "J. R. R. Tolkien",
                "title": "The Lord of the Rings",
                "isbn": "0-395-19395-8",
                "price": 22.99,
            },
        ],
        "bicycle": {"color": "red", "price": 19.95},
    },
    "expensive": 10,
}


@pytest.fixture
def path_cache() -> LRUPathCache:
    return LRUPathCache()


@pytest.fixture
def parse_context(path_cache: LRUPathCache) -> ParseContext:
    return ParseContext(Configuration.default(), path_cache)


@pytest.fixture
def store() -> dict[str, Any]:
    return copy.deepcopy(STORE_DOCUMENT)
