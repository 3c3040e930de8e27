"""Shared fixtures: a throwaway JSON store and operator capabilities."""

import pytest

from kitabghar.auth.models import OperatorCapability, Scope
from kitabghar.records.models import BOOKS, POEMS
from kitabghar.records.store import JsonRecordStore


@pytest.fixture
def store(tmp_path):
    return JsonRecordStore(tmp_path / "store")


@pytest.fixture
def moderator():
    return OperatorCapability(
        operator_id="op-1",
        username="meera",
        scopes=frozenset({Scope.moderate, Scope.manage_catalog}),
    )


@pytest.fixture
def viewer():
    return OperatorCapability(operator_id="op-2", username="ravi", scopes=frozenset())


async def add_book(store, **overrides):
    row = {
        "title": "Gitanjali",
        "author": "Rabindranath Tagore",
        "genre": "Poetry",
        "total_copies": 2,
        "available_copies": 2,
    }
    row.update(overrides)
    return await store.insert(BOOKS, row)


async def add_poem(store, **overrides):
    row = {
        "title": "Dawn",
        "content": "The sky unfolds in saffron.",
        "author": "Asha",
        "likes_count": 0,
        "status": "pending",
        "published_at": None,
    }
    row.update(overrides)
    return await store.insert(POEMS, row)
