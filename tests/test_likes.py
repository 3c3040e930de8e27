"""Tests for the like toggle."""

import pytest

from conftest import add_poem
from kitabghar.likes.counter import LikeCounter, LikeResult
from kitabghar.records.models import POEM_LIKES, POEMS


@pytest.mark.asyncio
async def test_like_then_unlike_same_voter(store):
    poem = await add_poem(store, status="approved")
    counter = LikeCounter(store)

    first = await counter.toggle(poem["id"], "203.0.113.5")
    second = await counter.toggle(poem["id"], "203.0.113.5")

    assert first == LikeResult(voted=True, count=1)
    assert second == LikeResult(voted=False, count=0)


@pytest.mark.asyncio
async def test_double_toggle_restores_prior_state(store):
    poem = await add_poem(store)
    counter = LikeCounter(store)
    await counter.toggle(poem["id"], "v1")
    await counter.toggle(poem["id"], "v2")

    before_count = (await store.get(POEMS, poem["id"]))["likes_count"]
    before_votes = await store.select(POEM_LIKES, filters={"ip_address": "v3"})

    await counter.toggle(poem["id"], "v3")
    await counter.toggle(poem["id"], "v3")

    assert (await store.get(POEMS, poem["id"]))["likes_count"] == before_count == 2
    assert await store.select(POEM_LIKES, filters={"ip_address": "v3"}) == before_votes == []


@pytest.mark.asyncio
async def test_distinct_voters_each_count_once(store):
    poem = await add_poem(store)
    counter = LikeCounter(store)
    voters = [f"198.51.100.{i}" for i in range(5)]

    for voter in voters:
        result = await counter.toggle(poem["id"], voter)
    assert result.count == 5

    for voter in voters[:3]:
        result = await counter.toggle(poem["id"], voter)
    assert result.count == 2
    assert await store.count(POEM_LIKES, {"poem_id": poem["id"]}) == 2


@pytest.mark.asyncio
async def test_count_never_goes_negative(store):
    # A counter that drifted below the live votes must not go under zero.
    poem = await add_poem(store)
    counter = LikeCounter(store)
    await counter.toggle(poem["id"], "v1")
    await store.update(POEMS, poem["id"], {"likes_count": 0})

    result = await counter.toggle(poem["id"], "v1")
    assert result == LikeResult(voted=False, count=0)


@pytest.mark.asyncio
async def test_empty_arguments_are_rejected(store):
    counter = LikeCounter(store)
    with pytest.raises(ValueError):
        await counter.toggle("", "v1")
    with pytest.raises(ValueError):
        await counter.toggle("p1", "")
