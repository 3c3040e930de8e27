"""Like toggle for poems.

The counter logic is identity-agnostic: callers pass an opaque voter token
(see ``kitabghar.likes.voter`` for how the web layer derives one).  The vote
row and the poem's ``likes_count`` change together inside the store's atomic
``toggle_like`` so concurrent voters never lose an update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from kitabghar.records.store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeResult:
    """State after a toggle: whether this voter now likes the poem, and the total."""

    voted: bool
    count: int


class LikeCounter:
    """Toggles one voter's like on one poem."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def toggle(self, target_id: str, voter_token: str) -> LikeResult:
        """Like the poem if this voter has not yet, otherwise take the like back.

        Calling this twice with the same arguments restores the previous vote
        state and count.
        """
        if not target_id:
            raise ValueError("target_id is required")
        if not voter_token:
            raise ValueError("voter_token is required")

        data = await self.store.toggle_like(target_id, voter_token)
        result = LikeResult(voted=bool(data["voted"]), count=max(0, int(data["count"])))
        logger.info(
            "poem %s %s (count=%d)", target_id, "liked" if result.voted else "unliked", result.count
        )
        return result
