"""Per-voter like toggling on poems."""

from kitabghar.likes.counter import LikeCounter, LikeResult
from kitabghar.likes.voter import (
    ANONYMOUS_VOTER,
    IpLookupResolver,
    RemoteAddressResolver,
)

__all__ = [
    "ANONYMOUS_VOTER",
    "IpLookupResolver",
    "LikeCounter",
    "LikeResult",
    "RemoteAddressResolver",
]
