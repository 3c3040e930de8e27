"""Voter identity resolution for the like toggle.

There are no voter accounts, so a voter is approximated by a network address.
Callers behind one NAT collapse onto one voter, and every failed lookup
collapses onto :data:`ANONYMOUS_VOTER`.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

ANONYMOUS_VOTER = "anonymous"

IP_ECHO_URL = "https://api.ipify.org?format=json"


class RemoteAddressResolver:
    """Derives the voter from the caller's request.

    The first hop of ``X-Forwarded-For`` wins (the portal runs behind a
    proxy); otherwise the socket peer address is used.
    """

    def address(self, forwarded_for: Optional[str], client_host: Optional[str]) -> Optional[str]:
        """The caller's address, or None when the request carries none."""
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first
        return client_host or None

    def resolve(self, forwarded_for: Optional[str], client_host: Optional[str]) -> str:
        address = self.address(forwarded_for, client_host)
        if address:
            return address
        logger.warning("No client address available; voting as '%s'", ANONYMOUS_VOTER)
        return ANONYMOUS_VOTER


class IpLookupResolver:
    """Asks an external address echo service which address we appear from.

    Run on the server this is the server's own outbound address, shared by
    every visitor, so the portal only falls back to it for requests that
    carry no client address at all.
    """

    def __init__(
        self,
        url: str = IP_ECHO_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ) -> None:
        self.url = url
        self._client = client
        self._timeout = timeout

    async def resolve(self) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(self.url)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self.url)
            response.raise_for_status()
            ip = response.json().get("ip", "")
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("Address lookup failed (%s); voting as '%s'", exc, ANONYMOUS_VOTER)
            return ANONYMOUS_VOTER
        if not ip:
            logger.warning("Address lookup returned no ip; voting as '%s'", ANONYMOUS_VOTER)
            return ANONYMOUS_VOTER
        return ip
