"""Process-wide service container for the routers."""

from __future__ import annotations

from typing import Optional

from kitabghar.services import Services, build_services

# Shared services instance
_services: Optional[Services] = None


def get_services() -> Services:
    """Return the singleton Services, building it from the environment once."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def set_services(services: Optional[Services]) -> None:
    """Replace (or with None, reset) the singleton."""
    global _services
    _services = services
