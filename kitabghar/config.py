"""Runtime settings read from the environment.

Every setting has a development-friendly default so the portal starts with
a local JSON store under ``~/.kitabghar`` and no hosted services.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class Settings:
    """Service configuration.

    Parameters
    ----------
    data_dir:
        Root for the JSON record store, the operator store and audit logs.
    store_backend:
        ``"json"`` for the file store or ``"supabase"`` for the hosted one.
    transition_policy:
        Preset name (``permissive`` / ``strict``) or a path to a YAML table.
    voter_identity:
        ``"remote_addr"`` derives voters from the request; ``"ip_lookup"``
        additionally asks an external address echo service for requests
        that carry no client address.
    """

    data_dir: Path
    store_backend: str = "json"
    supabase_url: str = ""
    supabase_key: str = ""
    transition_policy: str = "permissive"
    track_inventory: bool = False
    voter_identity: str = "remote_addr"
    session_ttl_hours: int = 24
    bcrypt_rounds: int = 12
    log_level: str = "INFO"
    logging_config: str = ""

    @classmethod
    def from_env(cls, data_dir: Optional[str] = None) -> "Settings":
        base = data_dir or os.environ.get("KITABGHAR_DATA_DIR", "")
        return cls(
            data_dir=Path(base) if base else Path.home() / ".kitabghar",
            store_backend=os.environ.get("KITABGHAR_STORE", "json").lower(),
            supabase_url=os.environ.get("SUPABASE_URL", "").rstrip("/"),
            supabase_key=os.environ.get("SUPABASE_KEY", ""),
            transition_policy=os.environ.get("KITABGHAR_TRANSITION_POLICY", "permissive"),
            track_inventory=_env_flag("KITABGHAR_TRACK_INVENTORY"),
            voter_identity=os.environ.get("KITABGHAR_VOTER_IDENTITY", "remote_addr").lower(),
            session_ttl_hours=int(os.environ.get("KITABGHAR_SESSION_TTL_HOURS", "24")),
            bcrypt_rounds=int(os.environ.get("KITABGHAR_BCRYPT_ROUNDS", "12")),
            log_level=os.environ.get("KITABGHAR_LOG_LEVEL", "INFO").upper(),
            logging_config=os.environ.get("KITABGHAR_LOGGING_CONFIG", ""),
        )

    @property
    def hosted_functions_enabled(self) -> bool:
        """True when edge functions can be reached on the hosted project."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def store_dir(self) -> Path:
        return self.data_dir / "store"

    @property
    def auth_dir(self) -> Path:
        return self.data_dir / "auth"

    @property
    def audit_dir(self) -> Path:
        return self.data_dir / "audit_logs"
