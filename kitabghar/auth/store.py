"""File-based JSON storage for operator accounts.

Operators, sessions and API keys each live in one JSON array under
``~/.kitabghar/auth/``.  Passwords are kept as bcrypt hashes and API keys
as plain SHA-256 digests; raw secrets are handed back to the caller once
and never written.
"""

from __future__ import annotations

import hashlib
import json
import logging
import secrets
import uuid
from dataclasses import asdict, fields
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generic, Iterable, Optional, TypeVar

import bcrypt

from kitabghar.auth.models import APIKey, Operator, Role, Session

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12
API_KEY_PREFIX = "kg_"

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _expired(expires_at: str, at: Optional[datetime] = None) -> bool:
    return bool(expires_at) and expires_at < (at or _now()).isoformat()


def digest_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    # bcrypt only looks at the first 72 bytes
    hashed = bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


class _JsonTable(Generic[T]):
    """One dataclass type persisted as a JSON array of objects.

    Unknown keys are ignored and an unreadable file reads as empty.
    """

    def __init__(
        self, path: Path, row_type: type[T], factory: Optional[Callable[..., T]] = None
    ) -> None:
        self.path = path
        self._factory = factory or row_type
        self._names = {f.name for f in fields(row_type)}

    def load(self) -> list[T]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable %s: %s", self.path.name, exc)
            return []
        if not isinstance(raw, list):
            return []
        return [
            self._factory(**{k: v for k, v in item.items() if k in self._names})
            for item in raw
            if isinstance(item, dict)
        ]

    def save(self, rows: Iterable[T]) -> None:
        payload = [asdict(row) for row in rows]
        self.path.write_text(json.dumps(payload, indent=2, default=str))

    def find(self, match: Callable[[T], bool]) -> Optional[T]:
        return next((row for row in self.load() if match(row)), None)

    def append(self, row: T) -> T:
        rows = self.load()
        rows.append(row)
        self.save(rows)
        return row

    def remove(self, match: Callable[[T], bool]) -> int:
        rows = self.load()
        kept = [row for row in rows if not match(row)]
        if len(kept) != len(rows):
            self.save(kept)
        return len(rows) - len(kept)


def _load_operator(**data) -> Operator:
    # Unknown roles in the file degrade to viewer rather than failing the load.
    if data.get("role") not in {r.value for r in Role}:
        data["role"] = Role.viewer
    return Operator(**data)


class OperatorStore:
    """Operators, their sessions and their API keys.

    Methods are synchronous and do blocking file I/O; the web layer calls
    them directly from its handlers, which is fine for a handful of operators.

    Files under the base directory:
    - ``operators.json``
    - ``api_keys.json``
    - ``sessions.json``
    """

    def __init__(
        self,
        base_dir: Optional[str | Path] = None,
        session_ttl_hours: int = 24,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ) -> None:
        base = Path(base_dir) if base_dir is not None else Path.home() / ".kitabghar" / "auth"
        base.mkdir(parents=True, exist_ok=True)
        self._operators: _JsonTable[Operator] = _JsonTable(
            base / "operators.json", Operator, factory=_load_operator
        )
        self._keys: _JsonTable[APIKey] = _JsonTable(base / "api_keys.json", APIKey)
        self._sessions: _JsonTable[Session] = _JsonTable(base / "sessions.json", Session)
        self.session_ttl_hours = session_ttl_hours
        self.bcrypt_rounds = bcrypt_rounds

    # --- Operators ---

    def create_operator(
        self,
        username: str,
        password: str,
        role: Role = Role.moderator,
        display_name: str = "",
        email: str = "",
    ) -> Operator:
        """Persist a new operator. Raises ``ValueError`` on a taken username."""
        if not username or not password:
            raise ValueError("username and password are required")
        if self.get_operator_by_username(username) is not None:
            raise ValueError(f"Operator '{username}' already exists")

        operator = self._operators.append(
            Operator(
                id=str(uuid.uuid4()),
                username=username,
                display_name=display_name or username,
                email=email,
                role=role,
                password_hash=hash_password(password, self.bcrypt_rounds),
            )
        )
        logger.info("Created operator %s (%s)", operator.username, operator.role.value)
        return operator

    def get_operator(self, operator_id: str) -> Optional[Operator]:
        return self._operators.find(lambda o: o.id == operator_id)

    def get_operator_by_username(self, username: str) -> Optional[Operator]:
        wanted = username.lower()
        return self._operators.find(lambda o: o.username.lower() == wanted)

    def list_operators(self) -> list[Operator]:
        return self._operators.load()

    def authenticate(self, username: str, password: str) -> Optional[Operator]:
        """Return the operator if *password* matches, else None.

        A successful check stamps ``last_login``.
        """
        operators = self._operators.load()
        wanted = username.lower()
        operator = next((o for o in operators if o.username.lower() == wanted), None)
        if operator is None or not operator.password_hash:
            return None
        if not verify_password(password, operator.password_hash):
            logger.info("Failed sign-in for %s", operator.username)
            return None
        operator.last_login = _now().isoformat()
        self._operators.save(operators)
        return operator

    # --- API keys ---

    def create_api_key(
        self, operator_id: str, name: str, expires_in_days: int = 90
    ) -> tuple[APIKey, str]:
        """Issue a key for *operator_id*. Returns ``(APIKey, raw_key)``."""
        raw_key = API_KEY_PREFIX + secrets.token_urlsafe(32)
        issued = _now()
        api_key = self._keys.append(
            APIKey(
                id=str(uuid.uuid4()),
                operator_id=operator_id,
                name=name,
                key_hash=digest_key(raw_key),
                prefix=raw_key[:8],
                created_at=issued.isoformat(),
                expires_at=(issued + timedelta(days=expires_in_days)).isoformat(),
            )
        )
        return api_key, raw_key

    def list_api_keys(self, operator_id: str) -> list[APIKey]:
        return [k for k in self._keys.load() if k.operator_id == operator_id]

    def delete_api_key(self, key_id: str, operator_id: Optional[str] = None) -> bool:
        """Revoke a key, optionally only when *operator_id* owns it."""
        return bool(
            self._keys.remove(
                lambda k: k.id == key_id and operator_id in (None, k.operator_id)
            )
        )

    def validate_api_key(self, raw_key: str) -> Optional[Operator]:
        keys = self._keys.load()
        wanted = digest_key(raw_key)
        match = next((k for k in keys if k.key_hash == wanted), None)
        if match is None:
            return None
        now = _now()
        if _expired(match.expires_at, now):
            return None
        match.last_used = now.isoformat()
        self._keys.save(keys)
        return self.get_operator(match.operator_id)

    # --- Sessions ---

    def create_session(self, operator_id: str, expires_in_hours: Optional[int] = None) -> Session:
        ttl = self.session_ttl_hours if expires_in_hours is None else expires_in_hours
        started = _now()
        return self._sessions.append(
            Session(
                id=str(uuid.uuid4()),
                operator_id=operator_id,
                token=secrets.token_urlsafe(48),
                created_at=started.isoformat(),
                expires_at=(started + timedelta(hours=ttl)).isoformat(),
            )
        )

    def validate_session(self, token: str) -> Optional[Operator]:
        """Resolve a bearer token; expired sessions are dropped on sight."""
        session = self._sessions.find(lambda s: s.token == token)
        if session is None:
            return None
        if _expired(session.expires_at):
            self.delete_session(token)
            return None
        return self.get_operator(session.operator_id)

    def delete_session(self, token: str) -> bool:
        return bool(self._sessions.remove(lambda s: s.token == token))
