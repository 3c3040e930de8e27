"""Audit trail of operator actions.

Every moderation transition, delete and catalog change is appended as one
JSON line to a daily file under ``~/.kitabghar/audit_logs/``.  Refused and
failed attempts are recorded too, with ``success=False``.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass
class AuditEntry:
    """One operator action against one record."""

    id: str
    timestamp: str
    operator: str
    action: str  # "transition" | "create" | "update" | "delete"
    table: str
    record_id: str
    details: dict[str, Any] = field(default_factory=dict)
    success: bool = True


class AuditLogger:
    """Newline-delimited JSON audit log, one file per UTC day."""

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.home() / ".kitabghar" / "audit_logs"
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _day_file(self, when: datetime) -> Path:
        return self._base_dir / f"{when:%Y-%m-%d}.jsonl"

    def _entries(self) -> Iterator[AuditEntry]:
        for path in sorted(self._base_dir.glob("*.jsonl")):
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
            except OSError as exc:
                logger.warning("Skipping unreadable audit file %s: %s", path, exc)
                continue
            for lineno, line in enumerate(lines, 1):
                if not line.strip():
                    continue
                try:
                    yield AuditEntry(**json.loads(line))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Skipping malformed audit line %s:%d", path.name, lineno)

    def record(
        self,
        operator: str,
        action: str,
        table: str,
        record_id: str,
        details: Optional[dict[str, Any]] = None,
        success: bool = True,
    ) -> AuditEntry:
        """Append one action to today's file and return it."""
        now = datetime.now(timezone.utc)
        entry = AuditEntry(
            id=uuid.uuid4().hex[:16],
            timestamp=now.isoformat(),
            operator=operator,
            action=action,
            table=table,
            record_id=record_id,
            details=dict(details or {}),
            success=success,
        )
        with self._day_file(now).open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(asdict(entry), default=str) + "\n")
        return entry

    def query(
        self,
        *,
        operator: Optional[str] = None,
        action: Optional[str] = None,
        table: Optional[str] = None,
        record_id: Optional[str] = None,
        limit: int = 200,
    ) -> list[AuditEntry]:
        """Return matching entries, newest first."""
        wanted = {
            "operator": operator,
            "action": action,
            "table": table,
            "record_id": record_id,
        }
        wanted = {k: v for k, v in wanted.items() if v}
        matches = [
            e for e in self._entries()
            if all(getattr(e, k) == v for k, v in wanted.items())
        ]
        matches.sort(key=lambda e: e.timestamp, reverse=True)
        return matches[:limit]

    def history(self, table: str, record_id: str) -> list[AuditEntry]:
        """Everything that was done to one record, newest first."""
        return self.query(table=table, record_id=record_id, limit=10_000)
