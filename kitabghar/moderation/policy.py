"""Transition policy tables -- which status changes an operator may make.

A policy is a list of edges per record family.  Two presets ship:

``permissive``
    What the club site has always allowed: submitted work can be moved into
    ``approved`` or ``rejected`` from any state, and loan decisions can be
    overridden (approved <-> rejected).
``strict``
    Decisions are final: only ``pending`` can be decided, and a loan can only
    be returned after it was approved.

Neither preset lets a loan go from ``pending`` straight to ``returned``.
Custom tables can be loaded from YAML::

    name: club-rules
    version: 1.0.0
    rules:
      - family: content
        from: pending
        to: [approved, rejected]
      - family: loan
        from: approved
        to: [returned]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from kitabghar.records.models import ContentStatus, LoanStatus

ANY_STATE = "*"


class RecordFamily(Enum):
    """Which state machine a rule belongs to."""

    CONTENT = "content"  # poems and pen-down posts
    LOAN = "loan"  # book requests

    @property
    def statuses(self) -> set[str]:
        enum = ContentStatus if self is RecordFamily.CONTENT else LoanStatus
        return {s.value for s in enum}


@dataclass(frozen=True)
class TransitionRule:
    """One allowed edge; ``source`` may be ``*`` for any current state."""

    family: RecordFamily
    source: str
    target: str

    def matches(self, family: RecordFamily, current: str, target: str) -> bool:
        return (
            self.family is family
            and self.target == target
            and self.source in (ANY_STATE, current)
        )


@dataclass
class TransitionPolicy:
    """A named set of allowed status transitions."""

    name: str
    version: str = "1.0.0"
    rules: list[TransitionRule] = field(default_factory=list)

    def allows(self, family: RecordFamily, current: str, target: str) -> bool:
        return any(rule.matches(family, current, target) for rule in self.rules)

    def allowed_targets(self, family: RecordFamily, current: str) -> list[str]:
        """Return the states reachable from *current* in one step, sorted."""
        return sorted(
            {
                rule.target
                for rule in self.rules
                if rule.family is family and rule.source in (ANY_STATE, current)
            }
        )


def _rules(family: RecordFamily, edges: dict[str, list[str]]) -> list[TransitionRule]:
    return [
        TransitionRule(family=family, source=source, target=target)
        for source, targets in edges.items()
        for target in targets
    ]


PERMISSIVE = TransitionPolicy(
    name="permissive",
    rules=_rules(RecordFamily.CONTENT, {ANY_STATE: ["approved", "rejected"]})
    + _rules(
        RecordFamily.LOAN,
        {
            "pending": ["approved", "rejected"],
            "approved": ["rejected", "returned"],
            "rejected": ["approved"],
        },
    ),
)

STRICT = TransitionPolicy(
    name="strict",
    rules=_rules(RecordFamily.CONTENT, {"pending": ["approved", "rejected"]})
    + _rules(
        RecordFamily.LOAN,
        {"pending": ["approved", "rejected"], "approved": ["returned"]},
    ),
)

PRESETS: dict[str, TransitionPolicy] = {p.name: p for p in (PERMISSIVE, STRICT)}


def load_transition_policy(path: str | Path) -> TransitionPolicy:
    """Load a transition policy from a YAML file.

    Raises ``ValueError`` for unknown families or statuses.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    rules: list[TransitionRule] = []
    for rule_data in data.get("rules", []):
        family = RecordFamily(rule_data.get("family", "content"))
        source = str(rule_data.get("from", ANY_STATE))
        targets = rule_data.get("to", [])
        if isinstance(targets, str):
            targets = [targets]
        for target in targets:
            _check_status(family, source, allow_any=True)
            _check_status(family, target)
            rules.append(TransitionRule(family=family, source=source, target=target))

    return TransitionPolicy(
        name=data.get("name", Path(path).stem),
        version=str(data.get("version", "1.0.0")),
        rules=rules,
    )


def resolve_policy(name_or_path: str) -> TransitionPolicy:
    """Return a preset by name, or load the YAML file at *name_or_path*."""
    if name_or_path in PRESETS:
        return PRESETS[name_or_path]
    path = Path(name_or_path)
    if not path.exists():
        raise ValueError(
            f"Unknown transition policy '{name_or_path}' "
            f"(presets: {', '.join(sorted(PRESETS))})"
        )
    return load_transition_policy(path)


def _check_status(family: RecordFamily, status: str, allow_any: bool = False) -> None:
    if allow_any and status == ANY_STATE:
        return
    if status not in family.statuses:
        raise ValueError(f"'{status}' is not a {family.value} status")
