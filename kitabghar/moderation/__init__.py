"""Moderation -- status workflows for submitted work and loan requests.

- ``policy``: allowed-transition tables (presets and YAML loader)
- ``workflow``: the engine operators drive
- ``inventory``: optional copy-count hook for loans
"""

from kitabghar.moderation.models import LoanTransitionResult, NotificationOutcome
from kitabghar.moderation.policy import PERMISSIVE, STRICT, TransitionPolicy, resolve_policy
from kitabghar.moderation.workflow import ModerationWorkflow

__all__ = [
    "LoanTransitionResult",
    "ModerationWorkflow",
    "NotificationOutcome",
    "PERMISSIVE",
    "STRICT",
    "TransitionPolicy",
    "resolve_policy",
]
