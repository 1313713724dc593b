"""
Security posture scoring.

The score is an advisory heuristic over recent audit history and
permission sprawl. It is not a security guarantee.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from .audit_log import AuditLog
from .config import SecuritySettings
from .errors import InvalidArgument
from .models import RiskLevel, ScoreBand
from .permissions import PermissionStore
from .utils import utcnow

MAX_SCORE = 100
MIN_SCORE = 0


class SecurityScorer:
    """
    Compute a score in [0, 100] for a principal.

    Starting from 100:
    - minus 2 for every failed event among the 100 most recent
    - minus 5 for every high-risk event among them (a failed high-risk
      event pays both penalties)
    - minus 3 for every effective permission beyond the tenth
    - plus a flat 5 if any of those events happened in the last 7 days
    The weights come from ``SecuritySettings``.
    """

    def __init__(
        self,
        audit_log: AuditLog,
        permission_store: PermissionStore,
        settings: Optional[SecuritySettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.audit_log = audit_log
        self.permission_store = permission_store
        self.settings = settings or SecuritySettings()
        self.clock = clock

    def score(self, principal: str) -> int:
        s = self.settings
        now = self.clock()
        events = self.audit_log.query(principal, s.score_history_limit)
        permissions = self.permission_store.effective_involving(principal, now)

        score = MAX_SCORE
        score -= s.failed_event_penalty * sum(1 for e in events if not e.success)
        score -= s.high_risk_penalty * sum(1 for e in events if e.risk_level is RiskLevel.HIGH)

        excess = len(permissions) - s.max_permissions_before_penalty
        if excess > 0:
            score -= s.permission_penalty * excess

        window = timedelta(days=s.score_recent_days)
        if any(now - e.timestamp < window for e in events):
            score += s.recent_activity_bonus

        return max(MIN_SCORE, min(MAX_SCORE, score))


def describe_score(score: int) -> ScoreBand:
    """
    Map a score to the label and description shown to the user.

    Raises:
        InvalidArgument: if ``score`` is outside [0, 100]
    """
    if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
        raise InvalidArgument(f"score must be an integer in [0, 100], got {score!r}")
    if score >= 90:
        return ScoreBand("Secure", "Excellent security posture")
    if score >= 70:
        return ScoreBand("Moderate", "Good security with room for improvement")
    if score >= 50:
        return ScoreBand("At Risk", "Moderate security - action recommended")
    return ScoreBand("At Risk", "Poor security - immediate action required")
