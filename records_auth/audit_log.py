"""
Append-only audit trail of security events.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, List, MutableMapping, Optional

from .config import SecuritySettings
from .errors import InvalidArgument, PersistenceFailure
from .models import AuditEvent, EventInput, RiskLevel
from .storage import read_collection, write_collection
from .utils import generate_id, same_principal, utcnow

logger = logging.getLogger(__name__)


class AuditLog:
    """
    In-memory audit log persisted as a single JSON array.

    Recording never fails: if the persistence write is rejected the event
    stays in memory and the caller is not told. Every ``record`` rewrites
    the whole collection, so batch callers should expect that cost.
    """

    def __init__(
        self,
        store: MutableMapping,
        settings: Optional[SecuritySettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            store: Key-value persistence surface (dict-like interface)
            settings: Collection key, retention cap and request defaults
            clock: Source of aware UTC timestamps
        """
        self.store = store
        self.settings = settings or SecuritySettings()
        self.clock = clock
        self._events: List[AuditEvent] = []
        self._lock = threading.Lock()

    def load(self) -> int:
        """Replace the in-memory log with the persisted one. Returns the event count."""
        events = []
        for raw in read_collection(self.store, self.settings.audit_log_key):
            try:
                events.append(AuditEvent.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed audit event {raw.get('id')!r}: {e}")
        with self._lock:
            self._events = self._apply_retention(events)
            return len(self._events)

    def record(self, event: EventInput) -> AuditEvent:
        """
        Stamp, append and persist an event.

        Returns:
            The stored event with its assigned id and timestamp

        Raises:
            InvalidArgument: if the event carries an unknown risk level
        """
        try:
            risk_level = RiskLevel(event.risk_level)
        except ValueError:
            raise InvalidArgument(f"unknown risk level: {event.risk_level!r}") from None
        context = event.context
        stored = AuditEvent(
            id=generate_id("audit"),
            timestamp=self.clock(),
            action=event.action,
            principal=event.principal,
            ip_address=context.ip_address if context else self.settings.default_ip_address,
            user_agent=context.user_agent if context else self.settings.default_user_agent,
            success=event.success,
            risk_level=risk_level,
            resource_id=event.resource_id,
            details=str(event.details) if event.details is not None else None,
        )

        with self._lock:
            self._events.append(stored)
            self._events = self._apply_retention(self._events)
            self._persist()

        if stored.risk_level is RiskLevel.HIGH:
            logger.warning(
                f"High-risk security event: {stored.action} by {stored.principal} "
                f"(success={stored.success}, id={stored.id})"
            )
        return stored

    def query(self, principal: Optional[str] = None, limit: Optional[int] = None) -> List[AuditEvent]:
        """
        Most recent events first.

        Args:
            principal: Only events for this principal (case-insensitive)
            limit: Maximum number of events; defaults to the configured limit

        Raises:
            InvalidArgument: if ``limit`` is not a positive integer
        """
        if limit is None:
            limit = self.settings.default_query_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise InvalidArgument(f"limit must be a positive integer, got {limit!r}")

        with self._lock:
            events = list(self._events)

        if principal is not None:
            events = [e for e in events if same_principal(e.principal, principal)]
        # Newest insertion first among events stamped in the same instant
        events.reverse()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def flush(self) -> bool:
        """Persist the current log. Returns False if the write failed."""
        with self._lock:
            return self._persist()

    def _apply_retention(self, events: List[AuditEvent]) -> List[AuditEvent]:
        cap = self.settings.audit_max_events
        if cap is not None and len(events) > cap:
            return events[-cap:]
        return events

    def _persist(self) -> bool:
        # Caller holds the lock
        try:
            write_collection(
                self.store,
                self.settings.audit_log_key,
                [e.to_dict() for e in self._events],
            )
        except PersistenceFailure as e:
            logger.warning(f"Audit log kept in memory only: {e}")
            return False
        return True
