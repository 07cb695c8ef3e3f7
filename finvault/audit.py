"""
Append-only audit log of security-relevant events.
"""

import itertools
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from finvault.models import AuditLogEntry, Severity

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog:
    """In-memory audit trail. Entries are never mutated or removed."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._entries: List[AuditLogEntry] = []
        self._sequence = itertools.count(1)
        self._lock = threading.Lock()

    def append(
        self,
        actor_id: str,
        action: str,
        details: str,
        severity: Severity = Severity.INFO,
        acting_as_id: Optional[str] = None,
        target_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> AuditLogEntry:
        """Store a new entry with a fresh id and return it."""
        timestamp = timestamp or self._clock()
        if timestamp.utcoffset() is None:
            raise ValueError("Audit timestamps must be timezone-aware.")
        with self._lock:
            entry = AuditLogEntry(
                id=uuid.uuid4().hex,
                actor_id=actor_id,
                action=action,
                details=details,
                timestamp=timestamp,
                severity=Severity(severity),
                acting_as_id=acting_as_id,
                target_id=target_id,
                sequence=next(self._sequence),
            )
            self._entries.append(entry)

        log = logger.warning if entry.severity is Severity.CRITICAL else logger.info
        log("[audit] %s %s: %s", entry.severity.value, entry.action, entry.details)
        return entry

    def list(self) -> List[AuditLogEntry]:
        """Newest first; equal timestamps fall back to insertion order, later first."""
        with self._lock:
            entries = list(self._entries)
        return sorted(entries, key=lambda e: (e.timestamp, e.sequence), reverse=True)

    def entries_for(self, identity_id: str) -> List[AuditLogEntry]:
        """Entries where the identity acted, was impersonated or was targeted."""
        return [
            e for e in self.list()
            if identity_id in (e.actor_id, e.acting_as_id, e.target_id)
        ]

    def __len__(self) -> int:
        return len(self._entries)
