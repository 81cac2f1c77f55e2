"""
Vault audit trail.

Every request to the vault produces an attestation, whether it was
accepted or denied. Attestations are immutable once recorded.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from .states import utcnow


@dataclass(frozen=True)
class Attestation:
    """Record of a vault decision."""
    actor: str
    action: str
    target: Any
    decision: str  # "accepted" or "denied"
    reason: str
    error_kind: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def accepted(self) -> bool:
        return self.decision == "accepted"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "actor": self.actor,
            "action": self.action,
            "target": self.target,
            "decision": self.decision,
            "reason": self.reason,
            "error_kind": self.error_kind,
            "metadata": self.metadata,
        }


class AttestationStore:
    """
    Storage for attestations.

    Attestations are:
    - Immutable once stored
    - Queryable by various criteria
    - Bounded by ``max_entries`` if given (oldest dropped first)
    """

    def __init__(self, max_entries: int | None = None) -> None:
        self._attestations: deque[Attestation] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int | None:
        return self._attestations.maxlen

    def record(self, attestation: Attestation) -> None:
        """Record an attestation (immutable)."""
        with self._lock:
            self._attestations.append(attestation)

    def query(
        self,
        actor: str | None = None,
        action: str | None = None,
        target: Any = None,
        since: datetime | None = None,
        decision: str | None = None,
    ) -> list[Attestation]:
        """Query attestations by criteria."""
        results = self.all()

        if actor:
            results = [a for a in results if a.actor == actor]
        if action:
            results = [a for a in results if a.action == action]
        if target is not None:
            results = [a for a in results if a.target == target]
        if since:
            results = [a for a in results if a.timestamp >= since]
        if decision:
            results = [a for a in results if a.decision == decision]

        return results

    def all(self) -> list[Attestation]:
        """Get all attestations."""
        with self._lock:
            return list(self._attestations)

    def count(self) -> int:
        """Get attestation count."""
        with self._lock:
            return len(self._attestations)
