"""
Vault State Models — custody records and end-game phases.

The vault tracks three kinds of structural state:
    - Deposit records: asset id -> depositor / entitled holder
    - Wrapper tokens: token id (== asset id) -> holder
    - End-game: phase flag plus the one-time capstone

Assets themselves live in the external registry and are referenced
by id only; the vault never creates or destroys them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# Addresses are opaque custody identifiers (e.g. checksummed hex strings)
Address = str
AssetId = int


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EndGamePhase(Enum):
    """
    End-game lifecycle.

    PENDING is the initial state. COMPLETED is terminal: once the
    qualifying set has been fully deposited the vault never leaves it.
    """
    PENDING = "pending"
    COMPLETED = "completed"


# Valid phase transitions (from -> to)
VALID_PHASE_TRANSITIONS: dict[EndGamePhase, set[EndGamePhase]] = {
    EndGamePhase.PENDING: {EndGamePhase.COMPLETED},
    EndGamePhase.COMPLETED: set(),
}


def is_valid_phase_transition(from_phase: EndGamePhase, to_phase: EndGamePhase) -> bool:
    """Check if an end-game phase transition is valid."""
    return to_phase in VALID_PHASE_TRANSITIONS.get(from_phase, set())


@dataclass(frozen=True)
class DepositRecord:
    """
    Custody record for one deposited asset.

    Exists exactly while the vault holds the asset. ``holder`` is the
    address entitled to redeem it; it starts as the depositor and
    follows wrapper-token transfers.
    """
    asset_id: AssetId
    depositor: Address
    holder: Address
    deposited_at: datetime = field(default_factory=utcnow)

    def with_holder(self, holder: Address) -> DepositRecord:
        """Return a copy of this record entitled to ``holder``."""
        return replace(self, holder=holder)

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "depositor": self.depositor,
            "holder": self.holder,
            "deposited_at": self.deposited_at.isoformat(),
        }


@dataclass(frozen=True)
class Capstone:
    """
    The terminal "black check" minted when the end-game completes.

    ``components`` are the qualifying asset ids committed to it, in
    ascending order.
    """
    beneficiary: Address
    components: tuple[AssetId, ...]
    minted_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "beneficiary": self.beneficiary,
            "components": list(self.components),
            "minted_at": self.minted_at.isoformat(),
        }
