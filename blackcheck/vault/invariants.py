"""
Custody Invariants — consistency checks across ledger, issuer,
registry and end-game.

    Custody:
        - vault.custody.registry_agrees
    Token:
        - vault.token.one_per_deposit
        - vault.token.balances_conserved
    End-game:
        - vault.endgame.committed

Invariants are evaluated against a CustodyState captured after an
operation. ``BlackCheckVault.verify()`` returns the violations. With
``enforce_invariants`` enabled they are checked before each operation
and as the last step of its atomic unit, so a violation refuses the
request or rolls it back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

from .custody import CustodyLedger
from .endgame import EndGameController
from .errors import RegistryError
from .issuer import WrapperTokenIssuer
from .registry import RegistryAdapter
from .states import Address, AssetId, Capstone, DepositRecord, EndGamePhase


@dataclass
class InvariantViolation:
    """Record of an invariant violation."""
    invariant_id: str
    classification: Literal["REJECT", "HALT"]
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "invariant_id": self.invariant_id,
            "classification": self.classification,
            "message": self.message,
        }


@dataclass(frozen=True)
class CustodyState:
    """Point-in-time view of everything the invariants inspect."""
    vault_address: Address
    records: dict[AssetId, DepositRecord]
    token_owners: dict[AssetId, Address]
    balances: dict[Address, int]
    registry_owners: dict[AssetId, Address | None]
    qualifying_set: frozenset[AssetId]
    phase: EndGamePhase
    capstone: Capstone | None
    # Ids the registry lists under the vault; None if it cannot enumerate
    vault_holdings: frozenset[AssetId] | None = None

    @classmethod
    def capture(
        cls,
        ledger: CustodyLedger,
        issuer: WrapperTokenIssuer,
        endgame: EndGameController,
        registry: RegistryAdapter,
    ) -> CustodyState:
        records = ledger.records()
        registry_owners: dict[AssetId, Address | None] = {}
        for asset_id in set(records) | set(issuer.token_ids()):
            try:
                registry_owners[asset_id] = registry.owner_of(asset_id)
            except RegistryError:
                registry_owners[asset_id] = None
        assets_of = getattr(registry, "assets_of", None)
        vault_holdings = frozenset(assets_of(ledger.vault_address)) if assets_of else None
        return cls(
            vault_address=ledger.vault_address,
            records=records,
            token_owners={t: issuer.owner_of(t) for t in issuer.token_ids()},
            balances=issuer.balances(),
            registry_owners=registry_owners,
            qualifying_set=endgame.qualifying_set,
            phase=endgame.phase,
            capstone=endgame.capstone,
            vault_holdings=vault_holdings,
        )


@runtime_checkable
class VaultInvariant(Protocol):
    """
    Protocol for custody invariants.

    Each invariant:
    - Has a unique ID (namespaced: vault.*)
    - Has a description
    - Returns violations on failure
    """

    @property
    def id(self) -> str:
        ...

    @property
    def description(self) -> str:
        ...

    def check(self, state: CustodyState) -> list[InvariantViolation]:
        ...


class BaseInvariant(ABC):
    """Base class for custody invariants with common functionality."""

    @property
    @abstractmethod
    def id(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    def failure_mode(self) -> Literal["reject", "halt"]:
        # A broken custody invariant means assets may be at risk
        return "halt"

    @abstractmethod
    def check(self, state: CustodyState) -> list[InvariantViolation]:
        ...

    def _violation(self, message: str) -> InvariantViolation:
        return InvariantViolation(
            invariant_id=self.id,
            classification="HALT" if self.failure_mode == "halt" else "REJECT",
            message=message,
        )


# =============================================================================
# Custody Invariants
# =============================================================================

class RegistryAgreesInvariant(BaseInvariant):
    """The vault holds exactly the deposited assets in the registry."""

    @property
    def id(self) -> str:
        return "vault.custody.registry_agrees"

    @property
    def description(self) -> str:
        return "The vault holds an asset in the registry iff it has a deposit record"

    def check(self, state: CustodyState) -> list[InvariantViolation]:
        violations = []
        for asset_id in sorted(state.records):
            owner = state.registry_owners.get(asset_id)
            if owner != state.vault_address:
                violations.append(self._violation(
                    f"Asset {asset_id} is recorded as deposited but the registry "
                    f"reports owner {owner}"
                ))
        if state.vault_holdings is not None:
            for asset_id in sorted(state.vault_holdings - set(state.records)):
                violations.append(self._violation(
                    f"Asset {asset_id} is held by the vault without a deposit record"
                ))
        return violations


# =============================================================================
# Token Invariants
# =============================================================================

class OneTokenPerDepositInvariant(BaseInvariant):
    """Wrapper tokens and deposit records correspond one-to-one."""

    @property
    def id(self) -> str:
        return "vault.token.one_per_deposit"

    @property
    def description(self) -> str:
        return "Exactly one wrapper token per deposit record, held by the record's holder"

    def check(self, state: CustodyState) -> list[InvariantViolation]:
        violations = []
        for asset_id in sorted(set(state.records) - set(state.token_owners)):
            violations.append(self._violation(f"Asset {asset_id} has no wrapper token"))
        for token_id in sorted(set(state.token_owners) - set(state.records)):
            violations.append(self._violation(f"Wrapper token {token_id} has no deposit record"))
        for asset_id, record in sorted(state.records.items()):
            owner = state.token_owners.get(asset_id)
            if owner is not None and owner != record.holder:
                violations.append(self._violation(
                    f"Wrapper token {asset_id} is held by {owner} but the record "
                    f"entitles {record.holder}"
                ))
        return violations


class BalancesConservedInvariant(BaseInvariant):
    """Holder balances add up to the outstanding wrapper tokens."""

    @property
    def id(self) -> str:
        return "vault.token.balances_conserved"

    @property
    def description(self) -> str:
        return "Holder balances match outstanding wrapper tokens"

    def check(self, state: CustodyState) -> list[InvariantViolation]:
        expected = Counter(state.token_owners.values())
        if dict(expected) != state.balances:
            return [self._violation(
                f"Balances {state.balances} do not match token ownership {dict(expected)}"
            )]
        return []


# =============================================================================
# End-game Invariants
# =============================================================================

class EndGameCommittedInvariant(BaseInvariant):
    """Completion and the capstone go together, and commit the qualifying set."""

    @property
    def id(self) -> str:
        return "vault.endgame.committed"

    @property
    def description(self) -> str:
        return "Completed end-game keeps the qualifying set in custody with one capstone"

    def check(self, state: CustodyState) -> list[InvariantViolation]:
        if state.phase == EndGamePhase.PENDING:
            if state.capstone is not None:
                return [self._violation("Capstone exists while the end-game is pending")]
            return []

        violations = []
        if state.capstone is None:
            violations.append(self._violation("End-game completed without a capstone"))
        missing = sorted(state.qualifying_set - set(state.records))
        if missing:
            violations.append(self._violation(
                f"Qualifying assets {missing} left custody after completion"
            ))
        return violations


# =============================================================================
# Registry
# =============================================================================

VAULT_INVARIANTS: tuple[BaseInvariant, ...] = (
    RegistryAgreesInvariant(),
    OneTokenPerDepositInvariant(),
    BalancesConservedInvariant(),
    EndGameCommittedInvariant(),
)


def list_vault_invariants() -> list[dict[str, Any]]:
    """Describe the built-in invariants."""
    return [
        {
            "id": inv.id,
            "description": inv.description,
            "failure_mode": inv.failure_mode,
        }
        for inv in VAULT_INVARIANTS
    ]
