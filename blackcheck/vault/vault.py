"""
Black Check Vault — the single authority over custody.

This is the main entry point. Every state change goes through it.

Architecture:
    1. Request comes in (deposit / deposit_many / withdraw / transfer)
    2. The vault serializes it behind one lock and refuses re-entry
    3. CustodyLedger validates, then applies under an atomic journal
       (RegistryAdapter transfer, deposit record, WrapperTokenIssuer)
    4. EndGameController is consulted after deposits
    5. Optionally, every custody invariant is checked before the
       request and again as the last step of its atomic unit
    6. An attestation is recorded, accepted or denied

Key principle:
    > A caller never extracts an original without surrendering its
    > wrapper token, and a failed request leaves no trace in custody.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, TypeVar

from .audit import Attestation, AttestationStore
from .config import VaultConfig
from .custody import CustodyLedger, DepositReceipt
from .endgame import CapstoneMinter, EndGameController
from .errors import InvariantViolationError, NotOperatorError, ReentrantCallError
from .invariants import (
    VAULT_INVARIANTS,
    BaseInvariant,
    CustodyState,
    InvariantViolation,
)
from .issuer import WrapperTokenIssuer
from .registry import RegistryAdapter
from .states import Address, AssetId, Capstone, DepositRecord, EndGamePhase, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

SNAPSHOT_VERSION = "1.0"


class BlackCheckVault:
    """
    Pooled custody for originals, issuing one wrapper token per deposit.

    Usage:
        registry = InMemoryRegistry()
        vault = BlackCheckVault(VaultConfig(operator_address="0xOp"), registry)

        registry.mint("0xAlice", 11)
        registry.set_approval_for_all("0xAlice", vault.vault_address, True)

        vault.deposit(11, caller="0xAlice")
        vault.balance_of("0xAlice")   # 1
        vault.withdraw(11, caller="0xAlice")
    """

    def __init__(
        self,
        config: VaultConfig,
        registry: RegistryAdapter,
        capstone_minter: CapstoneMinter | None = None,
        invariants: Iterable[BaseInvariant] | None = None,
    ) -> None:
        registry_address = getattr(registry, "address", None)
        if registry_address is not None and registry_address != config.registry_address:
            raise ValueError(
                f"Registry at {registry_address} does not match configured "
                f"registry {config.registry_address}"
            )

        self.config = config
        self._registry = registry
        self._issuer = WrapperTokenIssuer()
        self._endgame = EndGameController(
            config.qualifying_set,
            beneficiary=config.beneficiary,
            minter=capstone_minter,
        )
        self._ledger = CustodyLedger(
            config,
            registry,
            self._issuer,
            self._endgame,
            verifier=self._enforce_invariants if config.enforce_invariants else None,
        )
        self._image_uri = config.image_uri
        self._invariants = list(invariants) if invariants is not None else list(VAULT_INVARIANTS)
        self._attestation_store = AttestationStore(max_entries=config.attestation_limit)
        self._lock = threading.RLock()
        self._active: str | None = None

    # =========================================================================
    # Custody operations
    # =========================================================================

    def deposit(self, asset_id: AssetId, caller: Address) -> DepositReceipt:
        """Deposit one original for a wrapper token.

        Errors: NotAssetOwnerError, AlreadyDepositedError.
        """
        return self._mediate(
            "deposit", caller, asset_id,
            lambda: self._ledger.deposit(asset_id, caller),
        )

    def deposit_many(self, asset_ids: Iterable[AssetId], caller: Address) -> DepositReceipt:
        """Deposit several originals, all-or-nothing.

        Errors: NotAssetOwnerError, AlreadyDepositedError.
        """
        ids = list(asset_ids)
        return self._mediate(
            "deposit_many", caller, ids,
            lambda: self._ledger.deposit_many(ids, caller),
        )

    def withdraw(self, asset_id: AssetId, caller: Address) -> DepositRecord:
        """Burn the wrapper token and reclaim the original.

        Errors: NotDepositorError, EndGameLockedError.
        """
        return self._mediate(
            "withdraw", caller, asset_id,
            lambda: self._ledger.withdraw(asset_id, caller),
        )

    def transfer(self, token_id: AssetId, caller: Address, to: Address) -> DepositRecord:
        """Transfer a wrapper token; the right to withdraw moves with it.

        Errors: NotTokenHolderError, TransfersDisabledError.
        """
        return self._mediate(
            "transfer", caller, token_id,
            lambda: self._ledger.transfer(token_id, caller, to),
            to=to,
        )

    # =========================================================================
    # Operator
    # =========================================================================

    @property
    def operator_address(self) -> Address:
        return self.config.operator_address

    @property
    def image_uri(self) -> str:
        return self._image_uri

    def set_image_uri(self, new_uri: str, caller: Address) -> None:
        """Update the artwork URI (operator only).

        Errors: NotOperatorError.
        """
        def apply() -> None:
            if caller != self.config.operator_address:
                raise NotOperatorError(caller, "set the image URI")
            previous, self._image_uri = self._image_uri, new_uri
            logger.info(f"Image URI changed from {previous!r} to {new_uri!r}")

        self._mediate("set_image_uri", caller, None, apply, image_uri=new_uri)

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def registry_address(self) -> Address:
        return self.config.registry_address

    @property
    def vault_address(self) -> Address:
        return self.config.vault_address

    @property
    def qualifying_set(self) -> frozenset[AssetId]:
        return self.config.qualifying_set

    def balance_of(self, holder: Address) -> int:
        """Outstanding wrapper tokens owned by ``holder``."""
        with self._lock:
            return self._issuer.balance_of(holder)

    def owner_of(self, token_id: AssetId) -> Address | None:
        """Current holder of a wrapper token, or None."""
        with self._lock:
            return self._issuer.owner_of(token_id)

    def tokens_of(self, holder: Address) -> list[AssetId]:
        with self._lock:
            return self._issuer.tokens_of(holder)

    @property
    def total_supply(self) -> int:
        with self._lock:
            return self._issuer.total_supply

    def deposit_record(self, asset_id: AssetId) -> DepositRecord | None:
        # Records are frozen, so handing one out is safe
        with self._lock:
            return self._ledger.record(asset_id)

    def depositor_of(self, asset_id: AssetId) -> Address | None:
        record = self.deposit_record(asset_id)
        return record.depositor if record else None

    def deposited_assets(self) -> list[AssetId]:
        with self._lock:
            return self._ledger.deposited_ids()

    @property
    def end_game_completed(self) -> bool:
        with self._lock:
            return self._endgame.completed

    @property
    def end_game_phase(self) -> EndGamePhase:
        with self._lock:
            return self._endgame.phase

    @property
    def capstone(self) -> Capstone | None:
        with self._lock:
            return self._endgame.capstone

    def missing_for_end_game(self) -> list[AssetId]:
        """Qualifying ids not yet in custody."""
        with self._lock:
            return sorted(self._endgame.missing(self._ledger.deposited_ids()))

    @property
    def attestation_store(self) -> AttestationStore:
        return self._attestation_store

    # =========================================================================
    # Consistency
    # =========================================================================

    def verify(self) -> list[InvariantViolation]:
        """Run every custody invariant and return the violations."""
        with self._lock:
            state = CustodyState.capture(self._ledger, self._issuer, self._endgame, self._registry)
            violations: list[InvariantViolation] = []
            for invariant in self._invariants:
                violations.extend(invariant.check(state))
            return violations

    def list_invariants(self) -> list[dict[str, Any]]:
        return [
            {"id": inv.id, "description": inv.description, "failure_mode": inv.failure_mode}
            for inv in self._invariants
        ]

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe view of the vault for debugging and reporting."""
        with self._lock:
            capstone = self._endgame.capstone
            return {
                "version": SNAPSHOT_VERSION,
                "timestamp": utcnow().isoformat(),
                "config": self.config.to_dict(),
                "image_uri": self._image_uri,
                "deposits": [
                    record.to_dict()
                    for _, record in sorted(self._ledger.records().items())
                ],
                "balances": dict(sorted(self._issuer.balances().items())),
                "total_supply": self._issuer.total_supply,
                "end_game": {
                    "phase": self._endgame.phase.value,
                    "missing": sorted(self._endgame.missing(self._ledger.deposited_ids())),
                    "capstone": capstone.to_dict() if capstone else None,
                },
                "attestation_count": self._attestation_store.count(),
            }

    # =========================================================================
    # Internals
    # =========================================================================

    def _mediate(
        self,
        action: str,
        actor: Address,
        target: Any,
        operation: Callable[[], T],
        **metadata: Any,
    ) -> T:
        """Run one operation serialized, attested and (optionally) verified.

        The lock is re-entrant so views stay callable from hooks, but a
        second operation on the same thread is refused.
        """
        with self._lock:
            if self._active is not None:
                error = ReentrantCallError(action, actor, active=self._active)
                self._deny(actor, action, target, error, metadata)
                raise error

            self._active = action
            try:
                if self.config.enforce_invariants:
                    # Refuse to build on a state that is already inconsistent
                    self._enforce_invariants(action)
                result = operation()
            except Exception as e:
                self._deny(actor, action, target, e, metadata)
                raise
            finally:
                self._active = None

            self._attest(actor, action, target, "accepted", f"{action} accepted", None, metadata)
            return result

    def _deny(
        self,
        actor: Address,
        action: str,
        target: Any,
        error: Exception,
        metadata: dict[str, Any],
    ) -> None:
        kind = getattr(error, "kind", type(error).__name__)
        self._attest(actor, action, target, "denied", str(error), kind, metadata)
        logger.info(f"Denied {action} on {target} by {actor}: [{kind}] {error}")

    def _attest(
        self,
        actor: Address,
        action: str,
        target: Any,
        decision: str,
        reason: str,
        error_kind: str | None,
        metadata: dict[str, Any],
    ) -> None:
        self._attestation_store.record(Attestation(
            actor=actor,
            action=action,
            target=target,
            decision=decision,
            reason=reason,
            error_kind=error_kind,
            metadata=dict(metadata),
        ))

    def _enforce_invariants(self, action: str) -> None:
        violations = self.verify()
        if violations:
            first = violations[0]
            logger.error(f"Invariant violated during {action}: {first.message}")
            raise InvariantViolationError(
                first.invariant_id,
                first.message,
                classification=first.classification,
                details={"violations": [v.to_dict() for v in violations]},
            )

    def __repr__(self) -> str:
        return (
            f"BlackCheckVault(vault={self.vault_address!r}, "
            f"deposits={len(self._ledger)}, phase={self._endgame.phase.value!r})"
        )
