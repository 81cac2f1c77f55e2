"""
Custody Ledger — deposit, withdraw and wrapper-token transfer.

The ledger is the only writer of deposit records and the only caller
of the WrapperTokenIssuer. Every operation follows the same two
phases:

    1. Validate: every precondition is checked before any mutation,
       so a rejected request has no effect at all.
    2. Apply: sub-steps run inside an atomic journal; a failure in
       any of them (e.g. the registry refusing a transfer) undoes the
       steps already applied and re-raises.

Batch deposits validate every element before applying the first one,
which makes ``deposit_many`` all-or-nothing without relying on the
host's transaction semantics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable

from .config import VaultConfig, normalize_ids
from .endgame import EndGameController
from .errors import (
    AlreadyDepositedError,
    EndGameLockedError,
    NotAssetOwnerError,
    NotDepositorError,
    NotTokenHolderError,
    TransfersDisabledError,
)
from .issuer import WrapperTokenIssuer
from .journal import Journal, atomic
from .registry import RegistryAdapter
from .states import Address, AssetId, Capstone, DepositRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositReceipt:
    """Outcome of an accepted deposit or batch deposit."""
    depositor: Address
    asset_ids: tuple[AssetId, ...]
    capstone: Capstone | None = None

    @property
    def end_game_triggered(self) -> bool:
        return self.capstone is not None


class CustodyLedger:
    """
    Tracks which originals the vault holds and who may redeem them.

    Invariant: a record exists for an asset iff the vault is its
    custodian in the registry iff exactly one wrapper token with the
    same id is outstanding.
    """

    def __init__(
        self,
        config: VaultConfig,
        registry: RegistryAdapter,
        issuer: WrapperTokenIssuer,
        endgame: EndGameController,
        verifier: Callable[[str], None] | None = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._issuer = issuer
        self._endgame = endgame
        self._verifier = verifier
        self._records: dict[AssetId, DepositRecord] = {}

    @property
    def vault_address(self) -> Address:
        return self._config.vault_address

    # =========================================================================
    # Deposits
    # =========================================================================

    def deposit(self, asset_id: AssetId, caller: Address) -> DepositReceipt:
        """Deposit one original and mint its wrapper token to ``caller``.

        Raises:
            AlreadyDepositedError: The asset is already in custody.
            NotAssetOwnerError: ``caller`` does not own the asset.
        """
        return self._deposit(normalize_ids([asset_id]), caller, operation="deposit")

    def deposit_many(self, asset_ids: Iterable[AssetId], caller: Address) -> DepositReceipt:
        """Deposit several originals, all-or-nothing.

        The batch fails with the error of its first failing element,
        and custody and token state are left exactly as before.
        """
        return self._deposit(normalize_ids(asset_ids), caller, operation="deposit_many")

    def _deposit(
        self,
        asset_ids: list[AssetId],
        caller: Address,
        operation: str,
    ) -> DepositReceipt:
        self._validate_deposits(asset_ids, caller)

        if not asset_ids:
            return DepositReceipt(depositor=caller, asset_ids=())

        with atomic(operation) as journal:
            for asset_id in asset_ids:
                self._apply_deposit(asset_id, caller, journal)
            # The predicate only grows under deposits, so checking once
            # at the end of the unit fires exactly when per-element
            # checks would. A minter failure unwinds the whole unit.
            capstone = self._endgame.evaluate(self._records.keys())
            if capstone is not None:
                journal.record("endgame.complete", None, undo=self._endgame.reopen)
            self._check(journal)

        logger.info(f"{caller} deposited {len(asset_ids)} original(s): {asset_ids}")
        return DepositReceipt(
            depositor=caller,
            asset_ids=tuple(asset_ids),
            capstone=capstone,
        )

    def _validate_deposits(self, asset_ids: list[AssetId], caller: Address) -> None:
        seen: set[AssetId] = set()
        for asset_id in asset_ids:
            # Duplicate check comes first: a deposited asset is owned by
            # the vault, which would otherwise read as NotAssetOwner.
            if asset_id in self._records or asset_id in seen:
                raise AlreadyDepositedError(asset_id, details={"caller": caller})
            owner = self._registry.owner_of(asset_id)
            if owner != caller or caller == self.vault_address:
                raise NotAssetOwnerError(asset_id, caller, current_owner=owner)
            seen.add(asset_id)

    def _apply_deposit(self, asset_id: AssetId, caller: Address, journal: Journal) -> None:
        vault = self.vault_address

        self._registry.transfer_from(caller, vault, asset_id, operator=vault)
        journal.record(
            "registry.transfer",
            asset_id,
            undo=partial(self._registry.transfer_from, vault, caller, asset_id, operator=vault),
            from_address=caller,
            to_address=vault,
        )

        self._records[asset_id] = DepositRecord(
            asset_id=asset_id,
            depositor=caller,
            holder=caller,
        )
        journal.record("record.create", asset_id, undo=partial(self._records.pop, asset_id))

        self._issuer.mint(asset_id, caller)
        journal.record("token.mint", asset_id, undo=partial(self._issuer.burn, asset_id, caller))

    # =========================================================================
    # Withdrawals
    # =========================================================================

    def withdraw(self, asset_id: AssetId, caller: Address) -> DepositRecord:
        """Burn the wrapper token and return the original to ``caller``.

        Returns the deleted deposit record.

        Raises:
            NotDepositorError: No deposit, or ``caller`` is not its holder.
            EndGameLockedError: The asset is committed to the capstone.
        """
        record = self._records.get(asset_id)
        if record is None:
            raise NotDepositorError(asset_id, caller)
        if record.holder != caller:
            raise NotDepositorError(asset_id, caller, holder=record.holder)
        if self._endgame.is_locked(asset_id):
            raise EndGameLockedError(asset_id, details={"caller": caller})

        vault = self.vault_address
        with atomic("withdraw") as journal:
            self._issuer.burn(asset_id, owner=caller)
            journal.record("token.burn", asset_id, undo=partial(self._issuer.mint, asset_id, caller))

            del self._records[asset_id]
            journal.record(
                "record.delete",
                asset_id,
                undo=partial(self._records.__setitem__, asset_id, record),
            )

            self._registry.transfer_from(vault, caller, asset_id, operator=vault)
            journal.record(
                "registry.transfer",
                asset_id,
                undo=partial(self._registry.transfer_from, caller, vault, asset_id, operator=caller),
                from_address=vault,
                to_address=caller,
            )
            self._check(journal)

        logger.info(f"{caller} withdrew original {asset_id}")
        return record

    # =========================================================================
    # Wrapper-token transfers
    # =========================================================================

    def transfer(self, token_id: AssetId, caller: Address, to: Address) -> DepositRecord:
        """Move a wrapper token, and with it the right to withdraw.

        Returns the updated deposit record.
        """
        if not self._config.transferable_tokens:
            raise TransfersDisabledError(token_id, details={"caller": caller})

        record = self._records.get(token_id)
        holder = self._issuer.owner_of(token_id)
        if record is None or holder != caller:
            raise NotTokenHolderError(token_id, caller, holder=holder)
        if not to:
            raise ValueError("Transfer recipient must not be empty")
        if to == self.vault_address:
            raise ValueError("Wrapper tokens cannot be transferred to the vault")
        if to == caller:
            return record

        updated = record.with_holder(to)
        with atomic("transfer") as journal:
            self._issuer.move(token_id, caller, to)
            journal.record(
                "token.move",
                token_id,
                undo=partial(self._issuer.move, token_id, to, caller),
            )
            self._records[token_id] = updated
            journal.record(
                "record.update",
                token_id,
                undo=partial(self._records.__setitem__, token_id, record),
            )
            self._check(journal)

        logger.info(f"{caller} transferred wrapper token {token_id} to {to}")
        return updated

    def _check(self, journal: Journal) -> None:
        # Runs as the last step of the unit, so a raise unwinds it
        if self._verifier is not None:
            self._verifier(journal.operation)

    # =========================================================================
    # Views
    # =========================================================================

    def record(self, asset_id: AssetId) -> DepositRecord | None:
        return self._records.get(asset_id)

    def records(self) -> dict[AssetId, DepositRecord]:
        return dict(self._records)

    def deposited_ids(self) -> list[AssetId]:
        return sorted(self._records)

    def is_deposited(self, asset_id: AssetId) -> bool:
        return asset_id in self._records

    def __len__(self) -> int:
        return len(self._records)
