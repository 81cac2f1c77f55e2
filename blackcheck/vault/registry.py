"""
Registry Adapter — contract over the external originals ledger.

The vault never owns originals; it observes and relocates custody
through this adapter. Two pieces live here:

1. RegistryAdapter: the Protocol the vault requires
       owner_of(asset_id) -> address        (fails for unknown ids)
       transfer_from(from, to, asset_id, operator=...)
                                            (fails unless authorized)
2. InMemoryRegistry: an ERC-721-style ledger used for tests, the CLI
   simulation, and in-process hosting.

Any adapter failure aborts the whole enclosing vault operation.
"""

from __future__ import annotations

import threading
from typing import Iterable, Protocol, runtime_checkable

from .config import CHECKS_ORIGINALS_ADDRESS
from .errors import TransferNotAuthorizedError, UnknownAssetError
from .states import Address, AssetId


@runtime_checkable
class RegistryAdapter(Protocol):
    """
    Protocol for the originals registry.

    ``operator`` is the address executing the transfer (the vault).
    A transfer is authorized when ``operator`` is ``from_address``
    itself or has been approved by it.
    """

    @property
    def address(self) -> Address:
        """Address of the registry."""
        ...

    def owner_of(self, asset_id: AssetId) -> Address:
        """Current owner of ``asset_id``. Raises UnknownAssetError."""
        ...

    def transfer_from(
        self,
        from_address: Address,
        to_address: Address,
        asset_id: AssetId,
        *,
        operator: Address,
    ) -> None:
        """Move ``asset_id``. Raises TransferNotAuthorizedError."""
        ...


class InMemoryRegistry:
    """
    In-memory originals ledger that mirrors ERC-721 custody rules.

    This is used when:
    - Testing/development
    - Running the CLI simulation
    - Hosting the vault in-process without a chain

    Example:
        registry = InMemoryRegistry()
        registry.mint("0xAlice", 11)
        registry.set_approval_for_all("0xAlice", vault_address, True)
    """

    def __init__(self, address: Address = CHECKS_ORIGINALS_ADDRESS) -> None:
        self._address = address
        self._owners: dict[AssetId, Address] = {}
        self._approvals: dict[Address, set[Address]] = {}
        self._lock = threading.RLock()

    @property
    def address(self) -> Address:
        return self._address

    # -------------------------------------------------------------------------
    # Seeding & approvals
    # -------------------------------------------------------------------------

    def mint(self, owner: Address, *asset_ids: AssetId) -> None:
        """Create assets owned by ``owner`` (seeding only)."""
        with self._lock:
            for asset_id in asset_ids:
                if asset_id in self._owners:
                    raise ValueError(f"Asset {asset_id} already exists")
                self._owners[asset_id] = owner

    def set_approval_for_all(self, owner: Address, operator: Address, approved: bool) -> None:
        """Allow or revoke ``operator`` moving every asset of ``owner``."""
        with self._lock:
            operators = self._approvals.setdefault(owner, set())
            if approved:
                operators.add(operator)
            else:
                operators.discard(operator)

    def is_approved_for_all(self, owner: Address, operator: Address) -> bool:
        with self._lock:
            return operator in self._approvals.get(owner, set())

    # -------------------------------------------------------------------------
    # RegistryAdapter
    # -------------------------------------------------------------------------

    def owner_of(self, asset_id: AssetId) -> Address:
        with self._lock:
            try:
                return self._owners[asset_id]
            except KeyError:
                raise UnknownAssetError(asset_id) from None

    def transfer_from(
        self,
        from_address: Address,
        to_address: Address,
        asset_id: AssetId,
        *,
        operator: Address,
    ) -> None:
        with self._lock:
            owner = self.owner_of(asset_id)
            if owner != from_address:
                raise TransferNotAuthorizedError(
                    asset_id,
                    f"Asset {asset_id} is owned by {owner}, not {from_address}",
                )
            if operator != from_address and not self.is_approved_for_all(from_address, operator):
                raise TransferNotAuthorizedError(
                    asset_id,
                    f"{operator} is not approved to move assets of {from_address}",
                )
            if not to_address:
                raise TransferNotAuthorizedError(asset_id, "Transfer to empty address")
            self._owners[asset_id] = to_address

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def assets_of(self, owner: Address) -> list[AssetId]:
        """All asset ids owned by ``owner``, ascending."""
        with self._lock:
            return sorted(a for a, o in self._owners.items() if o == owner)

    def exists(self, asset_id: AssetId) -> bool:
        with self._lock:
            return asset_id in self._owners

    def owners(self, asset_ids: Iterable[AssetId] | None = None) -> dict[AssetId, Address]:
        """Snapshot of ownership, optionally restricted to ``asset_ids``."""
        with self._lock:
            if asset_ids is None:
                return dict(self._owners)
            return {a: self._owners[a] for a in asset_ids if a in self._owners}
