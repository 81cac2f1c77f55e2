"""
Wrapper Token Issuer — one token per deposited original.

Token ids equal asset ids, so no id allocation is needed and the
issuer stays trivially reconcilable with the custody ledger.

The issuer is driven only by the CustodyLedger, always in the same
atomic unit as the matching deposit record.
"""

from __future__ import annotations

from collections import Counter

from .errors import TokenStateError
from .states import Address, AssetId


class WrapperTokenIssuer:
    """
    Per-id ownership tracking with holder balances.

    Example:
        issuer = WrapperTokenIssuer()
        issuer.mint(11, "0xAlice")
        issuer.balance_of("0xAlice")  # 1
        issuer.burn(11, owner="0xAlice")
    """

    def __init__(self) -> None:
        self._owners: dict[AssetId, Address] = {}
        self._balances: Counter[Address] = Counter()

    def mint(self, token_id: AssetId, to: Address) -> None:
        """Mint ``token_id`` to ``to``. The id must not be outstanding."""
        if token_id in self._owners:
            raise TokenStateError(token_id, f"Wrapper token {token_id} already minted")
        if not to:
            raise TokenStateError(token_id, "Cannot mint to an empty address")
        self._owners[token_id] = to
        self._balances[to] += 1

    def burn(self, token_id: AssetId, owner: Address | None = None) -> Address:
        """Burn ``token_id`` and return its last owner.

        If ``owner`` is given it must match the current owner.
        """
        current = self._owners.get(token_id)
        if current is None:
            raise TokenStateError(token_id, f"Wrapper token {token_id} is not outstanding")
        if owner is not None and owner != current:
            raise TokenStateError(
                token_id,
                f"Wrapper token {token_id} is owned by {current}, not {owner}",
            )
        del self._owners[token_id]
        self._debit(current)
        return current

    def move(self, token_id: AssetId, from_address: Address, to_address: Address) -> None:
        """Reassign ``token_id`` between holders."""
        current = self._owners.get(token_id)
        if current is None or current != from_address:
            raise TokenStateError(
                token_id,
                f"Wrapper token {token_id} is not owned by {from_address}",
            )
        if not to_address:
            raise TokenStateError(token_id, "Cannot transfer to an empty address")
        self._owners[token_id] = to_address
        self._debit(from_address)
        self._balances[to_address] += 1

    def _debit(self, holder: Address) -> None:
        self._balances[holder] -= 1
        if self._balances[holder] <= 0:
            del self._balances[holder]

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def owner_of(self, token_id: AssetId) -> Address | None:
        return self._owners.get(token_id)

    def exists(self, token_id: AssetId) -> bool:
        return token_id in self._owners

    def balance_of(self, holder: Address) -> int:
        return self._balances.get(holder, 0)

    def tokens_of(self, holder: Address) -> list[AssetId]:
        return sorted(t for t, o in self._owners.items() if o == holder)

    def token_ids(self) -> list[AssetId]:
        return sorted(self._owners)

    def balances(self) -> dict[Address, int]:
        return dict(self._balances)

    @property
    def total_supply(self) -> int:
        return len(self._owners)
