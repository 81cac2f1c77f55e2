"""
Vault Test Fixtures — Shared infrastructure for the vault suite.

Provides:
    - Isolated vaults over an in-memory registry
    - A failure-injecting registry for partial-failure tests
    - Custody fingerprints for before/after comparisons
    - Concurrency helpers
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest

from blackcheck.vault import (
    CHECKS_ORIGINALS_ADDRESS,
    BlackCheckVault,
    InMemoryRegistry,
    SCHMRYPTO_QUALIFYING_SET,
    TransferNotAuthorizedError,
    VaultConfig,
)


OPERATOR = "0x00000000000000000000000000000000000000AA"
SCHMRYPTO = "0x5efdB6D8c798c2c2Bea5b1961982a5944F92a5C1"
ALICE = "0x000000000000000000000000000000000000A11C"
BOB = "0x0000000000000000000000000000000000000B0B"
EVE = "0x0000000000000000000000000000000000000E0E"

QUALIFYING_IDS = sorted(SCHMRYPTO_QUALIFYING_SET)

# Originals outside the qualifying set
ALICE_IDS = [1, 2, 3]
BOB_IDS = [4, 5]


# =============================================================================
# Failure-injecting Registry
# =============================================================================

class FlakyRegistry(InMemoryRegistry):
    """
    In-memory registry that refuses selected transfers.

    - ``fail_intake``: ids whose transfer *into* the vault fails
    - ``fail_release``: ids whose transfer *out of* the vault fails

    Successful transfers are logged in ``transfers``.
    """

    def __init__(self, address: str = CHECKS_ORIGINALS_ADDRESS) -> None:
        super().__init__(address)
        self.fail_intake: set[int] = set()
        self.fail_release: set[int] = set()
        self.transfers: list[tuple[str, str, int]] = []

    def transfer_from(self, from_address, to_address, asset_id, *, operator):
        if to_address == operator and asset_id in self.fail_intake:
            raise TransferNotAuthorizedError(asset_id, f"Injected intake failure for {asset_id}")
        if from_address == operator and asset_id in self.fail_release:
            raise TransferNotAuthorizedError(asset_id, f"Injected release failure for {asset_id}")
        super().transfer_from(from_address, to_address, asset_id, operator=operator)
        self.transfers.append((from_address, to_address, asset_id))


# =============================================================================
# Test Harness
# =============================================================================

@dataclass
class VaultTestHarness:
    """
    Test harness for vault tests.

    Provides:
    - Isolated vault instances
    - Asset seeding with vault approval
    - Custody fingerprints
    """

    operator: str = OPERATOR

    _registry: FlakyRegistry | None = field(default=None, init=False)
    _vault: BlackCheckVault | None = field(default=None, init=False)

    def create_vault(self, capstone_minter: Callable | None = None, **kwargs: Any) -> BlackCheckVault:
        """Create an isolated vault over a fresh registry."""
        kwargs.setdefault("operator_address", self.operator)
        config = VaultConfig(**kwargs)
        self._registry = FlakyRegistry(config.registry_address)
        self._vault = BlackCheckVault(config, self._registry, capstone_minter=capstone_minter)
        return self._vault

    @property
    def vault(self) -> BlackCheckVault:
        if self._vault is None:
            self.create_vault()
        return self._vault

    @property
    def registry(self) -> FlakyRegistry:
        if self._registry is None:
            self.create_vault()
        return self._registry

    def give(self, holder: str, *asset_ids: int, approve: bool = True) -> None:
        """Mint originals to ``holder`` and (optionally) approve the vault."""
        self.registry.mint(holder, *asset_ids)
        if approve:
            self.registry.set_approval_for_all(holder, self.vault.vault_address, True)

    def fingerprint(self) -> dict[str, Any]:
        """Everything a failed request must leave unchanged."""
        vault = self.vault
        deposited = vault.deposited_assets()
        return {
            "owners": self.registry.owners(),
            "records": {
                a: (vault.deposit_record(a).depositor, vault.deposit_record(a).holder)
                for a in deposited
            },
            "tokens": {a: vault.owner_of(a) for a in deposited},
            "balances": vault.snapshot()["balances"],
            "supply": vault.total_supply,
            "phase": vault.end_game_phase,
            "capstone": vault.capstone,
            "image_uri": vault.image_uri,
        }


# =============================================================================
# Concurrency Helpers
# =============================================================================

def parallel(
    operations: list[Callable[[], Any]],
    max_workers: int = 4,
) -> list[Any]:
    """
    Execute operations in parallel and collect results.

    Returns results (or raised exceptions) in the same order as operations.
    """
    results: list[Any] = [None] * len(operations)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(op): i
            for i, op in enumerate(operations)
        }

        for future in as_completed(futures):
            idx = futures[future]
            try:
                results[idx] = future.result()
            except Exception as e:
                results[idx] = e

    return results


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def harness() -> VaultTestHarness:
    """Create an isolated test harness."""
    return VaultTestHarness()


@pytest.fixture
def vault(harness: VaultTestHarness) -> BlackCheckVault:
    """Create an isolated vault with the default qualifying set."""
    return harness.create_vault(image_uri="ipfs://initial")


@pytest.fixture
def registry(harness: VaultTestHarness, vault: BlackCheckVault) -> FlakyRegistry:
    return harness.registry


@pytest.fixture
def funded(harness: VaultTestHarness, vault: BlackCheckVault) -> VaultTestHarness:
    """Vault with Schmrypto holding the qualifying set, Alice and Bob holding others."""
    harness.give(SCHMRYPTO, *QUALIFYING_IDS)
    harness.give(ALICE, *ALICE_IDS)
    harness.give(BOB, *BOB_IDS)
    return harness
