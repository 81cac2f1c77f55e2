"""
Batch Deposit Tests

Goal: deposit_many is all-or-nothing.

Required Tests:
    ✓ Mixed ownership batch → NotAssetOwner, earlier elements not transferred
    ✓ Duplicate inside a batch → AlreadyDeposited
    ✓ Already-deposited element → AlreadyDeposited, batch has no effect
    ✓ Registry failure mid-apply → earlier elements rolled back
    ✓ Capstone mint failure → whole batch rolled back
"""

import pytest

from blackcheck.vault import (
    AlreadyDepositedError,
    BlackCheckVault,
    NotAssetOwnerError,
    RegistryError,
)

from .conftest import (
    ALICE,
    ALICE_IDS,
    BOB,
    BOB_IDS,
    QUALIFYING_IDS,
    SCHMRYPTO,
    VaultTestHarness,
)


class TestBatchAtomicity:
    """deposit_many all-or-nothing tests"""

    def test_batch_deposits_every_element(self, funded: VaultTestHarness, vault: BlackCheckVault):
        receipt = vault.deposit_many(ALICE_IDS, caller=ALICE)

        assert receipt.asset_ids == tuple(ALICE_IDS)
        assert vault.balance_of(ALICE) == len(ALICE_IDS)
        for asset_id in ALICE_IDS:
            assert funded.registry.owner_of(asset_id) == vault.vault_address
            assert vault.owner_of(asset_id) == ALICE

    def test_mixed_ownership_batch_rolls_back(self, funded: VaultTestHarness, vault: BlackCheckVault):
        """deposit_many([A, B]) with B not owned → NotAssetOwner, A untouched"""
        owned, foreign = ALICE_IDS[0], BOB_IDS[0]
        before = funded.fingerprint()

        with pytest.raises(NotAssetOwnerError) as exc_info:
            vault.deposit_many([owned, foreign], caller=ALICE)

        assert exc_info.value.asset_id == foreign
        assert funded.registry.owner_of(owned) == ALICE
        assert vault.owner_of(owned) is None
        assert vault.balance_of(ALICE) == 0
        assert funded.fingerprint() == before

    def test_batch_fails_with_first_failing_element_error(self, funded: VaultTestHarness, vault: BlackCheckVault):
        vault.deposit(ALICE_IDS[1], caller=ALICE)

        # Element 2 is foreign, element 3 already deposited: element 2 decides
        with pytest.raises(NotAssetOwnerError):
            vault.deposit_many([ALICE_IDS[0], BOB_IDS[0], ALICE_IDS[1]], caller=ALICE)

        with pytest.raises(AlreadyDepositedError):
            vault.deposit_many([ALICE_IDS[0], ALICE_IDS[1], BOB_IDS[0]], caller=ALICE)

    def test_duplicate_within_batch(self, funded: VaultTestHarness, vault: BlackCheckVault):
        before = funded.fingerprint()

        with pytest.raises(AlreadyDepositedError) as exc_info:
            vault.deposit_many([ALICE_IDS[0], ALICE_IDS[1], ALICE_IDS[0]], caller=ALICE)

        assert exc_info.value.asset_id == ALICE_IDS[0]
        assert funded.fingerprint() == before

    def test_already_deposited_element(self, funded: VaultTestHarness, vault: BlackCheckVault):
        vault.deposit(ALICE_IDS[2], caller=ALICE)
        after_first = funded.fingerprint()

        with pytest.raises(AlreadyDepositedError):
            vault.deposit_many([ALICE_IDS[0], ALICE_IDS[2]], caller=ALICE)

        assert funded.fingerprint() == after_first

    def test_registry_failure_mid_batch_rolls_back(self, funded: VaultTestHarness, vault: BlackCheckVault):
        """Validation passes, the third transfer fails: the first two are undone"""
        funded.registry.fail_intake.add(ALICE_IDS[2])
        before = funded.fingerprint()

        with pytest.raises(RegistryError):
            vault.deposit_many(ALICE_IDS, caller=ALICE)

        assert funded.fingerprint() == before
        # Two intakes happened and were compensated by two releases
        moves = [(f, t, a) for f, t, a in funded.registry.transfers if a in ALICE_IDS]
        assert moves == [
            (ALICE, vault.vault_address, ALICE_IDS[0]),
            (ALICE, vault.vault_address, ALICE_IDS[1]),
            (vault.vault_address, ALICE, ALICE_IDS[1]),
            (vault.vault_address, ALICE, ALICE_IDS[0]),
        ]
        assert vault.verify() == []

    def test_capstone_failure_rolls_back_completing_batch(self, harness: VaultTestHarness):
        calls = []

        def failing_minter(capstone):
            calls.append(capstone)
            raise RuntimeError("capstone mint reverted")

        vault = harness.create_vault(capstone_minter=failing_minter)
        harness.give(SCHMRYPTO, *QUALIFYING_IDS)
        before = harness.fingerprint()

        with pytest.raises(RuntimeError, match="capstone mint reverted"):
            vault.deposit_many(QUALIFYING_IDS, caller=SCHMRYPTO)

        assert len(calls) == 1
        assert harness.fingerprint() == before
        assert vault.end_game_completed is False
        assert vault.capstone is None

    def test_empty_batch_is_noop(self, funded: VaultTestHarness, vault: BlackCheckVault):
        before = funded.fingerprint()

        receipt = vault.deposit_many([], caller=ALICE)

        assert receipt.asset_ids == ()
        assert funded.fingerprint() == before

    def test_batch_accepts_any_iterable(self, funded: VaultTestHarness, vault: BlackCheckVault):
        vault.deposit_many((a for a in BOB_IDS), caller=BOB)

        assert vault.tokens_of(BOB) == BOB_IDS

    def test_batch_preserves_order(self, funded: VaultTestHarness, vault: BlackCheckVault):
        order = [ALICE_IDS[2], ALICE_IDS[0], ALICE_IDS[1]]

        vault.deposit_many(order, caller=ALICE)

        intakes = [a for f, t, a in funded.registry.transfers if t == vault.vault_address]
        assert intakes == order
