"""
Withdrawal Tests

Goal: Only the entitled holder can redeem, and redemption exactly
reverses the deposit.

Required Tests:
    ✓ Deposit → withdraw round trip restores the pre-deposit state
    ✓ Non-depositor withdraw → NotDepositor, nothing changes
    ✓ Withdraw of an asset not in custody → NotDepositor
    ✓ Registry failure on release → token and record restored
"""

import pytest

from blackcheck.vault import (
    BlackCheckVault,
    NotDepositorError,
    RegistryError,
)

from .conftest import (
    ALICE,
    ALICE_IDS,
    BOB,
    OPERATOR,
    VaultTestHarness,
)


class TestWithdraw:
    """Withdrawal tests"""

    def test_round_trip_restores_state(self, funded: VaultTestHarness, vault: BlackCheckVault):
        """Deposit then withdraw: net state equals the pre-deposit state"""
        asset_id = ALICE_IDS[0]
        before = funded.fingerprint()

        vault.deposit(asset_id, caller=ALICE)
        record = vault.withdraw(asset_id, caller=ALICE)

        assert record.asset_id == asset_id
        assert record.depositor == ALICE
        assert funded.registry.owner_of(asset_id) == ALICE
        assert vault.deposit_record(asset_id) is None
        assert vault.owner_of(asset_id) is None
        assert funded.fingerprint() == before

    def test_non_depositor_withdraw_denied(self, funded: VaultTestHarness, vault: BlackCheckVault):
        asset_id = ALICE_IDS[0]
        vault.deposit(asset_id, caller=ALICE)
        before = funded.fingerprint()

        with pytest.raises(NotDepositorError) as exc_info:
            vault.withdraw(asset_id, caller=BOB)

        assert exc_info.value.kind == "NotDepositor"
        assert exc_info.value.holder == ALICE
        assert funded.fingerprint() == before

    def test_operator_cannot_seize_deposits(self, funded: VaultTestHarness, vault: BlackCheckVault):
        vault.deposit(ALICE_IDS[0], caller=ALICE)

        with pytest.raises(NotDepositorError):
            vault.withdraw(ALICE_IDS[0], caller=OPERATOR)

        assert funded.registry.owner_of(ALICE_IDS[0]) == vault.vault_address

    def test_withdraw_not_deposited(self, funded: VaultTestHarness, vault: BlackCheckVault):
        with pytest.raises(NotDepositorError) as exc_info:
            vault.withdraw(ALICE_IDS[0], caller=ALICE)

        assert exc_info.value.holder is None
        assert "not deposited" in str(exc_info.value)

    def test_double_withdraw_denied(self, funded: VaultTestHarness, vault: BlackCheckVault):
        vault.deposit(ALICE_IDS[0], caller=ALICE)
        vault.withdraw(ALICE_IDS[0], caller=ALICE)

        with pytest.raises(NotDepositorError):
            vault.withdraw(ALICE_IDS[0], caller=ALICE)

    def test_release_failure_restores_token_and_record(self, funded: VaultTestHarness, vault: BlackCheckVault):
        asset_id = ALICE_IDS[0]
        vault.deposit(asset_id, caller=ALICE)
        funded.registry.fail_release.add(asset_id)
        before = funded.fingerprint()

        with pytest.raises(RegistryError):
            vault.withdraw(asset_id, caller=ALICE)

        assert funded.fingerprint() == before
        assert vault.owner_of(asset_id) == ALICE
        assert vault.verify() == []

    def test_redeposit_after_withdraw(self, funded: VaultTestHarness, vault: BlackCheckVault):
        asset_id = ALICE_IDS[0]
        vault.deposit(asset_id, caller=ALICE)
        vault.withdraw(asset_id, caller=ALICE)

        vault.deposit(asset_id, caller=ALICE)

        assert vault.balance_of(ALICE) == 1
        assert vault.verify() == []

    def test_withdraw_only_touches_one_asset(self, funded: VaultTestHarness, vault: BlackCheckVault):
        vault.deposit_many(ALICE_IDS, caller=ALICE)

        vault.withdraw(ALICE_IDS[1], caller=ALICE)

        assert vault.tokens_of(ALICE) == [ALICE_IDS[0], ALICE_IDS[2]]
        assert vault.balance_of(ALICE) == 2
