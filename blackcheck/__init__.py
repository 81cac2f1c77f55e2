"""
Black Check DAO - Pooled custody for Checks originals.

Holders deposit originals into a shared vault and receive a wrapper
token per original. Burning the wrapper token returns the original.
When the vault holds every original of the qualifying set, the
end-game mints a single capstone black check.

Public API (stable):
    BlackCheckVault - Main interface. deposit(), deposit_many(), withdraw().
    VaultConfig     - Immutable vault configuration (operator, registry, ...).
    InMemoryRegistry- In-process originals ledger for tests and simulation.

Errors (each with a stable ``kind``):
    NotAssetOwner, AlreadyDeposited, NotDepositor, EndGameLocked, NotOperator

Internals (for advanced users):
    blackcheck.vault            - CustodyLedger, WrapperTokenIssuer, EndGameController
    blackcheck.vault.journal    - Atomic journal with compensating rollback
    blackcheck.vault.invariants - Custody consistency checks

Example:
    from blackcheck import BlackCheckVault, InMemoryRegistry, VaultConfig

    registry = InMemoryRegistry()
    vault = BlackCheckVault(VaultConfig(operator_address="0xOperator"), registry)

    registry.mint("0xAlice", 11, 313)
    registry.set_approval_for_all("0xAlice", vault.vault_address, True)

    vault.deposit_many([11, 313], caller="0xAlice")
    print(vault.balance_of("0xAlice"))  # 2
"""

from blackcheck.vault import (
    AlreadyDepositedError,
    BlackCheckVault,
    EndGameLockedError,
    InMemoryRegistry,
    NotAssetOwnerError,
    NotDepositorError,
    NotOperatorError,
    RegistryAdapter,
    VaultConfig,
    VaultError,
)

__version__ = "0.1.0"

__all__ = [
    "BlackCheckVault",
    "VaultConfig",
    "InMemoryRegistry",
    "RegistryAdapter",
    "VaultError",
    "NotAssetOwnerError",
    "AlreadyDepositedError",
    "NotDepositorError",
    "EndGameLockedError",
    "NotOperatorError",
    "__version__",
]
