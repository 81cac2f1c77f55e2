"""
Black Check Vault Module — pooled custody for Checks originals.

This module provides:
- Custody of deposited originals (one deposit record per asset)
- One wrapper token per deposit, burned on withdrawal
- All-or-nothing batch deposits with compensating rollback
- A one-time end-game that mints the capstone black check

Custody rules:
- Only the current owner may deposit an original
- An original can be in custody at most once
- Only the current wrapper-token holder may withdraw
- Once the end-game completes, qualifying originals are locked forever
- The operator updates artwork only; it can never move custody

Integration Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                  BlackCheckVault                    │
    │  - Serialization, attestations, invariant checks    │
    │                                                     │
    │  ┌──────────────────┐      ┌────────────────────┐   │
    │  │  CustodyLedger   │─────▶│ WrapperTokenIssuer │   │
    │  │  validate, then  │      └────────────────────┘   │
    │  │  apply atomically│      ┌────────────────────┐   │
    │  │                  │─────▶│ EndGameController  │   │
    │  └────────┬─────────┘      └────────────────────┘   │
    └───────────┼─────────────────────────────────────────┘
                │
                ▼
    ┌─────────────────────────────────────────────────────┐
    │       RegistryAdapter (external originals ledger)   │
    │  - owner_of(asset_id)                               │
    │  - transfer_from(from, to, asset_id, operator=...)  │
    └─────────────────────────────────────────────────────┘
"""

from .audit import Attestation, AttestationStore
from .config import (
    CHECKS_ORIGINALS_ADDRESS,
    DEFAULT_VAULT_ADDRESS,
    SCHMRYPTO_QUALIFYING_SET,
    VaultConfig,
)
from .custody import CustodyLedger, DepositReceipt
from .endgame import EndGameController
from .issuer import WrapperTokenIssuer
from .journal import Effect, Journal, atomic
from .registry import InMemoryRegistry, RegistryAdapter
from .states import Capstone, DepositRecord, EndGamePhase
from .vault import BlackCheckVault
from .invariants import (
    VAULT_INVARIANTS,
    BalancesConservedInvariant,
    CustodyState,
    EndGameCommittedInvariant,
    InvariantViolation,
    OneTokenPerDepositInvariant,
    RegistryAgreesInvariant,
    VaultInvariant,
    list_vault_invariants,
)
from .errors import (
    AlreadyDepositedError,
    EndGameLockedError,
    InvariantViolationError,
    NotAssetOwnerError,
    NotDepositorError,
    NotOperatorError,
    NotTokenHolderError,
    ReentrantCallError,
    RegistryError,
    RollbackError,
    TokenStateError,
    TransferNotAuthorizedError,
    TransfersDisabledError,
    UnknownAssetError,
    VaultError,
)

__all__ = [
    # Facade
    "BlackCheckVault",
    # Configuration
    "VaultConfig",
    "CHECKS_ORIGINALS_ADDRESS",
    "DEFAULT_VAULT_ADDRESS",
    "SCHMRYPTO_QUALIFYING_SET",
    # Components
    "CustodyLedger",
    "DepositReceipt",
    "WrapperTokenIssuer",
    "EndGameController",
    # Registry adapter
    "RegistryAdapter",
    "InMemoryRegistry",
    # States
    "DepositRecord",
    "Capstone",
    "EndGamePhase",
    # Atomicity
    "Effect",
    "Journal",
    "atomic",
    # Invariants
    "VaultInvariant",
    "CustodyState",
    "InvariantViolation",
    "RegistryAgreesInvariant",
    "OneTokenPerDepositInvariant",
    "BalancesConservedInvariant",
    "EndGameCommittedInvariant",
    "VAULT_INVARIANTS",
    "list_vault_invariants",
    # Attestations
    "Attestation",
    "AttestationStore",
    # Errors
    "VaultError",
    "NotAssetOwnerError",
    "AlreadyDepositedError",
    "NotDepositorError",
    "EndGameLockedError",
    "NotOperatorError",
    "NotTokenHolderError",
    "ReentrantCallError",
    "TransfersDisabledError",
    "RegistryError",
    "UnknownAssetError",
    "TransferNotAuthorizedError",
    "TokenStateError",
    "RollbackError",
    "InvariantViolationError",
]
