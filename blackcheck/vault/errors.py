"""
Vault Errors — Domain-specific error types.

Error hierarchy:
    VaultError (base)
    ├── NotAssetOwnerError         kind: NotAssetOwner
    ├── AlreadyDepositedError      kind: AlreadyDeposited
    ├── NotDepositorError          kind: NotDepositor
    ├── EndGameLockedError         kind: EndGameLocked
    ├── NotOperatorError           kind: NotOperator
    ├── NotTokenHolderError        kind: NotTokenHolder
    ├── TransfersDisabledError     kind: TransfersDisabled
    ├── ReentrantCallError         kind: Reentrancy
    ├── RegistryError              kind: RegistryFailure
    │   ├── UnknownAssetError
    │   └── TransferNotAuthorizedError
    ├── TokenStateError            kind: TokenState
    ├── RollbackError              kind: RollbackFailed (HALT-level)
    └── InvariantViolationError    kind: InvariantViolation (HALT-level)

Every error carries a stable ``kind`` so callers can branch on cause.
"""

from __future__ import annotations

from typing import Any


class VaultError(Exception):
    """Base error for all vault-related errors."""

    kind = "VaultError"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotAssetOwnerError(VaultError):
    """
    Raised when the caller does not currently own the asset being deposited.

    Authorization failure; not retriable without a different caller.
    """

    kind = "NotAssetOwner"

    def __init__(
        self,
        asset_id: int,
        caller: str,
        current_owner: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"{caller} does not own asset {asset_id}"
            + (f" (owner: {current_owner})" if current_owner else ""),
            details,
        )
        self.asset_id = asset_id
        self.caller = caller
        self.current_owner = current_owner


class AlreadyDepositedError(VaultError):
    """Raised when the asset is already in vault custody."""

    kind = "AlreadyDeposited"

    def __init__(self, asset_id: int, details: dict[str, Any] | None = None):
        super().__init__(f"Asset {asset_id} is already deposited", details)
        self.asset_id = asset_id


class NotDepositorError(VaultError):
    """
    Raised when a withdrawal is attempted by someone other than the
    entitled wrapper-token holder (or for an asset with no deposit).
    """

    kind = "NotDepositor"

    def __init__(
        self,
        asset_id: int,
        caller: str,
        holder: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        if holder is None:
            message = f"Asset {asset_id} is not deposited"
        else:
            message = f"Only holder ({holder}) can withdraw asset {asset_id}, not {caller}"
        super().__init__(message, details)
        self.asset_id = asset_id
        self.caller = caller
        self.holder = holder


class EndGameLockedError(VaultError):
    """
    Raised when withdrawing an asset committed to the completed end-game.

    Structural; never retriable.
    """

    kind = "EndGameLocked"

    def __init__(self, asset_id: int, details: dict[str, Any] | None = None):
        super().__init__(
            f"Asset {asset_id} is locked: the end-game has completed",
            details,
        )
        self.asset_id = asset_id


class NotOperatorError(VaultError):
    """Raised when a non-operator attempts an operator-only action."""

    kind = "NotOperator"

    def __init__(self, caller: str, action: str, details: dict[str, Any] | None = None):
        super().__init__(f"Only the operator can {action}, not {caller}", details)
        self.caller = caller
        self.action = action


class NotTokenHolderError(VaultError):
    """Raised when a wrapper-token transfer is requested by a non-holder."""

    kind = "NotTokenHolder"

    def __init__(
        self,
        token_id: int,
        caller: str,
        holder: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"{caller} does not hold wrapper token {token_id}", details)
        self.token_id = token_id
        self.caller = caller
        self.holder = holder


class TransfersDisabledError(VaultError):
    """Raised when wrapper-token transfers are disabled by configuration."""

    kind = "TransfersDisabled"

    def __init__(self, token_id: int, details: dict[str, Any] | None = None):
        super().__init__(f"Wrapper token {token_id} is not transferable", details)
        self.token_id = token_id


class ReentrantCallError(VaultError):
    """
    Raised when a vault operation is requested from inside another one.

    Example: a capstone minter hook that calls ``withdraw()`` back on
    the vault while the completing deposit is still running.
    """

    kind = "Reentrancy"

    def __init__(
        self,
        action: str,
        caller: str,
        active: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"{action} by {caller} refused: {active} is still in progress",
            details,
        )
        self.action = action
        self.caller = caller
        self.active = active


class RegistryError(VaultError):
    """
    Raised by the originals registry.

    Any registry failure aborts the whole enclosing vault operation.
    """

    kind = "RegistryFailure"


class UnknownAssetError(RegistryError):
    """Raised when the registry has no asset with the given id."""

    def __init__(self, asset_id: int, details: dict[str, Any] | None = None):
        super().__init__(f"Unknown asset {asset_id}", details)
        self.asset_id = asset_id


class TransferNotAuthorizedError(RegistryError):
    """
    Raised when a registry transfer is not authorized.

    Examples:
    - ``from`` is not the current owner
    - the operator has not been approved by ``from``
    """

    def __init__(
        self,
        asset_id: int,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.asset_id = asset_id


class TokenStateError(VaultError):
    """
    Raised when a wrapper-token precondition is broken.

    The custody ledger validates before it mutates, so this is only
    reachable when the issuer is driven directly.
    """

    kind = "TokenState"

    def __init__(self, token_id: int, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.token_id = token_id


class RollbackError(VaultError):
    """
    CRITICAL: Raised when a compensating step fails during rollback.

    This is a HALT-level error. Custody state may be inconsistent and
    must be investigated before the vault is used again.
    """

    kind = "RollbackFailed"

    def __init__(
        self,
        message: str,
        failures: list[BaseException] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"[ROLLBACK FAILED] {message}", details)
        self.failures = failures or []
        self.halt_required = True


class InvariantViolationError(VaultError):
    """
    Raised when a consistency invariant fails around an operation.

    Only raised when invariant enforcement is enabled. Otherwise
    violations are returned by ``verify()``.
    """

    kind = "InvariantViolation"

    def __init__(
        self,
        invariant_id: str,
        message: str,
        classification: str = "HALT",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"[{invariant_id}] {message}", details)
        self.invariant_id = invariant_id
        self.classification = classification
