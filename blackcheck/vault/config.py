"""
Vault configuration.

All parameters are fixed at initialization and immutable thereafter.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .states import Address, AssetId


# Checks VV Originals on Ethereum mainnet
CHECKS_ORIGINALS_ADDRESS: Address = "0x036721e5A769Cc48B3189EFbb9ccE4471E8A48B1"

# Custody address used when the host does not assign one
DEFAULT_VAULT_ADDRESS: Address = "0x" + "0" * 37 + "da0"

# The seven originals held by Schmrypto that seed the end-game
SCHMRYPTO_QUALIFYING_SET: frozenset[AssetId] = frozenset({11, 313, 315, 462, 727, 737, 767})

ENV_PREFIX = "BLACKCHECK_"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_ids(name: str, value: str) -> frozenset[AssetId]:
    try:
        return frozenset(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        raise ValueError(f"{name} must be a comma-separated list of asset ids, got {value!r}") from None


@dataclass(frozen=True)
class VaultConfig:
    """Configuration for a custody vault.

    Args:
        operator_address: Address allowed to update presentation metadata.
            Holds no custody or minting rights.
        registry_address: Address of the external originals registry.
        image_uri: Initial artwork URI.
        vault_address: Custody address the vault holds assets under.
        qualifying_set: Asset ids whose joint custody triggers the end-game.
        capstone_beneficiary: Receives the capstone. Defaults to the operator.
        transferable_tokens: Whether wrapper tokens may change hands.
            Withdrawal rights always follow the current holder.
        enforce_invariants: Check every consistency invariant before each
            operation and as the last step of its atomic unit; a violation
            refuses or rolls back the operation.
        attestation_limit: Keep at most this many attestations, dropping
            the oldest. ``None`` keeps all of them.

    Example:
        config = VaultConfig(
            operator_address="0xOperator",
            image_uri="ipfs://black",
        )
    """

    operator_address: Address
    registry_address: Address = CHECKS_ORIGINALS_ADDRESS
    image_uri: str = ""
    vault_address: Address = DEFAULT_VAULT_ADDRESS
    qualifying_set: frozenset[AssetId] = field(default=SCHMRYPTO_QUALIFYING_SET)
    capstone_beneficiary: Address | None = None
    transferable_tokens: bool = True
    enforce_invariants: bool = False
    attestation_limit: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.operator_address:
            raise ValueError("operator_address is required")
        if not self.registry_address:
            raise ValueError("registry_address is required")
        if not self.vault_address:
            raise ValueError("vault_address is required")
        if self.vault_address == self.operator_address:
            raise ValueError("vault_address must differ from operator_address")
        # Accept any iterable of ids but store a frozenset
        object.__setattr__(self, "qualifying_set", frozenset(self.qualifying_set))
        if not self.qualifying_set:
            raise ValueError("qualifying_set must not be empty")
        if any(not isinstance(a, int) or a < 0 for a in self.qualifying_set):
            raise ValueError("qualifying_set must contain non-negative integer ids")
        if self.attestation_limit is not None and self.attestation_limit < 1:
            raise ValueError("attestation_limit must be positive")

    @property
    def beneficiary(self) -> Address:
        """Effective capstone beneficiary."""
        return self.capstone_beneficiary or self.operator_address

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> VaultConfig:
        """Build a config from ``BLACKCHECK_*`` environment variables.

        Explicit keyword overrides win over the environment.

        Raises:
            ValueError: If a variable is malformed or the operator is unset.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        for key, name in (
            ("operator_address", "OPERATOR_ADDRESS"),
            ("registry_address", "REGISTRY_ADDRESS"),
            ("image_uri", "IMAGE_URI"),
            ("vault_address", "VAULT_ADDRESS"),
            ("capstone_beneficiary", "CAPSTONE_BENEFICIARY"),
        ):
            value = get(name)
            if value is not None:
                values[key] = value

        raw_set = get("QUALIFYING_SET")
        if raw_set is not None:
            values["qualifying_set"] = _parse_ids(ENV_PREFIX + "QUALIFYING_SET", raw_set)

        for key, name in (
            ("transferable_tokens", "TRANSFERABLE_TOKENS"),
            ("enforce_invariants", "ENFORCE_INVARIANTS"),
        ):
            value = get(name)
            if value is not None:
                values[key] = _parse_bool(ENV_PREFIX + name, value)

        raw_limit = get("ATTESTATION_LIMIT")
        if raw_limit:
            try:
                values["attestation_limit"] = int(raw_limit)
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}ATTESTATION_LIMIT must be an integer, got {raw_limit!r}"
                ) from None

        values.update(overrides)
        if not values.get("operator_address"):
            raise ValueError(
                f"Operator address required. Set {ENV_PREFIX}OPERATOR_ADDRESS "
                "environment variable or pass operator_address."
            )
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operator_address": self.operator_address,
            "registry_address": self.registry_address,
            "image_uri": self.image_uri,
            "vault_address": self.vault_address,
            "qualifying_set": sorted(self.qualifying_set),
            "capstone_beneficiary": self.beneficiary,
            "transferable_tokens": self.transferable_tokens,
            "enforce_invariants": self.enforce_invariants,
            "attestation_limit": self.attestation_limit,
        }


def normalize_ids(asset_ids: Iterable[AssetId]) -> list[AssetId]:
    """Materialize a sequence of asset ids, rejecting non-integers."""
    ids = list(asset_ids)
    for asset_id in ids:
        if isinstance(asset_id, bool) or not isinstance(asset_id, int):
            raise TypeError(f"Asset ids must be integers, got {asset_id!r}")
    return ids
