"""
CLI Adapter - Command-line interface.

Thin wrapper over the vault: inspect configuration, list invariants,
and run an in-memory simulation of the end-game.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from blackcheck.vault import (
    BlackCheckVault,
    InMemoryRegistry,
    VaultConfig,
    VaultError,
    list_vault_invariants,
)
from blackcheck.vault.config import ENV_PREFIX

# Schmrypto's wallet, holder of the seven qualifying originals
SCHMRYPTO_ADDRESS = "0x5efdB6D8c798c2c2Bea5b1961982a5944F92a5C1"

SIMULATION_OPERATOR = "0x00000000000000000000000000000000000000AA"


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="blackcheck",
        description="Pooled custody vault for Checks originals",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log vault activity")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Show the vault configuration resolved from BLACKCHECK_* variables",
    )
    config_parser.add_argument("--operator", help="Operator address (overrides environment)")
    config_parser.add_argument("--image-uri", help="Image URI (overrides environment)")

    # simulate command
    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Deposit the qualifying set into an in-memory vault",
    )
    simulate_parser.add_argument("--operator", help="Operator address (overrides environment)")
    simulate_parser.add_argument("--image-uri", help="Image URI (overrides environment)")
    simulate_parser.add_argument(
        "--holder",
        default=SCHMRYPTO_ADDRESS,
        help="Address holding the qualifying originals",
    )
    simulate_parser.add_argument(
        "--skip",
        type=int,
        nargs="*",
        default=[],
        metavar="ID",
        help="Qualifying ids to leave out of the deposit",
    )

    # invariants command
    subparsers.add_parser("invariants", help="List custody invariants")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.INFO if parsed.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if parsed.command is None:
        parser.print_help()
        return 0

    if parsed.command == "version":
        from blackcheck import __version__
        print(f"blackcheck {__version__}")
        return 0

    if parsed.command == "invariants":
        return _cmd_invariants()

    if parsed.command == "config":
        return _cmd_config(parsed)

    if parsed.command == "simulate":
        return _cmd_simulate(parsed)

    return 1


def _load_config(args: argparse.Namespace, default_operator: str | None = None) -> VaultConfig:
    overrides = {}
    if args.operator:
        overrides["operator_address"] = args.operator
    if args.image_uri is not None:
        overrides["image_uri"] = args.image_uri
    # The default only stands in for an unset operator, never a rejected one
    if (
        default_operator is not None
        and "operator_address" not in overrides
        and not os.environ.get(ENV_PREFIX + "OPERATOR_ADDRESS")
    ):
        overrides["operator_address"] = default_operator
    return VaultConfig.from_env(**overrides)


def _cmd_config(args: argparse.Namespace) -> int:
    """Handle config command."""
    try:
        config = _load_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(config.to_dict(), indent=2))
    print(
        f"Black Check vault at {config.vault_address}. "
        f"Operator address: {config.operator_address}. "
        f"Image URI: {config.image_uri}.",
        file=sys.stderr,
    )
    return 0


def _cmd_simulate(args: argparse.Namespace) -> int:
    """Handle simulate command."""
    try:
        config = _load_config(args, default_operator=SIMULATION_OPERATOR)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    registry = InMemoryRegistry(config.registry_address)
    vault = BlackCheckVault(config, registry)

    qualifying = sorted(config.qualifying_set)
    registry.mint(args.holder, *qualifying)
    registry.set_approval_for_all(args.holder, vault.vault_address, True)

    skipped = set(args.skip)
    try:
        receipt = vault.deposit_many([a for a in qualifying if a not in skipped], caller=args.holder)
    except VaultError as e:
        print(f"Error: [{e.kind}] {e}", file=sys.stderr)
        return 1

    print(json.dumps(vault.snapshot(), indent=2))
    if receipt.end_game_triggered:
        print(f"End-game completed: capstone minted to {receipt.capstone.beneficiary}", file=sys.stderr)
    else:
        print(f"End-game pending, missing: {vault.missing_for_end_game()}", file=sys.stderr)
    return 0


def _cmd_invariants() -> int:
    """Handle invariants command."""
    print("Custody invariants:")
    print()
    for inv in list_vault_invariants():
        print(f"  {inv['id']:32} - {inv['description']} ({inv['failure_mode']})")
    return 0
