"""
Adapters - Entry points over the vault.

    cli  - Command-line interface (``blackcheck``)
"""

from blackcheck.adapters.cli import main

__all__ = ["main"]
