"""
Operation Journal — compensating rollback for atomic vault operations.

Each public vault operation is one atomic unit. Sub-steps (registry
transfer, record write, mint/burn, capstone mint) are applied in order
and each one records an Effect with an undo step. If any later
sub-step raises, the journal undoes the applied effects in reverse
order and the original error propagates unchanged.

    with atomic("deposit_many") as journal:
        registry.transfer_from(...)
        journal.record("registry.transfer", asset_id, undo=...)
        ...
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator
from uuid import uuid4

from .errors import RollbackError
from .states import utcnow

logger = logging.getLogger(__name__)


@dataclass
class Effect:
    """
    An applied sub-step of an operation.

    ``undo`` restores the state the sub-step changed. It is only
    called if the enclosing operation fails.
    """
    effect_type: str
    target: int | None
    undo: Callable[[], None]
    parameters: dict[str, Any] = field(default_factory=dict)

    # Effect tracking
    effect_id: str = field(default_factory=lambda: str(uuid4()))
    applied_at: datetime = field(default_factory=utcnow)
    reverted: bool = False


class Journal:
    """Ordered record of applied effects for one atomic operation."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self._effects: list[Effect] = []

    def record(
        self,
        effect_type: str,
        target: int | None,
        undo: Callable[[], None],
        **parameters: Any,
    ) -> Effect:
        """Record an applied effect and how to revert it."""
        effect = Effect(
            effect_type=effect_type,
            target=target,
            undo=undo,
            parameters=parameters,
        )
        self._effects.append(effect)
        return effect

    @property
    def effects(self) -> list[Effect]:
        return list(self._effects)

    def __len__(self) -> int:
        return len(self._effects)

    def rollback(self) -> int:
        """Revert applied effects, newest first.

        Every undo step is attempted even if an earlier one fails.

        Returns:
            Number of effects reverted.

        Raises:
            RollbackError: If any undo step failed.
        """
        failures: list[BaseException] = []
        reverted = 0
        for effect in reversed(self._effects):
            if effect.reverted:
                continue
            try:
                effect.undo()
            except Exception as e:
                logger.error(
                    f"Rollback of {effect.effect_type} on {effect.target} "
                    f"failed during {self.operation}: {e}"
                )
                failures.append(e)
                continue
            effect.reverted = True
            reverted += 1

        if failures:
            raise RollbackError(
                f"{len(failures)} compensating step(s) failed during {self.operation}",
                failures=failures,
                details={"operation": self.operation, "reverted": reverted},
            )
        return reverted


@contextmanager
def atomic(operation: str) -> Iterator[Journal]:
    """Run a block as one atomic unit.

    On any exception the journal is rolled back and the exception is
    re-raised. A failed rollback raises RollbackError chained to the
    original error.
    """
    journal = Journal(operation)
    try:
        yield journal
    except BaseException as error:
        if len(journal):
            logger.warning(
                f"Rolling back {len(journal)} effect(s) of {operation}: {error}"
            )
            try:
                journal.rollback()
            except RollbackError as rollback_error:
                raise rollback_error from error
        raise
