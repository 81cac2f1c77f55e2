"""
End-Game Controller — one-time terminal mint.

Two phases: PENDING (initial) and COMPLETED (terminal). The transition
fires the first time, after a deposit, that every qualifying asset has
an active deposit record. It sets the flag, which locks the qualifying
set, and then mints the capstone to the configured beneficiary.
Re-evaluation after completion is a no-op, and withdrawals never move
the phase.

The controller only reads custody state. The minted capstone is
handed to an optional ``minter`` hook; if the hook raises, the phase
returns to PENDING and the enclosing deposit is rolled back.
"""

from __future__ import annotations

import logging
from typing import Callable, Collection, Iterable

from .states import (
    Address,
    AssetId,
    Capstone,
    EndGamePhase,
    is_valid_phase_transition,
)

logger = logging.getLogger(__name__)


CapstoneMinter = Callable[[Capstone], None]


class EndGameController:
    """
    Watches custody against the qualifying set.

    Example:
        controller = EndGameController({11, 313}, beneficiary="0xOperator")
        controller.evaluate({11})        # None, still pending
        controller.evaluate({11, 313})   # Capstone(...)
        controller.completed             # True
    """

    def __init__(
        self,
        qualifying_set: Iterable[AssetId],
        beneficiary: Address,
        minter: CapstoneMinter | None = None,
    ) -> None:
        self._qualifying = frozenset(qualifying_set)
        self._beneficiary = beneficiary
        self._minter = minter
        self._phase = EndGamePhase.PENDING
        self._capstone: Capstone | None = None

    @property
    def qualifying_set(self) -> frozenset[AssetId]:
        return self._qualifying

    @property
    def phase(self) -> EndGamePhase:
        return self._phase

    @property
    def completed(self) -> bool:
        return self._phase == EndGamePhase.COMPLETED

    @property
    def capstone(self) -> Capstone | None:
        return self._capstone

    def missing(self, deposited: Collection[AssetId]) -> set[AssetId]:
        """Qualifying ids that are not yet in custody."""
        return set(self._qualifying.difference(deposited))

    def is_locked(self, asset_id: AssetId) -> bool:
        """Whether ``asset_id`` is permanently committed to the capstone."""
        return self.completed and asset_id in self._qualifying

    def evaluate(self, deposited: Collection[AssetId]) -> Capstone | None:
        """Post-deposit check.

        Returns the capstone if this call completed the end-game,
        otherwise None.
        """
        if self.completed:
            return None
        if self.missing(deposited):
            return None
        return self._complete()

    def reopen(self) -> None:
        """Undo a completion that belongs to a failed atomic unit."""
        self._capstone = None
        self._phase = EndGamePhase.PENDING

    def _complete(self) -> Capstone:
        if not is_valid_phase_transition(self._phase, EndGamePhase.COMPLETED):
            raise RuntimeError(f"End-game cannot complete from {self._phase.value}")

        capstone = Capstone(
            beneficiary=self._beneficiary,
            components=tuple(sorted(self._qualifying)),
        )
        # Commit before the hook runs: the qualifying set must already be
        # locked if the minter calls back into the vault.
        self._capstone = capstone
        self._phase = EndGamePhase.COMPLETED
        if self._minter is not None:
            try:
                self._minter(capstone)
            except BaseException:
                self.reopen()
                raise

        logger.info(
            f"End-game completed: capstone minted to {capstone.beneficiary} "
            f"from {len(capstone.components)} originals"
        )
        return capstone
