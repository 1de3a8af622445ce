"""
SportConnect Backend — Optimistic Toggle Reconciler
===================================================

What:  Applies a like/follow toggle to the caller's local view immediately,
       then reconciles it with one atomic transaction in the ToggleStore.
How:   Per toggle key (kind, actor, target):

           IDLE ──toggle()──▶ PENDING ──store ok──▶ COMMITTED ──▶ IDLE
                                  │
                                  └────store fails──▶ ROLLED_BACK ──▶ IDLE

       1. key already in flight → SUPPRESSED (no store call, view untouched)
       2. snapshot view, apply the speculative flip, mark PENDING
       3. await store.apply_toggle() exactly once
       4. ok   → view := authoritative result (COMMITTED or RECONCILED)
          fail → view := snapshot, exception re-raised (ROLLED_BACK)

Who:   SportConnectClient (over HttpToggleStore) and any in-process caller
       holding display state (over SqlToggleStore).

Concurrency:
    Single event loop, cooperative. The only suspension point is the store
    call. The in-flight set is checked and updated without awaiting in
    between, so two toggle() calls for the same key can never both reach the
    store. Different keys proceed independently.
"""

import logging
from typing import Dict, Optional, Set, Tuple

from sportconnect.schemas.toggles import (
    ToggleOperation,
    ToggleOutcome,
    ToggleResult,
    ToggleState,
    ToggleView,
)
from sportconnect.services.store_base import ToggleStore

logger = logging.getLogger(__name__)

ToggleKey = Tuple[str, str, str]


class OptimisticToggleReconciler:
    """
    Optimistic-update-with-rollback driver for toggle operations.

    The caller owns the ToggleView and must not mutate it while a toggle
    for the same key is pending.
    """

    def __init__(self, store: ToggleStore):
        self.store = store
        self._in_flight: Set[ToggleKey] = set()
        self._states: Dict[ToggleKey, ToggleState] = {}
        self._last_results: Dict[ToggleKey, ToggleResult] = {}

    def is_in_flight(self, operation: ToggleOperation) -> bool:
        return operation.key in self._in_flight

    def state(self, operation: ToggleOperation) -> ToggleState:
        """PENDING while in flight, otherwise how the last attempt ended."""
        return self._states.get(operation.key, ToggleState.IDLE)

    def last_result(self, operation: ToggleOperation) -> Optional[ToggleResult]:
        return self._last_results.get(operation.key)

    async def toggle(self, operation: ToggleOperation, view: ToggleView) -> ToggleOutcome:
        """
        Flip membership optimistically and reconcile with the store.

        Args:
            operation: what to toggle.
            view:      the caller's local display state, mutated in place.

        Returns:
            ToggleOutcome.SUPPRESSED   same key already in flight
            ToggleOutcome.COMMITTED    store agreed with the speculative state
            ToggleOutcome.RECONCILED   store disagreed (a concurrent change won);
                                       view now shows the authoritative state

        Raises:
            Whatever the store raised, after the view has been restored to
            exactly its pre-toggle value.
        """
        key = operation.key
        if key in self._in_flight:
            logger.debug("Toggle %s suppressed: already in flight", ":".join(key))
            return ToggleOutcome.SUPPRESSED

        self._in_flight.add(key)
        snapshot = view.model_copy()
        speculative_member = not snapshot.is_member

        view.is_member = speculative_member
        view.count = snapshot.count + 1 if speculative_member else max(0, snapshot.count - 1)
        self._states[key] = ToggleState.PENDING

        try:
            result = await self.store.apply_toggle(operation)
        except BaseException:
            view.is_member = snapshot.is_member
            view.count = snapshot.count
            self._states[key] = ToggleState.ROLLED_BACK
            logger.warning(
                "Toggle %s rolled back to member=%s count=%d",
                ":".join(key),
                snapshot.is_member,
                snapshot.count,
            )
            raise
        finally:
            self._in_flight.discard(key)

        view.is_member = result.is_member
        view.count = result.count
        self._states[key] = ToggleState.COMMITTED
        self._last_results[key] = result

        if result.is_member != speculative_member:
            logger.info(
                "Toggle %s reconciled: authority says member=%s",
                ":".join(key),
                result.is_member,
            )
            return ToggleOutcome.RECONCILED
        return ToggleOutcome.COMMITTED
