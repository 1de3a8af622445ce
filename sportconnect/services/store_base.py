"""
SportConnect Backend — Abstract Toggle Store Interface
======================================================

What:  Abstract base class defining the contract for the authoritative store
       behind like/follow toggles.
How:   Concrete implementations inherit from ToggleStore and implement
       apply_toggle(). The reconciler and the routes only see this interface.
Who:   Called by OptimisticToggleReconciler (client side) and by the toggle
       routes (server side, via SqlToggleStore).

Implementations:
    - SqlToggleStore:  SQLAlchemy transaction with row locks (the service)
    - HttpToggleStore: POSTs to the service's toggle endpoints (API client)
    - tests/conftest.py FakeToggleStore: in-memory, scriptable failures
"""

from abc import ABC, abstractmethod

from sportconnect.schemas.toggles import ToggleOperation, ToggleResult


class ToggleStore(ABC):
    """
    Atomic conditional toggle against authoritative state.

    Contract:
        - The whole read-modify-write happens in ONE atomic transaction:
          both entities are written, or neither is.
        - Membership is recomputed from freshly read state, never from the
          caller's speculative view: member → remove, otherwise → add.
        - Counts are written as len(set), together with the set.
        - A missing counter-entity (the actor's own profile) is created with
          default state inside the same transaction.
        - A missing primary entity raises TransactionConflictError.
        - No automatic retry.
    """

    @abstractmethod
    async def apply_toggle(self, operation: ToggleOperation) -> ToggleResult:
        """
        Flip the actor's membership in the target's set.

        Args:
            operation: kind (like | follow), actor id and target id.

        Returns:
            ToggleResult with the committed membership flag and counts.

        Raises:
            TransactionConflictError: primary entity missing or malformed.
            DatabaseError / transport errors: the transaction did not commit.
        """
        ...
