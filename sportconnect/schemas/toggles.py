"""
SportConnect Backend — Toggle Types
===================================

What:  Types shared by the optimistic toggle reconciler and its stores.
How:   One tagged operation (ToggleKind.LIKE | ToggleKind.FOLLOW) replaces
       separate like/follow code paths; stores branch on `kind` to choose the
       primary entity and its membership fields.

Entity pairs:
    kind     primary entity (must exist)         counter-entity (created if missing)
    ------   ----------------------------------  -------------------------------------
    like     post.likes / post.like_count        actor profile.liked_posts
    follow   target profile.followers / count    actor profile.following / count

    "Membership" below is always the primary set: is the actor in post.likes,
    is the actor in target.followers.
"""

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sportconnect.exceptions import ValidationError


class ToggleKind(str, Enum):
    LIKE = "like"
    FOLLOW = "follow"


class ToggleState(str, Enum):
    """Per-key lifecycle: IDLE → PENDING → COMMITTED | ROLLED_BACK → IDLE."""

    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class ToggleOutcome(str, Enum):
    COMMITTED = "committed"      # authority agreed with the speculative state
    RECONCILED = "reconciled"    # a concurrent change won; view silently corrected
    SUPPRESSED = "suppressed"    # same toggle already in flight; nothing done


class ToggleOperation(BaseModel):
    """One "flip membership" request by `actor_id` against `target_id`."""

    model_config = ConfigDict(frozen=True)

    kind: ToggleKind
    actor_id: str = Field(min_length=1)
    target_id: str = Field(min_length=1)

    @model_validator(mode="after")
    def reject_self_follow(self) -> "ToggleOperation":
        if self.kind is ToggleKind.FOLLOW and self.actor_id == self.target_id:
            raise ValidationError(message="You cannot follow yourself", field="target_id")
        return self

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.kind.value, self.actor_id, self.target_id)


class ToggleView(BaseModel):
    """
    Caller-owned display state for one toggle (heart icon + counter,
    follow button + follower count). The reconciler mutates it in place.
    """

    is_member: bool = False
    count: int = Field(default=0, ge=0)


class ToggleResult(BaseModel):
    """Authoritative state after a committed toggle transaction."""

    operation: ToggleOperation
    is_member: bool
    count: int = Field(ge=0)
    counter_count: int = Field(default=0, ge=0)
