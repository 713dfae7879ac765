# bakehouse/core/actor.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Optional


class Capability(StrEnum):
    """
    Capabilities that unlock guarded operations.

    - PREP_SHEET_WORKFLOW  may write the workflow-owned order statuses
                           (scheduled / produced); only granted by the
                           prep sheet workflow to itself
    """

    PREP_SHEET_WORKFLOW = "PREP_SHEET_WORKFLOW"


@dataclass(frozen=True)
class ActorContext:
    """
    Who is performing an operation. Passed explicitly through every core call;
    the core never reads ambient "current user" state.

    Permission to perform the operation has already been decided by the
    auth layer; the actor is recorded for audit (completed_by, closed_by ...).
    """

    actor_id: Optional[str] = None
    name: Optional[str] = None
    capabilities: frozenset[Capability] = field(default_factory=frozenset)

    @property
    def label(self) -> str:
        return self.name or self.actor_id or "system"

    def can(self, cap: Capability) -> bool:
        return cap in self.capabilities

    def granted(self, cap: Capability) -> "ActorContext":
        return replace(self, capabilities=self.capabilities | {cap})


SYSTEM_ACTOR = ActorContext(actor_id="system", name="system")
