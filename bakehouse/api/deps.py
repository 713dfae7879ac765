# bakehouse/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Header

from bakehouse.core.actor import ActorContext


async def get_actor(
    x_actor_id: Optional[str] = Header(default=None),
    x_actor_name: Optional[str] = Header(default=None),
) -> ActorContext:
    """
    Actor of the request, from X-Actor-Id / X-Actor-Name.

    Identity only: whoever sits in front of this service has already decided
    the caller may act. Requests never carry capabilities.
    """
    return ActorContext(
        actor_id=(x_actor_id or "").strip() or None,
        name=(x_actor_name or "").strip() or None,
    )
