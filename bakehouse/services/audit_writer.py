# bakehouse/services/audit_writer.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bakehouse.core.actor import ActorContext
from bakehouse.models.audit_event import AuditEvent

logger = logging.getLogger("bakehouse.audit")


class AuditEventWriter:
    """
    Single audit entry point: one row in audit_events per call.

    The row is written inside a SAVEPOINT so a failing insert only rolls back
    itself; the caller's transaction carries on untouched. Failures are logged
    and never raised.
    """

    @staticmethod
    async def write(
        session: AsyncSession,
        *,
        category: str,
        event: str,
        ref: str,
        actor: Optional[ActorContext] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload: Dict[str, Any] = dict(meta or {})
        label = actor.label if actor is not None else None

        try:
            async with session.begin_nested():
                session.add(
                    AuditEvent(
                        category=category,
                        event=event,
                        ref=str(ref),
                        actor=label,
                        meta=payload,
                    )
                )
        except Exception as e:
            logger.debug("audit_events insert failed: %s", e)
            logger.info(
                "[audit-fallback] %s | %s | %s | %s",
                category,
                event,
                ref,
                json.dumps(payload, ensure_ascii=False, default=str),
            )
