# bakehouse/db/base.py
from __future__ import annotations

import importlib
import logging

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("bakehouse.models")


class Base(DeclarativeBase):
    """Single ORM Base for the whole project."""

    pass


_INITIALIZED: bool = False

# import order matters for string relationship targets
MODEL_MODULES = [
    "bakehouse.models.flavor",
    "bakehouse.models.bake_slot",
    "bakehouse.models.order",
    "bakehouse.models.prep_sheet",
    "bakehouse.models.production_record",
    "bakehouse.models.audit_event",
]


def init_models(*, force: bool = False) -> None:
    """
    Import every model module and configure mappers once, so that
    Base.metadata is complete before create_all / Alembic autogenerate.
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        log.debug("init_models() called again; already initialized, skipping.")
        return

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", len(MODEL_MODULES))
