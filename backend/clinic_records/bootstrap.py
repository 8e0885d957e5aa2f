from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from clinic_records.core.clock import Clock, system_clock
from clinic_records.core.settings import Settings, settings as default_settings, validate_settings
from clinic_records.db.session import (
    SessionLocal,
    build_engine,
    build_sessionmaker,
    engine,
    init_db,
)
from clinic_records.services.demo_seed import seed_demo_data
from clinic_records.services.store import ClinicStore

logger = logging.getLogger("clinic_records.startup")


def open_clinic(
    settings: Settings | None = None,
    clock: Clock | None = None,
    *,
    actor: str | None = None,
) -> ClinicStore:
    """Build the store for this process: tables, session and, on first run, demo data."""
    if settings is None:
        validate_settings(default_settings)
        settings, bind, session_factory = default_settings, engine, SessionLocal
    else:
        validate_settings(settings)
        bind = build_engine(settings.database_url)
        session_factory = build_sessionmaker(bind)

    init_db(bind)
    store = ClinicStore(
        db=session_factory(),
        clock=clock or system_clock,
        settings=settings,
        actor=actor,
    )

    if store.is_empty():
        if settings.seed_demo_on_empty:
            try:
                counts = seed_demo_data(store)
            except SQLAlchemyError:
                store.rollback()
                raise
            store.commit()
            logger.info("Empty store seeded with demo data (%s patients).", counts["patients"])
        else:
            logger.info("Store is empty; demo seeding disabled.")
    else:
        logger.info("Store opened (%s).", settings.database_url.split("@")[-1])
    return store
