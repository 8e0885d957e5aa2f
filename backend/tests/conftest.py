from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from clinic_records.core.clock import fixed_clock
from clinic_records.core.settings import Settings
from clinic_records.db.session import build_engine, build_sessionmaker, init_db
from clinic_records.schemas.patient import PatientCreate
from clinic_records.services.patients import create_patient
from clinic_records.services.store import ClinicStore

CLINIC_TZ = ZoneInfo("America/La_Paz")
CLINIC_NOW = datetime(2026, 1, 15, 10, 0, tzinfo=CLINIC_TZ)


@pytest.fixture()
def clinic_settings():
    return Settings(
        database_url="sqlite://",
        clinic_timezone="America/La_Paz",
        schedule_tolerance_seconds=60,
        seed_demo_on_empty=False,
    )


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db(engine):
    session = build_sessionmaker(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db, clinic_settings):
    return ClinicStore(
        db=db,
        clock=fixed_clock(CLINIC_NOW),
        settings=clinic_settings,
        actor="pytest",
    )


@pytest.fixture()
def make_patient(store):
    counter = {"value": 0}

    def _make(**overrides):
        counter["value"] += 1
        data = {
            "first_name": "Test",
            "last_name": f"Patient{counter['value']}",
            "national_id": f"{9_000_000 + counter['value']} LP",
        }
        data.update(overrides)
        return create_patient(store, PatientCreate(**data))

    return _make


@pytest.fixture()
def patient(make_patient):
    return make_patient(first_name="Juan", last_name="Pérez")
