from __future__ import annotations

import logging

from sqlalchemy import func, or_, select

from clinic_records.core.errors import DependentRecordsExist, NotFound
from clinic_records.models import (
    Appointment,
    DiagnosticSession,
    OdontogramRecord,
    Patient,
    Payment,
    Treatment,
)
from clinic_records.schemas.patient import PatientCreate, PatientUpdate
from clinic_records.services.audit import log_event, snapshot_model
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)

_DEPENDENT_MODELS = (
    ("treatments", Treatment),
    ("payments", Payment),
    ("appointments", Appointment),
    ("odontogram records", OdontogramRecord),
    ("diagnostic sessions", DiagnosticSession),
)


def get_patient(store: ClinicStore, patient_id: int) -> Patient:
    patient = store.db.get(Patient, patient_id)
    if not patient:
        raise NotFound("Patient", patient_id)
    return patient


def list_patients(store: ClinicStore) -> list[Patient]:
    return list(store.db.scalars(select(Patient).order_by(Patient.id)))


def search_patients(store: ClinicStore, query: str) -> list[Patient]:
    needle = query.strip().lower()
    if not needle:
        return []
    pattern = f"%{needle}%"
    stmt = (
        select(Patient)
        .where(
            or_(
                func.lower(Patient.first_name).like(pattern),
                func.lower(Patient.last_name).like(pattern),
                func.lower(Patient.first_name + " " + Patient.last_name).like(pattern),
                func.lower(Patient.national_id).like(pattern),
            )
        )
        .order_by(Patient.last_name, Patient.first_name, Patient.id)
    )
    return list(store.db.scalars(stmt))


def create_patient(store: ClinicStore, payload: PatientCreate) -> Patient:
    patient = Patient(**payload.model_dump(), created_at=store.now())
    store.db.add(patient)
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="patient.created",
        entity_type="patient",
        entity_id=patient.id,
        after_obj=patient,
    )
    store.commit()
    logger.info("Patient %s created.", patient.id)
    return patient


def update_patient(store: ClinicStore, patient_id: int, payload: PatientUpdate) -> Patient:
    """Apply a partial edit. ``id`` and ``created_at`` are not editable.

    Denormalized names on existing treatments, payments and appointments are
    left as they were recorded.
    """
    patient = get_patient(store, patient_id)
    before = snapshot_model(patient)
    changes = payload.model_dump(exclude_unset=True)
    for key, value in changes.items():
        if value is None and key in {"first_name", "last_name", "national_id", "allergies"}:
            continue
        setattr(patient, key, value)
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="patient.updated",
        entity_type="patient",
        entity_id=patient.id,
        before_data=before,
        after_obj=patient,
    )
    store.commit()
    logger.info("Patient %s updated (%s).", patient.id, ", ".join(sorted(changes)) or "no fields")
    return patient


def dependent_record_counts(store: ClinicStore, patient_id: int) -> dict[str, int]:
    counts: dict[str, int] = {}
    for label, model in _DEPENDENT_MODELS:
        total = int(
            store.db.scalar(
                select(func.count()).select_from(model).where(model.patient_id == patient_id)
            )
            or 0
        )
        if total:
            counts[label] = total
    return counts


def delete_patient(store: ClinicStore, patient_id: int) -> None:
    patient = get_patient(store, patient_id)
    dependents = dependent_record_counts(store, patient_id)
    if dependents:
        summary = ", ".join(f"{count} {label}" for label, count in dependents.items())
        raise DependentRecordsExist(
            f"Patient {patient_id} still has {summary}; remove or reassign them first"
        )
    log_event(
        store.db,
        actor=store.actor,
        action="patient.deleted",
        entity_type="patient",
        entity_id=patient.id,
        before_obj=patient,
    )
    store.db.delete(patient)
    store.commit()
    logger.info("Patient %s deleted.", patient_id)
