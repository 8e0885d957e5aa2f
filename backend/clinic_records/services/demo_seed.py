from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from clinic_records.core.clock import to_utc
from clinic_records.models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    DiagnosticSession,
    Gender,
    NO_ALLERGIES,
    OdontogramRecord,
    Patient,
    Payment,
    PaymentMethod,
    PaymentStatus,
    ProcedureItem,
    Reminder,
    Treatment,
    TreatmentStatus,
)
from clinic_records.models.clinical import ToothCondition, ToothFace
from clinic_records.schemas.clinical import OdontogramDetail
from clinic_records.services.odontogram import details_to_json
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)

DEMO_PROCEDURES: tuple[tuple[str, int], ...] = (
    ("Consulta General", 10_000),
    ("Dolor Agudo (Emergencia)", 15_000),
    ("Limpieza Dental", 25_000),
    ("Resina Simple", 30_000),
    ("Endodoncia", 80_000),
    ("Extracción Simple", 20_000),
    ("Blanqueamiento", 120_000),
    ("Ortodoncia Mensual", 35_000),
    ("Valoración Estética", 0),
)

DEMO_PATIENT_NAMES: tuple[tuple[str, str], ...] = (
    ("Juan", "Pérez"),
    ("María", "González"),
    ("Carlos", "Rodríguez"),
    ("Ana", "López"),
    ("Pedro", "Martínez"),
    ("Laura", "Sánchez"),
    ("Diego", "Fernández"),
    ("Sofía", "Ramírez"),
    ("Miguel", "Torres"),
    ("Lucía", "Vargas"),
    ("Andrés", "Castro"),
    ("Elena", "Romero"),
    ("Gabriel", "Suárez"),
    ("Valentina", "Mendoza"),
)

DEMO_DOCTOR_ID = "demo-doctor"
DEMO_DOCTOR_NAME = "Dra. Demo"

# (text, completed)
DEMO_REMINDERS: tuple[tuple[str, bool], ...] = (
    ("Comprar insumos de endodoncia", False),
    ("Llamar al técnico dental", True),
    ("Revisar agenda de la próxima semana", False),
    ("Planificar vacaciones 2026", False),
)

_PAST_APPOINTMENTS = 7


def _ascii_slug(value: str) -> str:
    table = str.maketrans("áéíóúñÁÉÍÓÚÑ", "aeiounAEIOUN")
    return value.translate(table).lower()


def _demo_patient(index: int, first_name: str, last_name: str, created_at: datetime) -> Patient:
    return Patient(
        first_name=first_name,
        last_name=last_name,
        national_id=f"{1_000_000 + index} LP",
        phone=f"700{10_000 + index}",
        email=f"{_ascii_slug(first_name)}.{_ascii_slug(last_name)}@example.com",
        age=str(20 + index),
        gender=Gender.male if index % 2 == 0 else Gender.female,
        general_description="Registered for a general check-up.",
        allergies="Penicilina" if index % 3 == 0 else NO_ALLERGIES,
        medical_history=["Diabetes"] if index % 4 == 0 else [],
        current_medications=[],
        created_at=created_at,
    )


def seed_demo_data(store: ClinicStore) -> dict[str, int]:
    """Add the demo procedures, patients and their history to the open unit of work.

    Dates are relative to the store clock. The caller commits.
    """
    db = store.db
    now = store.now()
    today = store.today()
    tz = store.settings.tz

    procedures = [ProcedureItem(name=name, price_cents=price) for name, price in DEMO_PROCEDURES]
    db.add_all(procedures)
    db.flush()

    counts = {
        "patients": 0,
        "treatments": 0,
        "payments": 0,
        "appointments": 0,
        "reminders": 0,
    }
    patients: list[Patient] = []
    for index, (first_name, last_name) in enumerate(DEMO_PATIENT_NAMES):
        created_at = to_utc(now - timedelta(days=7 * (index + 2)))
        patient = _demo_patient(index, first_name, last_name, created_at)
        db.add(patient)
        db.flush()
        patients.append(patient)
        counts["patients"] += 1

        procedure = procedures[index % len(procedures)]
        cost = (index + 1) * 15_000
        paid = cost // 2 if index % 2 == 0 else cost
        db.add(
            Treatment(
                patient_id=patient.id,
                patient_name=patient.full_name,
                procedure=procedure.name,
                description="Treatment completed without incident.",
                cost_cents=cost,
                status=TreatmentStatus.completed,
                performed_at=created_at + timedelta(days=1),
            )
        )
        counts["treatments"] += 1
        db.add(
            Payment(
                patient_id=patient.id,
                patient_name=patient.full_name,
                amount_cents=paid,
                paid_at=created_at + timedelta(days=1, hours=1),
                method=PaymentMethod.qr if index % 3 == 0 else PaymentMethod.cash,
                related_procedure=procedure.name,
                note="Payment on account",
                status=PaymentStatus.completed,
            )
        )
        counts["payments"] += 1

        if index < _PAST_APPOINTMENTS:
            day = today - timedelta(days=index + 1)
            status = AppointmentStatus.completed
        else:
            day = today + timedelta(days=index - _PAST_APPOINTMENTS + 1)
            status = AppointmentStatus.pending
        starts_at = datetime.combine(day, time(9 + index % 8, 0), tzinfo=tz)
        db.add(
            Appointment(
                patient_id=patient.id,
                patient_name=patient.full_name,
                starts_at=to_utc(starts_at),
                appointment_type=(
                    AppointmentType.treatment if index % 2 == 0 else AppointmentType.consultation
                ),
                status=status,
                procedure=procedure.name,
                notes=procedure.name,
                price_cents=procedure.price_cents,
                is_paid=False,
            )
        )
        counts["appointments"] += 1

    db.flush()

    charted = patients[0]
    details = [
        OdontogramDetail(tooth_number=16, face=ToothFace.top, condition=ToothCondition.caries),
        OdontogramDetail(
            tooth_number=26, face=ToothFace.center, condition=ToothCondition.restoration_good
        ),
        OdontogramDetail(
            tooth_number=38,
            face=ToothFace.whole,
            condition=ToothCondition.missing,
            notes="Missing",
        ),
    ]
    recorded_at = to_utc(now - timedelta(days=1))
    db.add(
        OdontogramRecord(
            patient_id=charted.id,
            updated_at=recorded_at,
            details=details_to_json(details),
        )
    )
    db.add(
        DiagnosticSession(
            patient_id=charted.id,
            doctor_id=DEMO_DOCTOR_ID,
            doctor_name=DEMO_DOCTOR_NAME,
            recorded_at=recorded_at,
            diagnosis_code="K02.1",
            diagnosis_name="Caries de la dentina",
            evolution_notes="Caries on 16; restoration on 26 in good condition.",
            prescription=[
                {
                    "medication": "Ibuprofeno 400 mg",
                    "dosage": "1 tablet",
                    "frequency": "every 8 hours",
                    "duration": "3 days",
                    "notes": None,
                }
            ],
            odontogram_snapshot=details_to_json(details),
            next_visit_plan=["Resina Simple on 16"],
        )
    )
    db.add_all(
        Reminder(
            text=text,
            completed=completed,
            created_by=DEMO_DOCTOR_NAME,
            created_by_id=DEMO_DOCTOR_ID,
            created_at=to_utc(now),
        )
        for text, completed in DEMO_REMINDERS
    )
    counts["reminders"] = len(DEMO_REMINDERS)
    db.flush()
    logger.info(
        "Demo data staged: %s procedures, %s patients, %s appointments.",
        len(procedures),
        counts["patients"],
        counts["appointments"],
    )
    return counts
