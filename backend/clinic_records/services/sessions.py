"""Encounter workflows: the structured diagnostic session and the quick checkout.

Both paths leave ledger, odontogram and appointment state consistent and
finish in a single commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from clinic_records.core.clock import to_utc
from clinic_records.core.errors import InvariantViolation, NotFound
from clinic_records.models import Appointment, AppointmentStatus, DiagnosticSession
from clinic_records.models.clinical import ToothFace
from clinic_records.schemas.clinical import DiagnosisCode, OdontogramDetail, PrescriptionItem
from clinic_records.schemas.ledger import PaymentCreate, TreatmentCreate
from clinic_records.services import odontogram as charting
from clinic_records.services.appointments import get_appointment, stage_transition
from clinic_records.services.audit import log_event
from clinic_records.services.catalog import find_diagnostic_code, find_procedure
from clinic_records.services.ledger import IntegralVisit, stage_integral_visit
from clinic_records.services.patients import get_patient
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)


@dataclass
class SessionDraft:
    """In-progress diagnostic session. Nothing here is persisted until saved."""

    patient_id: int
    odontogram: list[OdontogramDetail] = field(default_factory=list)
    initial_odontogram: list[OdontogramDetail] = field(default_factory=list)
    appointment_id: int | None = None
    diagnosis: DiagnosisCode | None = None
    evolution_notes: str = ""
    prescriptions: list[PrescriptionItem] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)

    @property
    def is_dirty(self) -> bool:
        return bool(
            self.evolution_notes.strip()
            or self.diagnosis is not None
            or self.prescriptions
            or self.next_steps
        )

    @property
    def needs_empty_warning(self) -> bool:
        return self.diagnosis is None and not self.evolution_notes.strip()

    @property
    def has_odontogram_changes(self) -> bool:
        return charting.details_to_json(self.odontogram) != charting.details_to_json(
            self.initial_odontogram
        )

    def select_diagnosis(self, code: str) -> DiagnosisCode:
        entry = find_diagnostic_code(code)
        if entry is None:
            raise NotFound("Diagnostic code", code)
        self.diagnosis = entry
        return entry

    def clear_diagnosis(self) -> None:
        self.diagnosis = None

    def add_prescription(self, item: PrescriptionItem) -> None:
        self.prescriptions.append(item)

    def remove_prescription(self, index: int) -> PrescriptionItem:
        return self.prescriptions.pop(index)

    def add_next_step(self, step: str) -> None:
        cleaned = step.strip()
        if cleaned:
            self.next_steps.append(cleaned)

    def remove_next_step(self, index: int) -> str:
        return self.next_steps.pop(index)

    def edit_tooth(
        self,
        tooth_number: int,
        face: ToothFace | str,
        tool: charting.Tool | str,
        *,
        confirmed: bool = False,
    ) -> charting.EditOutcome:
        outcome = charting.edit_tooth(
            self.odontogram,
            self.initial_odontogram,
            tooth_number,
            face,
            tool,
            confirmed=confirmed,
        )
        if isinstance(outcome, charting.EditApplied):
            self.odontogram = outcome.details
        return outcome

    def set_tooth_note(self, tooth_number: int, face: ToothFace | str, note: str) -> None:
        self.odontogram = charting.set_detail_note(self.odontogram, tooth_number, face, note)

    def reset(self) -> None:
        """Drop the clinical fields; the odontogram buffer is kept."""
        self.diagnosis = None
        self.evolution_notes = ""
        self.prescriptions = []
        self.next_steps = []


@dataclass(frozen=True)
class ChargeSuggestion:
    cost_cents: int | None
    collect_cents: int | None
    prepaid: bool = False


def _linked_appointment(
    store: ClinicStore, appointment_id: int | None, patient_id: int
) -> Appointment | None:
    if appointment_id is None:
        return None
    appointment = get_appointment(store, appointment_id)
    if appointment.patient_id != patient_id:
        raise InvariantViolation(
            f"Appointment {appointment_id} belongs to patient {appointment.patient_id}, "
            f"not {patient_id}"
        )
    return appointment


def start_session(
    store: ClinicStore, patient_id: int, appointment_id: int | None = None
) -> SessionDraft:
    get_patient(store, patient_id)
    _linked_appointment(store, appointment_id, patient_id)
    current = charting.load_current(store, patient_id)
    return SessionDraft(
        patient_id=patient_id,
        odontogram=charting.copy_details(current),
        initial_odontogram=charting.copy_details(current),
        appointment_id=appointment_id,
    )


def save_session(
    store: ClinicStore,
    *,
    patient_id: int,
    doctor_id: str,
    doctor_name: str,
    draft: SessionDraft,
) -> DiagnosticSession:
    """Persist the odontogram buffer, append the session, complete the appointment.

    The odontogram is staged before the session so the live record is never
    newer than the latest session snapshot. Everything lands in one commit.
    """
    if draft.patient_id != patient_id:
        raise InvariantViolation(
            f"Session draft is for patient {draft.patient_id}, not {patient_id}"
        )
    get_patient(store, patient_id)
    appointment = _linked_appointment(store, draft.appointment_id, patient_id)
    charting.assert_consistent(draft.odontogram)
    if draft.needs_empty_warning:
        logger.warning(
            "Diagnostic session for patient %s saved without diagnosis or evolution note.",
            patient_id,
        )

    try:
        record = charting.stage_snapshot(store, patient_id, draft.odontogram)
        session = DiagnosticSession(
            patient_id=patient_id,
            doctor_id=doctor_id,
            doctor_name=doctor_name,
            recorded_at=to_utc(store.now()),
            diagnosis_code=draft.diagnosis.code if draft.diagnosis else None,
            diagnosis_name=draft.diagnosis.name if draft.diagnosis else None,
            evolution_notes=draft.evolution_notes.strip(),
            prescription=[item.model_dump(mode="json") for item in draft.prescriptions],
            odontogram_snapshot=charting.details_to_json(draft.odontogram),
            next_visit_plan=list(draft.next_steps),
            appointment_id=draft.appointment_id,
        )
        store.db.add(session)
        store.db.flush()
        log_event(
            store.db,
            actor=store.actor,
            action="session.saved",
            entity_type="diagnostic_session",
            entity_id=session.id,
            after_obj=session,
        )
        if appointment is not None:
            stage_transition(store, appointment, AppointmentStatus.completed)
    except SQLAlchemyError:
        store.rollback()
        raise
    store.commit()
    logger.info(
        "Diagnostic session %s saved for patient %s (odontogram %s, appointment %s).",
        session.id,
        patient_id,
        record.id,
        draft.appointment_id,
    )
    draft.initial_odontogram = charting.copy_details(draft.odontogram)
    return session


def list_sessions(store: ClinicStore, patient_id: int) -> list[DiagnosticSession]:
    stmt = (
        select(DiagnosticSession)
        .where(DiagnosticSession.patient_id == patient_id)
        .order_by(DiagnosticSession.recorded_at.desc())
    )
    return list(store.db.scalars(stmt))


def attend_patient(
    store: ClinicStore,
    *,
    patient_id: int,
    treatment: TreatmentCreate,
    payment: PaymentCreate,
    appointment_id: int | None = None,
) -> IntegralVisit:
    """Chair-side checkout: treatment, optional payment, then appointment completion."""
    patient = get_patient(store, patient_id)
    appointment = _linked_appointment(store, appointment_id, patient_id)

    try:
        visit = stage_integral_visit(store, patient, treatment, payment)
        if appointment is not None:
            stage_transition(store, appointment, AppointmentStatus.completed)
    except SQLAlchemyError:
        store.rollback()
        raise
    store.commit()
    logger.info(
        "Patient %s attended: treatment %s, payment %s, appointment %s.",
        patient.id,
        visit.treatment.id,
        visit.payment.id if visit.payment else "none",
        appointment_id,
    )
    return visit


def suggested_charge(
    store: ClinicStore, procedure: str, appointment_id: int | None = None
) -> ChargeSuggestion:
    """Default checkout figures for ``procedure``.

    The price agreed at booking wins while the procedure still matches the
    booked one; otherwise the catalog price applies. A fully prepaid
    appointment suggests collecting nothing.
    """
    appointment = get_appointment(store, appointment_id) if appointment_id is not None else None
    prepaid = bool(appointment and appointment.is_paid)

    cost: int | None = None
    booked = (appointment.procedure or "").strip().lower() if appointment else ""
    if booked and booked == procedure.strip().lower() and appointment.price_cents is not None:
        cost = appointment.price_cents
    else:
        item = find_procedure(store, procedure)
        if item is not None:
            cost = item.price_cents

    return ChargeSuggestion(
        cost_cents=cost,
        collect_cents=0 if prepaid else cost,
        prepaid=prepaid,
    )
