from datetime import timedelta

import pytest
from sqlalchemy import select

from clinic_records.core.errors import InvariantViolation, NotFound
from clinic_records.models import AppointmentStatus, DiagnosticSession, OdontogramRecord
from clinic_records.schemas.clinical import PrescriptionItem
from clinic_records.services.appointments import book_appointment
from clinic_records.services.odontogram import (
    EditApplied,
    RequiresConfirmation,
    get_record,
    load_current,
    save_snapshot,
)
from clinic_records.services.sessions import list_sessions, save_session, start_session


def _save(store, draft, patient_id):
    return save_session(
        store,
        patient_id=patient_id,
        doctor_id="doc-1",
        doctor_name="Dra. Rojas",
        draft=draft,
    )


def test_draft_dirty_tracking(store, patient):
    draft = start_session(store, patient.id)
    assert not draft.is_dirty
    assert draft.needs_empty_warning

    draft.add_next_step("   ")
    assert not draft.is_dirty
    draft.add_next_step("Control in two weeks")
    assert draft.is_dirty
    draft.remove_next_step(0)
    assert not draft.is_dirty

    draft.select_diagnosis("k04.0")
    assert draft.diagnosis.name == "Pulpitis"
    assert draft.is_dirty and not draft.needs_empty_warning
    draft.clear_diagnosis()

    draft.add_prescription(PrescriptionItem(medication="Amoxicilina 500 mg"))
    assert draft.is_dirty
    draft.reset()
    assert not draft.is_dirty


def test_unknown_diagnosis_code(store, patient):
    draft = start_session(store, patient.id)
    with pytest.raises(NotFound):
        draft.select_diagnosis("X99.9")


def test_save_session_persists_odontogram_and_snapshot(store, patient):
    draft = start_session(store, patient.id)
    assert isinstance(draft.edit_tooth(16, "top", "caries"), EditApplied)
    draft.select_diagnosis("K02.1")
    draft.evolution_notes = "Caries on 16."
    draft.add_prescription(PrescriptionItem(medication="Ibuprofeno", dosage="400 mg"))
    draft.add_next_step("Resina on 16")

    session = _save(store, draft, patient.id)

    assert session.diagnosis_code == "K02.1"
    assert session.prescription[0]["medication"] == "Ibuprofeno"
    assert session.next_visit_plan == ["Resina on 16"]
    assert [(item.tooth_number, item.face.value) for item in load_current(store, patient.id)] == [
        (16, "top")
    ]
    assert session.odontogram_snapshot == get_record(store, patient.id).details


def test_session_snapshot_is_immutable(store, patient):
    draft = start_session(store, patient.id)
    draft.edit_tooth(21, "whole", "implant")
    draft.evolution_notes = "Implant placed."
    session = _save(store, draft, patient.id)
    snapshot_before = [dict(item) for item in session.odontogram_snapshot]

    draft.edit_tooth(22, "top", "caries")
    draft.odontogram.clear()
    save_snapshot(store, patient.id, [])

    store.db.expire_all()
    reloaded = store.db.get(DiagnosticSession, session.id)
    assert reloaded.odontogram_snapshot == snapshot_before
    assert load_current(store, patient.id) == []


def test_odontogram_record_is_replaced_not_duplicated(store, patient):
    first = save_snapshot(store, patient.id, [])
    first_id = first.id
    second = save_snapshot(store, patient.id, [])

    records = store.db.scalars(
        select(OdontogramRecord).where(OdontogramRecord.patient_id == patient.id)
    ).all()
    assert len(records) == 1
    assert records[0].id == second.id != first_id


def test_persisted_finding_requires_confirmation_in_next_session(store, patient):
    draft = start_session(store, patient.id)
    draft.edit_tooth(36, "left", "caries")
    draft.evolution_notes = "First visit"
    _save(store, draft, patient.id)

    follow_up = start_session(store, patient.id)
    outcome = follow_up.edit_tooth(36, "left", "restoration_good")
    assert isinstance(outcome, RequiresConfirmation)
    assert follow_up.odontogram == follow_up.initial_odontogram

    applied = follow_up.edit_tooth(36, "left", "restoration_good", confirmed=True)
    assert isinstance(applied, EditApplied)
    assert follow_up.has_odontogram_changes


def test_saving_completes_linked_appointment(store, patient):
    appointment = book_appointment(
        store, patient_id=patient.id, starts_at=store.now() + timedelta(minutes=5)
    )
    draft = start_session(store, patient.id, appointment_id=appointment.id)
    draft.evolution_notes = "Routine check"

    session = _save(store, draft, patient.id)

    assert session.appointment_id == appointment.id
    assert appointment.status == AppointmentStatus.completed


def test_empty_session_saves_with_warning(store, patient, caplog):
    draft = start_session(store, patient.id)
    with caplog.at_level("WARNING", logger="clinic_records.services.sessions"):
        session = _save(store, draft, patient.id)
    assert session.diagnosis_code is None
    assert "without diagnosis or evolution note" in caplog.text


def test_draft_for_other_patient_is_rejected(store, make_patient):
    owner = make_patient()
    other = make_patient()
    draft = start_session(store, owner.id)
    with pytest.raises(InvariantViolation):
        _save(store, draft, other.id)


def test_appointment_of_other_patient_is_rejected(store, make_patient):
    owner = make_patient()
    other = make_patient()
    appointment = book_appointment(
        store, patient_id=owner.id, starts_at=store.now() + timedelta(hours=1)
    )
    with pytest.raises(InvariantViolation):
        start_session(store, other.id, appointment_id=appointment.id)


def test_list_sessions_newest_first(store, patient):
    draft = start_session(store, patient.id)
    draft.evolution_notes = "First"
    first = _save(store, draft, patient.id)

    store.clock = lambda: first.recorded_at + timedelta(days=7)
    draft.reset()
    draft.evolution_notes = "Second"
    second = _save(store, draft, patient.id)

    assert [item.id for item in list_sessions(store, patient.id)] == [second.id, first.id]
