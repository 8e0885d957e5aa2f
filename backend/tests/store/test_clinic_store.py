from datetime import timedelta

from sqlalchemy import func, select

from clinic_records.models import AuditLog, PaymentMethod
from clinic_records.schemas.reminder import ReminderCreate
from clinic_records.schemas.snapshot import ClinicSnapshot
from clinic_records.services.appointments import book_appointment
from clinic_records.services.demo_seed import DEMO_PATIENT_NAMES, DEMO_PROCEDURES, DEMO_REMINDERS
from clinic_records.services.ledger import get_balance, record_payment, record_treatment
from clinic_records.services.odontogram import apply_edit, save_snapshot
from clinic_records.services.patients import list_patients
from clinic_records.services.reminders import add_reminder, toggle_reminder
from clinic_records.services.reports import get_income_goal, set_income_goal
from clinic_records.services.sessions import save_session, start_session


def _populate(store, patient):
    record_treatment(store, patient_id=patient.id, procedure="Endodoncia", cost_cents=80_000)
    deposit_appt = book_appointment(
        store,
        patient_id=patient.id,
        starts_at=store.now() + timedelta(days=2),
        procedure="Endodoncia",
        price_cents=80_000,
        deposit_cents=30_000,
    )
    record_payment(store, patient_id=patient.id, amount_cents=10_000, method=PaymentMethod.qr)
    save_snapshot(store, patient.id, apply_edit([], 46, "top", "caries"))
    draft = start_session(store, patient.id, appointment_id=deposit_appt.id)
    draft.evolution_notes = "Root canal started."
    save_session(store, patient_id=patient.id, doctor_id="d1", doctor_name="Dr. Quispe", draft=draft)
    done = add_reminder(store, ReminderCreate(text="Order gutta-percha", created_by="Dr. Quispe"))
    toggle_reminder(store, done.id)
    set_income_goal(store, 1_500_000)


def test_empty_store(store):
    assert store.is_empty()
    snapshot = store.load_all()
    assert snapshot == ClinicSnapshot()


def test_load_all_then_save_all_round_trips(store, patient):
    _populate(store, patient)
    before = store.load_all()
    balance = get_balance(store, patient.id)

    store.save_all(before)
    store.db.expire_all()
    after = store.load_all()

    assert after == before
    assert len(after.reminders) == 1 and after.reminders[0].completed
    assert after.income_goal_cents == 1_500_000
    assert get_balance(store, patient.id) == balance


def test_save_all_replaces_state(store, make_patient):
    keep = make_patient(first_name="Keep")
    drop = make_patient(first_name="Drop")
    record_treatment(store, patient_id=drop.id, procedure="Consulta General", cost_cents=10_000)
    snapshot = store.load_all()
    snapshot = snapshot.model_copy(
        update={
            "patients": [item for item in snapshot.patients if item.id == keep.id],
            "treatments": [],
        }
    )

    store.save_all(snapshot)

    assert [item.id for item in list_patients(store)] == [keep.id]
    assert get_balance(store, drop.id).debt_cents == 0


def test_reset_to_factory_reseeds_demo_set(store, patient):
    _populate(store, patient)

    store.reset_to_factory()
    snapshot = store.load_all()

    assert len(snapshot.patients) == len(DEMO_PATIENT_NAMES)
    assert [item.name for item in snapshot.procedures] == [name for name, _ in DEMO_PROCEDURES]
    assert len(snapshot.treatments) == len(DEMO_PATIENT_NAMES)
    assert len(snapshot.appointments) == len(DEMO_PATIENT_NAMES)
    assert len(snapshot.odontogram_records) == 1
    assert len(snapshot.diagnostic_sessions) == 1
    assert [item.text for item in snapshot.reminders] == [text for text, _ in DEMO_REMINDERS]
    assert snapshot.income_goal_cents is None
    assert get_income_goal(store) == store.settings.default_income_goal_cents
    assert patient.national_id not in {item.national_id for item in snapshot.patients}
    assert store.db.scalar(select(func.count(AuditLog.id))) == 0
    assert not store.is_empty()


def test_demo_appointments_straddle_today(store):
    store.reset_to_factory()
    snapshot = store.load_all()
    today = store.today()

    past = [item for item in snapshot.appointments if store.local(item.starts_at).date() < today]
    future = [item for item in snapshot.appointments if store.local(item.starts_at).date() > today]
    assert len(past) == 7 and len(future) == 7
    assert all(item.status.value == "completed" for item in past)
    assert all(item.status.value == "pending" for item in future)


def test_mutations_are_audited(store, patient):
    record_treatment(store, patient_id=patient.id, procedure="Endodoncia", cost_cents=80_000)
    actions = store.db.scalars(select(AuditLog.action).order_by(AuditLog.id)).all()
    assert actions == ["patient.created", "treatment.recorded"]
    entry = store.db.scalars(select(AuditLog).order_by(AuditLog.id.desc())).first()
    assert entry.actor == "pytest"
    assert entry.after_json["cost_cents"] == 80_000
