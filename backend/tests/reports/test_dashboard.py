from datetime import datetime, timedelta

from clinic_records.models import PaymentMethod
from clinic_records.services.appointments import book_appointment, cancel_appointment
from clinic_records.services.ledger import cancel_payment, record_payment, record_treatment
from clinic_records.services.reports import dashboard_stats, recent_treated_patients


def test_dashboard_stats(store, make_patient):
    ana = make_patient(first_name="Ana")
    luis = make_patient(first_name="Luis")
    record_payment(store, patient_id=ana.id, amount_cents=5_000, method=PaymentMethod.cash)
    void = record_payment(store, patient_id=luis.id, amount_cents=9_000, method=PaymentMethod.qr)
    cancel_payment(store, void.id)
    book_appointment(store, patient_id=ana.id, starts_at=datetime(2026, 1, 15, 11, 0))
    dropped = book_appointment(store, patient_id=luis.id, starts_at=datetime(2026, 1, 15, 12, 0))
    cancel_appointment(store, dropped.id)
    book_appointment(store, patient_id=luis.id, starts_at=datetime(2026, 1, 20, 9, 0))

    stats = dashboard_stats(store)

    assert stats.total_income_cents == 5_000
    assert stats.total_patients == 2
    assert stats.appointments_today == 1
    assert stats.pending_appointments == 2


def test_recent_treated_patients_are_distinct_and_ordered(store, make_patient):
    first = make_patient()
    second = make_patient()
    untreated = make_patient()
    now = store.now()
    record_treatment(
        store,
        patient_id=first.id,
        procedure="Consulta General",
        cost_cents=10_000,
        performed_at=now - timedelta(days=5),
    )
    record_treatment(
        store,
        patient_id=second.id,
        procedure="Resina Simple",
        cost_cents=30_000,
        performed_at=now - timedelta(days=2),
    )
    record_treatment(
        store,
        patient_id=first.id,
        procedure="Endodoncia",
        cost_cents=80_000,
        performed_at=now - timedelta(days=1),
    )

    recent = recent_treated_patients(store)

    assert [item.id for item in recent] == [first.id, second.id]
    assert untreated.id not in {item.id for item in recent}
    assert [item.id for item in recent_treated_patients(store, limit=1)] == [first.id]
