from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import select

from clinic_records.core.errors import InvalidAmount, InvalidSchedule, NotFound
from clinic_records.models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    Payment,
    PaymentMethod,
)
from clinic_records.services.appointments import (
    appointments_on,
    book_appointment,
    cancel_appointment,
    complete_appointment,
    infer_appointment_type,
    list_appointments,
    upcoming_appointments,
)
from clinic_records.services.ledger import get_balance


def test_booking_within_tolerance_succeeds(store, patient):
    appointment = book_appointment(
        store, patient_id=patient.id, starts_at=store.now() - timedelta(seconds=30)
    )
    assert appointment.status == AppointmentStatus.pending
    assert appointment.patient_name == "Juan Pérez"


def test_booking_beyond_tolerance_fails(store, patient):
    with pytest.raises(InvalidSchedule):
        book_appointment(
            store, patient_id=patient.id, starts_at=store.now() - timedelta(seconds=120)
        )
    assert store.db.scalars(select(Appointment)).all() == []


def test_naive_start_is_clinic_local(store, patient):
    appointment = book_appointment(
        store, patient_id=patient.id, starts_at=datetime(2026, 1, 15, 15, 30)
    )
    assert store.local(appointment.starts_at).hour == 15


def test_deposit_covering_price_marks_paid(store, patient):
    appointment = book_appointment(
        store,
        patient_id=patient.id,
        starts_at=store.now() + timedelta(days=1),
        procedure="Limpieza Dental",
        price_cents=25_000,
        deposit_cents=25_000,
        deposit_method=PaymentMethod.qr,
    )

    assert appointment.is_paid is True
    deposit = store.db.get(Payment, appointment.related_payment_id)
    assert deposit.amount_cents == 25_000
    assert deposit.method == PaymentMethod.qr
    assert deposit.related_procedure == "Limpieza Dental"
    assert "Limpieza Dental" in deposit.note
    assert get_balance(store, patient.id).total_paid_cents == 25_000


def test_partial_deposit_is_not_paid(store, patient):
    appointment = book_appointment(
        store,
        patient_id=patient.id,
        starts_at=store.now() + timedelta(days=1),
        procedure="Endodoncia",
        price_cents=80_000,
        deposit_cents=20_000,
    )
    assert appointment.is_paid is False
    assert appointment.related_payment_id is not None


def test_no_deposit_records_no_payment(store, patient):
    appointment = book_appointment(
        store, patient_id=patient.id, starts_at=store.now() + timedelta(hours=2), price_cents=100
    )
    assert appointment.related_payment_id is None
    assert appointment.is_paid is False
    assert store.db.scalars(select(Payment)).all() == []


@pytest.mark.parametrize(
    ("price", "deposit"),
    [(-1, None), (1_000, -5)],
)
def test_negative_price_or_deposit_rejected(store, patient, price, deposit):
    with pytest.raises(InvalidAmount):
        book_appointment(
            store,
            patient_id=patient.id,
            starts_at=store.now() + timedelta(days=1),
            price_cents=price,
            deposit_cents=deposit,
        )
    assert store.db.scalars(select(Payment)).all() == []


def test_booking_for_unknown_patient(store):
    with pytest.raises(NotFound):
        book_appointment(store, patient_id=404, starts_at=store.now() + timedelta(days=1))


@pytest.mark.parametrize(
    ("procedure", "expected"),
    [
        ("Endodoncia", AppointmentType.treatment),
        ("Tratamiento de conducto", AppointmentType.treatment),
        ("Revisión mensual", AppointmentType.review),
        ("Control Ortodoncia", AppointmentType.review),
        ("Dolor Agudo (Emergencia)", AppointmentType.emergency),
        ("Consulta General", AppointmentType.consultation),
        (None, AppointmentType.consultation),
        ("  ", AppointmentType.consultation),
    ],
)
def test_infer_appointment_type(procedure, expected):
    assert infer_appointment_type(procedure) == expected


def test_explicit_type_wins(store, patient):
    appointment = book_appointment(
        store,
        patient_id=patient.id,
        starts_at=store.now() + timedelta(days=1),
        appointment_type=AppointmentType.review,
        procedure="Endodoncia",
        notes="Bring x-rays",
    )
    assert appointment.appointment_type == AppointmentType.review
    assert appointment.notes == "Endodoncia - Bring x-rays"


def test_transitions_are_terminal_and_idempotent(store, patient):
    first = book_appointment(store, patient_id=patient.id, starts_at=store.now() + timedelta(hours=1))
    second = book_appointment(store, patient_id=patient.id, starts_at=store.now() + timedelta(hours=2))

    assert complete_appointment(store, first.id).status == AppointmentStatus.completed
    assert cancel_appointment(store, first.id).status == AppointmentStatus.completed
    assert complete_appointment(store, first.id).status == AppointmentStatus.completed

    assert cancel_appointment(store, second.id).status == AppointmentStatus.cancelled
    assert complete_appointment(store, second.id).status == AppointmentStatus.cancelled


def test_transition_unknown_appointment(store):
    with pytest.raises(NotFound):
        complete_appointment(store, 77)
    with pytest.raises(NotFound):
        cancel_appointment(store, 77)


def test_listing_windows(store, patient):
    today_slot = book_appointment(
        store, patient_id=patient.id, starts_at=datetime(2026, 1, 15, 16, 0)
    )
    tomorrow = book_appointment(store, patient_id=patient.id, starts_at=datetime(2026, 1, 16, 9, 0))
    cancelled = book_appointment(
        store, patient_id=patient.id, starts_at=datetime(2026, 1, 15, 17, 0)
    )
    cancel_appointment(store, cancelled.id)

    assert [item.id for item in appointments_on(store, date(2026, 1, 15))] == [
        today_slot.id,
        cancelled.id,
    ]
    assert [
        item.id for item in appointments_on(store, date(2026, 1, 15), include_cancelled=False)
    ] == [today_slot.id]
    assert [item.id for item in upcoming_appointments(store)] == [today_slot.id, tomorrow.id]
    assert [item.id for item in upcoming_appointments(store, limit=1)] == [today_slot.id]
    assert [
        item.id
        for item in list_appointments(
            store, start=datetime(2026, 1, 16, 0, 0), end=datetime(2026, 1, 17, 0, 0)
        )
    ] == [tomorrow.id]
