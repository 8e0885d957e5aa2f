from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Literal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from clinic_records.core.clock import to_utc
from clinic_records.core.errors import InvalidAmount, NotFound
from clinic_records.models import (
    Patient,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Treatment,
    TreatmentStatus,
)
from clinic_records.schemas.ledger import BalanceOut, DebtorOut, PaymentCreate, TreatmentCreate
from clinic_records.schemas.patient import PatientSummary
from clinic_records.services.audit import log_event, snapshot_model
from clinic_records.services.patients import get_patient
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)

IncomePeriod = Literal["day", "month", "year"]

INTEGRAL_VISIT_NOTE = "Payment collected during integral visit"


@dataclass(frozen=True)
class IntegralVisit:
    treatment: Treatment
    payment: Payment | None


def _check_amount(label: str, value: int) -> None:
    if value < 0:
        raise InvalidAmount(f"{label} cannot be negative ({value})")


def _resolve_when(store: ClinicStore, value: datetime | None) -> datetime:
    if value is None:
        return to_utc(store.now())
    return to_utc(value, store.settings.tz)


def stage_treatment(
    store: ClinicStore, patient: Patient, payload: TreatmentCreate
) -> Treatment:
    """Add a treatment to the open unit of work; the caller commits."""
    treatment = Treatment(
        patient_id=patient.id,
        patient_name=patient.full_name,
        procedure=payload.procedure,
        description=payload.description,
        diagnosis=payload.diagnosis,
        cost_cents=payload.cost_cents,
        status=payload.status,
        performed_at=_resolve_when(store, payload.performed_at),
    )
    store.db.add(treatment)
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="treatment.recorded",
        entity_type="treatment",
        entity_id=treatment.id,
        after_obj=treatment,
    )
    return treatment


def stage_payment(store: ClinicStore, patient: Patient, payload: PaymentCreate) -> Payment:
    if payload.amount_cents == 0:
        logger.warning("Zero-value payment recorded for patient %s.", patient.id)
    payment = Payment(
        patient_id=patient.id,
        patient_name=patient.full_name,
        amount_cents=payload.amount_cents,
        paid_at=_resolve_when(store, payload.paid_at),
        method=payload.method,
        related_procedure=payload.related_procedure,
        note=payload.note,
        status=PaymentStatus.completed,
    )
    store.db.add(payment)
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="payment.recorded",
        entity_type="payment",
        entity_id=payment.id,
        after_obj=payment,
    )
    return payment


def record_treatment(
    store: ClinicStore,
    *,
    patient_id: int,
    procedure: str,
    cost_cents: int,
    description: str = "",
    status: TreatmentStatus = TreatmentStatus.completed,
    diagnosis: str | None = None,
    performed_at: datetime | None = None,
) -> Treatment:
    _check_amount("Treatment cost", cost_cents)
    patient = get_patient(store, patient_id)
    payload = TreatmentCreate(
        procedure=procedure,
        cost_cents=cost_cents,
        description=description,
        status=status,
        diagnosis=diagnosis,
        performed_at=performed_at,
    )
    treatment = stage_treatment(store, patient, payload)
    store.commit()
    logger.info(
        "Treatment %s recorded for patient %s (%s, %s cents).",
        treatment.id,
        patient.id,
        treatment.procedure,
        treatment.cost_cents,
    )
    return treatment


def record_payment(
    store: ClinicStore,
    *,
    patient_id: int,
    amount_cents: int,
    method: PaymentMethod,
    related_procedure: str | None = None,
    note: str | None = None,
    paid_at: datetime | None = None,
) -> Payment:
    _check_amount("Payment amount", amount_cents)
    patient = get_patient(store, patient_id)
    payload = PaymentCreate(
        amount_cents=amount_cents,
        method=method,
        related_procedure=related_procedure,
        note=note,
        paid_at=paid_at,
    )
    payment = stage_payment(store, patient, payload)
    store.commit()
    logger.info(
        "Payment %s recorded for patient %s (%s cents, %s).",
        payment.id,
        patient.id,
        payment.amount_cents,
        payment.method.value,
    )
    return payment


def cancel_payment(store: ClinicStore, payment_id: int) -> Payment:
    """Flip a payment to cancelled. Cancelling twice is a silent no-op."""
    payment = store.db.get(Payment, payment_id)
    if not payment:
        raise NotFound("Payment", payment_id)
    if payment.status == PaymentStatus.cancelled:
        logger.debug("Payment %s already cancelled; nothing to do.", payment_id)
        return payment

    before = snapshot_model(payment)
    payment.status = PaymentStatus.cancelled
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="payment.cancelled",
        entity_type="payment",
        entity_id=payment.id,
        before_data=before,
        after_obj=payment,
    )
    store.commit()
    logger.info("Payment %s cancelled for patient %s.", payment.id, payment.patient_id)
    return payment


def compute_balance(treatments: Iterable[Treatment], payments: Iterable[Payment]) -> BalanceOut:
    total_cost = sum(item.cost_cents for item in treatments)
    total_paid = sum(
        item.amount_cents for item in payments if item.status == PaymentStatus.completed
    )
    return BalanceOut(
        total_cost_cents=total_cost,
        total_paid_cents=total_paid,
        debt_cents=total_cost - total_paid,
    )


def get_balance(store: ClinicStore, patient_id: int) -> BalanceOut:
    """Derived balance; unknown patients simply have nothing recorded."""
    treatments = store.db.scalars(select(Treatment).where(Treatment.patient_id == patient_id))
    payments = store.db.scalars(select(Payment).where(Payment.patient_id == patient_id))
    return compute_balance(list(treatments), list(payments))


def list_treatments(store: ClinicStore, patient_id: int) -> list[Treatment]:
    stmt = (
        select(Treatment)
        .where(Treatment.patient_id == patient_id)
        .order_by(Treatment.performed_at.desc(), Treatment.id.desc())
    )
    return list(store.db.scalars(stmt))


def list_payments(
    store: ClinicStore,
    patient_id: int | None = None,
    *,
    include_cancelled: bool = True,
) -> list[Payment]:
    stmt = select(Payment)
    if patient_id is not None:
        stmt = stmt.where(Payment.patient_id == patient_id)
    if not include_cancelled:
        stmt = stmt.where(Payment.status == PaymentStatus.completed)
    stmt = stmt.order_by(Payment.paid_at.desc(), Payment.id.desc())
    return list(store.db.scalars(stmt))


def list_debtors(store: ClinicStore) -> list[DebtorOut]:
    patients = list(store.db.scalars(select(Patient).order_by(Patient.id)))
    treatments_by_patient: dict[int, list[Treatment]] = {}
    for treatment in store.db.scalars(select(Treatment)):
        treatments_by_patient.setdefault(treatment.patient_id, []).append(treatment)
    payments_by_patient: dict[int, list[Payment]] = {}
    for payment in store.db.scalars(select(Payment)):
        payments_by_patient.setdefault(payment.patient_id, []).append(payment)

    debtors: list[DebtorOut] = []
    for patient in patients:
        treatments = treatments_by_patient.get(patient.id, [])
        balance = compute_balance(treatments, payments_by_patient.get(patient.id, []))
        if balance.debt_cents <= 0:
            continue
        last_activity = max(
            (item.performed_at for item in treatments),
            default=patient.created_at,
        )
        debtors.append(
            DebtorOut(
                patient=PatientSummary.model_validate(patient),
                debt_cents=balance.debt_cents,
                last_activity_at=last_activity,
            )
        )
    return debtors


def total_outstanding_debt(store: ClinicStore) -> int:
    return sum(item.debt_cents for item in list_debtors(store))


def income_for_period(
    store: ClinicStore, period: IncomePeriod = "month", *, today: date | None = None
) -> int:
    """Completed payments inside the clinic-local day, month or year of ``today``."""
    today = today or store.today()

    def _in_period(moment: datetime) -> bool:
        local = store.local(moment).date()
        if period == "day":
            return local == today
        if period == "month":
            return (local.year, local.month) == (today.year, today.month)
        if period == "year":
            return local.year == today.year
        raise ValueError(f"Unknown income period: {period!r}")

    return sum(
        payment.amount_cents
        for payment in list_payments(store, include_cancelled=False)
        if _in_period(payment.paid_at)
    )


def stage_integral_visit(
    store: ClinicStore,
    patient: Patient,
    treatment: TreatmentCreate,
    payment: PaymentCreate,
) -> IntegralVisit:
    """Stage a treatment and, when money changed hands, its payment.

    The payment is linked to the treatment's procedure name; a zero amount
    records no payment. Amounts are validated before anything is added.
    """
    _check_amount("Treatment cost", treatment.cost_cents)
    _check_amount("Payment amount", payment.amount_cents)
    recorded_treatment = stage_treatment(store, patient, treatment)
    recorded_payment = None
    if payment.amount_cents > 0:
        recorded_payment = stage_payment(
            store,
            patient,
            payment.model_copy(
                update={
                    "related_procedure": recorded_treatment.procedure,
                    "note": payment.note or INTEGRAL_VISIT_NOTE,
                }
            ),
        )
    return IntegralVisit(treatment=recorded_treatment, payment=recorded_payment)


def record_integral_visit(
    store: ClinicStore,
    *,
    patient_id: int,
    treatment: TreatmentCreate,
    payment: PaymentCreate,
) -> IntegralVisit:
    _check_amount("Treatment cost", treatment.cost_cents)
    _check_amount("Payment amount", payment.amount_cents)
    patient = get_patient(store, patient_id)

    try:
        visit = stage_integral_visit(store, patient, treatment, payment)
    except SQLAlchemyError:
        store.rollback()
        raise
    store.commit()
    logger.info(
        "Integral visit for patient %s: treatment %s, payment %s.",
        patient.id,
        visit.treatment.id,
        visit.payment.id if visit.payment else "none",
    )
    return visit
