from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from clinic_records.core.clock import ensure_aware, to_utc
from clinic_records.core.errors import InvalidAmount, InvalidSchedule, NotFound
from clinic_records.models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    Payment,
    PaymentMethod,
)
from clinic_records.schemas.ledger import PaymentCreate
from clinic_records.services.audit import log_event, snapshot_model
from clinic_records.services.ledger import stage_payment
from clinic_records.services.patients import get_patient
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)

_TYPE_KEYWORDS: tuple[tuple[AppointmentType, tuple[str, ...]], ...] = (
    (AppointmentType.emergency, ("emergencia", "emergency", "dolor agudo")),
    (AppointmentType.treatment, ("tratamiento", "treatment", "endodoncia", "cirug", "surgery")),
    (AppointmentType.review, ("revis", "control", "review", "check-up")),
)


def infer_appointment_type(procedure: str | None) -> AppointmentType:
    label = str(procedure or "").strip().lower()
    if not label:
        return AppointmentType.consultation
    for mapped_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in label for keyword in keywords):
            return mapped_type
    return AppointmentType.consultation


def _compose_notes(procedure: str | None, notes: str | None) -> str | None:
    parts = [part.strip() for part in (procedure, notes) if part and part.strip()]
    return " - ".join(parts) or None


def validate_start(store: ClinicStore, starts_at: datetime) -> datetime:
    """Reject bookings in the past, allowing the configured tolerance for UI latency."""
    starts_at = ensure_aware(starts_at, store.settings.tz)
    tolerance = timedelta(seconds=store.settings.schedule_tolerance_seconds)
    if starts_at < store.now() - tolerance:
        raise InvalidSchedule(
            f"Appointments cannot be booked in the past ({starts_at.isoformat()})"
        )
    return starts_at


def get_appointment(store: ClinicStore, appointment_id: int) -> Appointment:
    appointment = store.db.get(Appointment, appointment_id)
    if not appointment:
        raise NotFound("Appointment", appointment_id)
    return appointment


def book_appointment(
    store: ClinicStore,
    *,
    patient_id: int,
    starts_at: datetime,
    appointment_type: AppointmentType | None = None,
    procedure: str | None = None,
    notes: str | None = None,
    price_cents: int | None = None,
    deposit_cents: int | None = None,
    deposit_method: PaymentMethod = PaymentMethod.cash,
) -> Appointment:
    """Book a pending appointment, optionally collecting an advance.

    A positive deposit is recorded as a payment linked to the procedure and
    referenced from the appointment; ``is_paid`` is set when the deposit
    covers the agreed price.
    """
    starts_at = validate_start(store, starts_at)
    if price_cents is not None and price_cents < 0:
        raise InvalidAmount(f"Agreed price cannot be negative ({price_cents})")
    if deposit_cents is not None and deposit_cents < 0:
        raise InvalidAmount(f"Deposit cannot be negative ({deposit_cents})")
    patient = get_patient(store, patient_id)

    is_paid = (
        deposit_cents is not None and price_cents is not None and deposit_cents >= price_cents
    )
    resolved_type = appointment_type or infer_appointment_type(procedure)

    try:
        deposit: Payment | None = None
        if deposit_cents:
            concept = procedure or resolved_type.value
            deposit = stage_payment(
                store,
                patient,
                PaymentCreate(
                    amount_cents=deposit_cents,
                    method=deposit_method,
                    related_procedure=concept,
                    note=f"Advance for appointment: {concept}",
                ),
            )
        appointment = Appointment(
            patient_id=patient.id,
            patient_name=patient.full_name,
            starts_at=to_utc(starts_at),
            appointment_type=resolved_type,
            status=AppointmentStatus.pending,
            procedure=procedure,
            notes=_compose_notes(procedure, notes),
            price_cents=price_cents,
            is_paid=is_paid,
            related_payment_id=deposit.id if deposit else None,
        )
        store.db.add(appointment)
        store.db.flush()
        log_event(
            store.db,
            actor=store.actor,
            action="appointment.booked",
            entity_type="appointment",
            entity_id=appointment.id,
            after_obj=appointment,
        )
    except SQLAlchemyError:
        store.rollback()
        raise
    store.commit()
    logger.info(
        "Appointment %s booked for patient %s at %s (deposit %s, paid=%s).",
        appointment.id,
        patient.id,
        starts_at.isoformat(),
        deposit_cents or 0,
        is_paid,
    )
    return appointment


def stage_transition(
    store: ClinicStore, appointment: Appointment, target: AppointmentStatus
) -> bool:
    """Move a pending appointment to ``target`` inside the open unit of work.

    Completed and cancelled are terminal; anything but pending is left alone
    and reported as ``False``.
    """
    if appointment.status != AppointmentStatus.pending:
        logger.debug(
            "Appointment %s is %s; ignoring transition to %s.",
            appointment.id,
            appointment.status.value,
            target.value,
        )
        return False
    before = snapshot_model(appointment)
    appointment.status = target
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action=f"appointment.{target.value}",
        entity_type="appointment",
        entity_id=appointment.id,
        before_data=before,
        after_obj=appointment,
    )
    return True


def complete_appointment(store: ClinicStore, appointment_id: int) -> Appointment:
    appointment = get_appointment(store, appointment_id)
    if stage_transition(store, appointment, AppointmentStatus.completed):
        store.commit()
        logger.info("Appointment %s completed.", appointment.id)
    return appointment


def cancel_appointment(store: ClinicStore, appointment_id: int) -> Appointment:
    """Tombstone an appointment; it stays listed so calendars can strike it through."""
    appointment = get_appointment(store, appointment_id)
    if stage_transition(store, appointment, AppointmentStatus.cancelled):
        store.commit()
        logger.info("Appointment %s cancelled.", appointment.id)
    return appointment


def _local_day_bounds(store: ClinicStore, day: date) -> tuple[datetime, datetime]:
    tz = store.settings.tz
    start = datetime.combine(day, time.min, tzinfo=tz)
    return to_utc(start), to_utc(start + timedelta(days=1))


def list_appointments(
    store: ClinicStore,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    patient_id: int | None = None,
    include_cancelled: bool = True,
) -> list[Appointment]:
    stmt = select(Appointment)
    if start is not None:
        stmt = stmt.where(Appointment.starts_at >= to_utc(start, store.settings.tz))
    if end is not None:
        stmt = stmt.where(Appointment.starts_at < to_utc(end, store.settings.tz))
    if patient_id is not None:
        stmt = stmt.where(Appointment.patient_id == patient_id)
    if not include_cancelled:
        stmt = stmt.where(Appointment.status != AppointmentStatus.cancelled)
    stmt = stmt.order_by(Appointment.starts_at, Appointment.id)
    return list(store.db.scalars(stmt))


def appointments_on(
    store: ClinicStore, day: date, *, include_cancelled: bool = True
) -> list[Appointment]:
    start, end = _local_day_bounds(store, day)
    return list_appointments(store, start=start, end=end, include_cancelled=include_cancelled)


def upcoming_appointments(store: ClinicStore, limit: int | None = None) -> list[Appointment]:
    start, _ = _local_day_bounds(store, store.today())
    limit = store.settings.upcoming_appointments_limit if limit is None else limit
    stmt = (
        select(Appointment)
        .where(
            Appointment.status == AppointmentStatus.pending,
            Appointment.starts_at >= start,
        )
        .order_by(Appointment.starts_at, Appointment.id)
        .limit(limit)
    )
    return list(store.db.scalars(stmt))
