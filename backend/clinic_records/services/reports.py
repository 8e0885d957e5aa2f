from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select

from clinic_records.core.errors import InvalidAmount
from clinic_records.models import (
    Appointment,
    AppointmentStatus,
    ClinicProfile,
    Patient,
    Payment,
    PaymentStatus,
    Treatment,
)
from clinic_records.schemas.reports import DashboardStatsOut, GoalProgressOut
from clinic_records.services.appointments import appointments_on
from clinic_records.services.audit import log_event, snapshot_model
from clinic_records.services.ledger import income_for_period
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)


def dashboard_stats(store: ClinicStore) -> DashboardStatsOut:
    income = store.db.scalar(
        select(func.coalesce(func.sum(Payment.amount_cents), 0)).where(
            Payment.status == PaymentStatus.completed
        )
    )
    patients = store.db.scalar(select(func.count(Patient.id)))
    pending = store.db.scalar(
        select(func.count(Appointment.id)).where(Appointment.status == AppointmentStatus.pending)
    )
    today = appointments_on(store, store.today(), include_cancelled=False)
    return DashboardStatsOut(
        total_income_cents=int(income or 0),
        total_patients=int(patients or 0),
        appointments_today=len(today),
        pending_appointments=int(pending or 0),
    )


def recent_treated_patients(store: ClinicStore, limit: int | None = None) -> list[Patient]:
    """Distinct patients ordered by their most recent treatment."""
    limit = store.settings.recent_patients_limit if limit is None else limit
    latest = func.max(Treatment.performed_at).label("latest")
    stmt = (
        select(Treatment.patient_id, latest)
        .group_by(Treatment.patient_id)
        .order_by(latest.desc(), Treatment.patient_id.desc())
        .limit(limit)
    )
    patient_ids = [row.patient_id for row in store.db.execute(stmt)]
    if not patient_ids:
        return []
    patients = {
        patient.id: patient
        for patient in store.db.scalars(select(Patient).where(Patient.id.in_(patient_ids)))
    }
    return [patients[patient_id] for patient_id in patient_ids if patient_id in patients]


def get_income_goal(store: ClinicStore) -> int:
    """Monthly income target in cents; the configured default until one is saved."""
    profile = store.db.scalar(select(ClinicProfile).limit(1))
    if profile is None:
        return store.settings.default_income_goal_cents
    return profile.monthly_income_goal_cents


def set_income_goal(store: ClinicStore, goal_cents: int) -> int:
    if goal_cents < 0:
        raise InvalidAmount(f"Income goal cannot be negative (got {goal_cents})")
    profile = store.db.scalar(select(ClinicProfile).limit(1))
    before = snapshot_model(profile)
    if profile is None:
        profile = ClinicProfile(monthly_income_goal_cents=goal_cents)
        store.db.add(profile)
    else:
        profile.monthly_income_goal_cents = goal_cents
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="clinic_profile.goal_updated",
        entity_type="clinic_profile",
        entity_id=profile.id,
        before_data=before,
        after_obj=profile,
    )
    store.commit()
    logger.info("Monthly income goal set to %s cents.", goal_cents)
    return goal_cents


def goal_progress(store: ClinicStore, *, today: date | None = None) -> GoalProgressOut:
    """This month's completed income measured against the monthly goal."""
    goal = get_income_goal(store)
    income = income_for_period(store, "month", today=today)
    percent = 100.0 if goal == 0 else round(income * 100 / goal, 1)
    return GoalProgressOut(
        goal_cents=goal,
        income_cents=income,
        remaining_cents=max(goal - income, 0),
        percent=percent,
        reached=income >= goal,
    )
