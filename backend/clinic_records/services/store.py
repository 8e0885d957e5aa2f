from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_records.core.clock import Clock, ensure_aware, system_clock
from clinic_records.core.settings import Settings, settings as default_settings
from clinic_records.models import (
    Appointment,
    AuditLog,
    ClinicProfile,
    DiagnosticSession,
    OdontogramRecord,
    Patient,
    Payment,
    ProcedureItem,
    Reminder,
    Treatment,
)
from clinic_records.schemas.appointment import AppointmentOut
from clinic_records.schemas.catalog import ProcedureItemOut
from clinic_records.schemas.clinical import DiagnosticSessionOut, OdontogramRecordOut
from clinic_records.schemas.ledger import PaymentOut, TreatmentOut
from clinic_records.schemas.patient import PatientOut
from clinic_records.schemas.reminder import ReminderOut
from clinic_records.schemas.snapshot import ClinicSnapshot

logger = logging.getLogger(__name__)

# Children first; reversed for inserts.
_DELETE_ORDER = (
    DiagnosticSession,
    OdontogramRecord,
    Appointment,
    Payment,
    Treatment,
    ProcedureItem,
    Patient,
    Reminder,
    ClinicProfile,
)


@dataclass
class ClinicStore:
    """Explicit unit-of-work context handed to every service function.

    Holds the SQLAlchemy session, the clock used for every "now" decision and
    the active settings. One store per process (or per test).
    """

    db: Session
    clock: Clock = system_clock
    settings: Settings = field(default_factory=lambda: default_settings)
    actor: str | None = None

    def now(self) -> datetime:
        return ensure_aware(self.clock(), self.settings.tz)

    def local(self, value: datetime) -> datetime:
        return ensure_aware(value, self.settings.tz).astimezone(self.settings.tz)

    def today(self) -> date:
        return self.local(self.now()).date()

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Commit failed; unit of work rolled back.", exc_info=True)
            raise

    def rollback(self) -> None:
        self.db.rollback()

    def is_empty(self) -> bool:
        return not self.db.scalar(select(func.count(Patient.id))) and not self.db.scalar(
            select(func.count(ProcedureItem.id))
        )

    def load_all(self) -> ClinicSnapshot:
        db = self.db
        return ClinicSnapshot(
            patients=[
                PatientOut.model_validate(row)
                for row in db.scalars(select(Patient).order_by(Patient.id))
            ],
            treatments=[
                TreatmentOut.model_validate(row)
                for row in db.scalars(select(Treatment).order_by(Treatment.id))
            ],
            payments=[
                PaymentOut.model_validate(row)
                for row in db.scalars(select(Payment).order_by(Payment.id))
            ],
            appointments=[
                AppointmentOut.model_validate(row)
                for row in db.scalars(select(Appointment).order_by(Appointment.id))
            ],
            odontogram_records=[
                OdontogramRecordOut.model_validate(row)
                for row in db.scalars(select(OdontogramRecord).order_by(OdontogramRecord.patient_id))
            ],
            diagnostic_sessions=[
                DiagnosticSessionOut.model_validate(row)
                for row in db.scalars(
                    select(DiagnosticSession).order_by(DiagnosticSession.recorded_at)
                )
            ],
            procedures=[
                ProcedureItemOut.model_validate(row)
                for row in db.scalars(select(ProcedureItem).order_by(ProcedureItem.id))
            ],
            reminders=[
                ReminderOut.model_validate(row)
                for row in db.scalars(select(Reminder).order_by(Reminder.id))
            ],
            income_goal_cents=db.scalar(
                select(ClinicProfile.monthly_income_goal_cents).limit(1)
            ),
        )

    def _wipe(self, *, include_audit: bool) -> None:
        for model in _DELETE_ORDER:
            self.db.execute(delete(model))
        if include_audit:
            self.db.execute(delete(AuditLog))

    def save_all(self, snapshot: ClinicSnapshot) -> None:
        """Replace the persisted state graph with ``snapshot``.

        The whole replacement is one transaction; on failure nothing changes.
        """
        db = self.db
        try:
            self._wipe(include_audit=False)
            db.flush()
            db.add_all(Patient(**item.model_dump()) for item in snapshot.patients)
            db.add_all(ProcedureItem(**item.model_dump()) for item in snapshot.procedures)
            db.add_all(Reminder(**item.model_dump()) for item in snapshot.reminders)
            if snapshot.income_goal_cents is not None:
                db.add(ClinicProfile(monthly_income_goal_cents=snapshot.income_goal_cents))
            db.flush()
            db.add_all(Treatment(**item.model_dump()) for item in snapshot.treatments)
            db.add_all(Payment(**item.model_dump()) for item in snapshot.payments)
            db.flush()
            db.add_all(Appointment(**item.model_dump()) for item in snapshot.appointments)
            db.flush()
            db.add_all(
                OdontogramRecord(
                    **item.model_dump(mode="json", exclude={"updated_at"}),
                    updated_at=item.updated_at,
                )
                for item in snapshot.odontogram_records
            )
            db.add_all(
                DiagnosticSession(
                    **item.model_dump(mode="json", exclude={"recorded_at"}),
                    recorded_at=item.recorded_at,
                )
                for item in snapshot.diagnostic_sessions
            )
        except SQLAlchemyError:
            db.rollback()
            raise
        self.commit()
        logger.info(
            "State graph saved (%s patients, %s treatments, %s payments, %s appointments).",
            len(snapshot.patients),
            len(snapshot.treatments),
            len(snapshot.payments),
            len(snapshot.appointments),
        )

    def reset_to_factory(self) -> None:
        from clinic_records.services.demo_seed import seed_demo_data

        try:
            self._wipe(include_audit=True)
            self.db.flush()
            seed_demo_data(self)
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.commit()
        logger.info("Store reset to factory demo dataset.")
