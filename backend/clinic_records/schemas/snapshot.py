from typing import Optional

from pydantic import BaseModel, Field

from clinic_records.schemas.appointment import AppointmentOut
from clinic_records.schemas.catalog import ProcedureItemOut
from clinic_records.schemas.clinical import DiagnosticSessionOut, OdontogramRecordOut
from clinic_records.schemas.ledger import PaymentOut, TreatmentOut
from clinic_records.schemas.patient import PatientOut
from clinic_records.schemas.reminder import ReminderOut


class ClinicSnapshot(BaseModel):
    """Every persisted collection, as exchanged with the storage collaborator."""

    patients: list[PatientOut] = Field(default_factory=list)
    treatments: list[TreatmentOut] = Field(default_factory=list)
    payments: list[PaymentOut] = Field(default_factory=list)
    appointments: list[AppointmentOut] = Field(default_factory=list)
    odontogram_records: list[OdontogramRecordOut] = Field(default_factory=list)
    diagnostic_sessions: list[DiagnosticSessionOut] = Field(default_factory=list)
    procedures: list[ProcedureItemOut] = Field(default_factory=list)
    reminders: list[ReminderOut] = Field(default_factory=list)
    income_goal_cents: Optional[int] = None
