from clinic_records.models.base import Base
from clinic_records.models.audit_log import AuditLog
from clinic_records.models.patient import NO_ALLERGIES, CivilStatus, Gender, Patient
from clinic_records.models.ledger import (
    Payment,
    PaymentMethod,
    PaymentStatus,
    Treatment,
    TreatmentStatus,
)
from clinic_records.models.appointment import Appointment, AppointmentStatus, AppointmentType
from clinic_records.models.clinical import (
    DiagnosticSession,
    OdontogramRecord,
    ToothCondition,
    ToothFace,
)
from clinic_records.models.catalog import ProcedureItem
from clinic_records.models.reminder import Reminder
from clinic_records.models.clinic_profile import ClinicProfile

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "AuditLog",
    "Base",
    "CivilStatus",
    "ClinicProfile",
    "DiagnosticSession",
    "Gender",
    "NO_ALLERGIES",
    "OdontogramRecord",
    "Patient",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "ProcedureItem",
    "Reminder",
    "ToothCondition",
    "ToothFace",
    "Treatment",
    "TreatmentStatus",
]
