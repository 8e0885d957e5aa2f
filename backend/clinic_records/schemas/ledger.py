from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from clinic_records.models.ledger import PaymentMethod, PaymentStatus, TreatmentStatus
from clinic_records.schemas.patient import PatientSummary


class TreatmentCreate(BaseModel):
    procedure: str
    cost_cents: int
    description: str = ""
    status: TreatmentStatus = TreatmentStatus.completed
    diagnosis: Optional[str] = None
    performed_at: Optional[datetime] = None


class TreatmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: str
    procedure: str
    description: str
    diagnosis: Optional[str] = None
    cost_cents: int
    status: TreatmentStatus
    performed_at: datetime


class PaymentCreate(BaseModel):
    amount_cents: int = 0
    method: PaymentMethod = PaymentMethod.cash
    related_procedure: Optional[str] = None
    note: Optional[str] = None
    paid_at: Optional[datetime] = None


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: str
    amount_cents: int
    paid_at: datetime
    method: PaymentMethod
    related_procedure: Optional[str] = None
    note: Optional[str] = None
    status: PaymentStatus


class BalanceOut(BaseModel):
    total_cost_cents: int = 0
    total_paid_cents: int = 0
    debt_cents: int = 0


class DebtorOut(BaseModel):
    patient: PatientSummary
    debt_cents: int
    last_activity_at: datetime
