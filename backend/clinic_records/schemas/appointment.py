from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from clinic_records.models.appointment import AppointmentStatus, AppointmentType


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: str
    starts_at: datetime
    appointment_type: AppointmentType
    status: AppointmentStatus
    procedure: Optional[str] = None
    notes: Optional[str] = None
    price_cents: Optional[int] = None
    is_paid: bool = False
    related_payment_id: Optional[int] = None
