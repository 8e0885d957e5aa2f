from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from clinic_records.models.clinical import ToothCondition, ToothFace


class OdontogramDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    tooth_number: int
    face: ToothFace
    condition: ToothCondition
    notes: str = ""


class OdontogramRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: int
    updated_at: datetime
    details: list[OdontogramDetail]


class PrescriptionItem(BaseModel):
    medication: str = Field(..., min_length=1)
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    notes: Optional[str] = None


class DiagnosisCode(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str


class DiagnosticSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: int
    doctor_id: str
    doctor_name: str
    recorded_at: datetime
    diagnosis_code: Optional[str] = None
    diagnosis_name: Optional[str] = None
    evolution_notes: str = ""
    prescription: list[PrescriptionItem] = Field(default_factory=list)
    odontogram_snapshot: list[OdontogramDetail] = Field(default_factory=list)
    next_visit_plan: list[str] = Field(default_factory=list)
    appointment_id: Optional[int] = None
