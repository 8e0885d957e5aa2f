from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinic_records.models.patient import NO_ALLERGIES, CivilStatus, Gender


class Medication(BaseModel):
    name: str
    dosage: str = ""
    frequency: str = ""


class PatientBase(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    national_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    allergies: str = NO_ALLERGIES
    general_description: str = ""
    medical_history: list[str] = Field(default_factory=list)
    current_medications: list[Medication] = Field(default_factory=list)
    birth_date: Optional[date] = None
    age: Optional[str] = None
    weight: Optional[str] = None
    height: Optional[str] = None
    gender: Optional[Gender] = None
    civil_status: Optional[CivilStatus] = None
    occupation: Optional[str] = None

    @field_validator("allergies", mode="before")
    @classmethod
    def _join_allergies(cls, value):
        if value is None:
            return NO_ALLERGIES
        if isinstance(value, (list, tuple)):
            items = [str(item).strip() for item in value if str(item).strip()]
            return ", ".join(items) if items else NO_ALLERGIES
        if isinstance(value, str) and not value.strip():
            return NO_ALLERGIES
        return value


class PatientCreate(PatientBase):
    pass


class PatientUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    national_id: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    allergies: Optional[str] = None
    general_description: Optional[str] = None
    medical_history: Optional[list[str]] = None
    current_medications: Optional[list[Medication]] = None
    birth_date: Optional[date] = None
    age: Optional[str] = None
    weight: Optional[str] = None
    height: Optional[str] = None
    gender: Optional[Gender] = None
    civil_status: Optional[CivilStatus] = None
    occupation: Optional[str] = None

    @field_validator("allergies", mode="before")
    @classmethod
    def _join_allergies(cls, value):
        if isinstance(value, (list, tuple)):
            items = [str(item).strip() for item in value if str(item).strip()]
            return ", ".join(items) if items else NO_ALLERGIES
        return value


class PatientOut(PatientBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


class PatientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    national_id: str
