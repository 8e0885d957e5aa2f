from __future__ import annotations

import enum
from datetime import date

from sqlalchemy import JSON, Date, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_records.models.base import Base, TimestampMixin

NO_ALLERGIES = "None"


class Gender(str, enum.Enum):
    male = "male"
    female = "female"
    other = "other"


class CivilStatus(str, enum.Enum):
    single = "single"
    married = "married"
    divorced = "divorced"
    widowed = "widowed"
    domestic_partnership = "domestic_partnership"


class Patient(Base, TimestampMixin):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    national_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    allergies: Mapped[str] = mapped_column(Text, nullable=False, default=NO_ALLERGIES)
    general_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    medical_history: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    current_medications: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    age: Mapped[str | None] = mapped_column(String(10), nullable=True)
    weight: Mapped[str | None] = mapped_column(String(20), nullable=True)
    height: Mapped[str | None] = mapped_column(String(20), nullable=True)
    gender: Mapped[Gender | None] = mapped_column(Enum(Gender, name="gender"), nullable=True)
    civil_status: Mapped[CivilStatus | None] = mapped_column(
        Enum(CivilStatus, name="civil_status"), nullable=True
    )
    occupation: Mapped[str | None] = mapped_column(String(120), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def allergy_list(self) -> list[str]:
        raw = (self.allergies or "").strip()
        if not raw or raw.lower() == NO_ALLERGIES.lower():
            return []
        return [item.strip() for item in raw.split(",") if item.strip()]
