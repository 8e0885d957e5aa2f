from __future__ import annotations

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_records.models.base import Base, UTCDateTime


class ToothFace(str, enum.Enum):
    whole = "whole"
    top = "top"
    bottom = "bottom"
    left = "left"
    right = "right"
    center = "center"


class ToothCondition(str, enum.Enum):
    healthy = "healthy"
    caries = "caries"
    restoration_good = "restoration_good"
    root_canal = "root_canal"
    veneer = "veneer"
    whitening = "whitening"
    sealant = "sealant"
    missing = "missing"
    bridge = "bridge"
    implant = "implant"


def _new_record_id() -> str:
    return str(uuid4())


class OdontogramRecord(Base):
    __tablename__ = "odontogram_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_record_id)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id"), nullable=False, unique=True, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    details: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)


class DiagnosticSession(Base):
    __tablename__ = "diagnostic_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_record_id)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    doctor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    diagnosis_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    diagnosis_name: Mapped[str | None] = mapped_column(String(240), nullable=True)
    evolution_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    prescription: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    odontogram_snapshot: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    next_visit_plan: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    appointment_id: Mapped[int | None] = mapped_column(
        ForeignKey("appointments.id"), nullable=True
    )
