from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_records.models.base import Base, TimestampMixin, UTCDateTime


class TreatmentStatus(str, enum.Enum):
    planned = "planned"
    in_progress = "in_progress"
    completed = "completed"


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    qr = "qr"
    card = "card"
    transfer = "transfer"


class PaymentStatus(str, enum.Enum):
    completed = "completed"
    cancelled = "cancelled"


class Treatment(Base, TimestampMixin):
    __tablename__ = "treatments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    patient_name: Mapped[str] = mapped_column(String(240), nullable=False)
    procedure: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    diagnosis: Mapped[str | None] = mapped_column(String(240), nullable=True)
    cost_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TreatmentStatus] = mapped_column(
        Enum(TreatmentStatus, name="treatment_status"),
        default=TreatmentStatus.completed,
        nullable=False,
    )
    performed_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    patient_name: Mapped[str] = mapped_column(String(240), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    paid_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, name="payment_method"), nullable=False
    )
    related_procedure: Mapped[str | None] = mapped_column(String(200), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.completed,
        nullable=False,
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == PaymentStatus.cancelled
