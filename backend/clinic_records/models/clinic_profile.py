from __future__ import annotations

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from clinic_records.models.base import Base, TimestampMixin


class ClinicProfile(Base, TimestampMixin):
    """Single-row clinic preferences. Absent until first written."""

    __tablename__ = "clinic_profile"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    monthly_income_goal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
