from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReminderCreate(BaseModel):
    text: str = Field(..., min_length=1)
    created_by: str = Field(..., min_length=1)
    created_by_id: Optional[str] = None


class ReminderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    completed: bool
    created_by: str
    created_by_id: Optional[str] = None
    created_at: datetime
