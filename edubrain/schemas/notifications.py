from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict


class ReminderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    student_name: str
    reminder_date: date
    reminder_type: Optional[str] = None
    status: str
    message: str
