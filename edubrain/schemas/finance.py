from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, condecimal, field_validator
from enum import Enum


class PaymentStatusEnum(str, Enum):
    pending = "Pending"
    paid = "Paid"


# Student registration
class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    course: Optional[str] = None
    total_fee: condecimal(max_digits=12, decimal_places=2, ge=0)
    due_date: date

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value):
        if not value.strip():
            raise ValueError("name must not be blank")
        return value.strip()

    @field_validator("phone", "email", "course", mode="before")
    @classmethod
    def empty_string_to_none(cls, value):
        # HTML forms submit untouched optional inputs as ""
        if isinstance(value, str) and not value.strip():
            return None
        return value


class StudentRegistrationResponse(BaseModel):
    message: str
    id: int
    username: str
    password: str


class StudentFeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    course: Optional[str] = None
    total_fee: float
    paid_amount: float
    due_amount: float
    due_date: date
    payment_status: PaymentStatusEnum
    last_reminder_date: Optional[date] = None
    created_at: Optional[datetime] = None


# Payment application
class PaymentCreate(BaseModel):
    amount: condecimal(max_digits=12, decimal_places=2, gt=0)


class PaymentAck(BaseModel):
    message: str
    id: int
    paid_amount: float
    payment_status: PaymentStatusEnum


# Admin dashboard aggregates, keyed the way the dashboard client reads them
class DashboardStats(BaseModel):
    totalStudents: int
    pendingFees: float
    collectedFees: float
    overdueCount: int
