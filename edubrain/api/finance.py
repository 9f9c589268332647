from typing import List
from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession

from edubrain.database import get_db
from edubrain.schemas.finance import (
    StudentCreate, StudentRegistrationResponse, StudentFeeResponse,
    PaymentCreate, PaymentAck, DashboardStats
)
from edubrain.schemas.users import TokenData
from edubrain.middleware.authentication import require_admin, require_account
from edubrain.services import ledger

router = APIRouter()

@router.get("/admin/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Student count, outstanding and collected totals, and overdue count.
    """
    return await ledger.get_dashboard_stats(db)

@router.get("/admin/students", response_model=List[StudentFeeResponse])
async def get_students(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    List every student fee record in registration order.
    """
    return await ledger.list_all(db)

@router.post("/admin/students", response_model=StudentRegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_student(
    student_data: StudentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Register a student. The generated login is returned once, in this response.
    """
    student_fee, credential = await ledger.register_student(db, student_data)
    return {
        "message": "Student added",
        "id": student_fee.id,
        "username": credential.username,
        "password": credential.password,
    }

@router.patch("/admin/students/{student_id}/pay", response_model=PaymentAck)
async def record_payment(
    payment_data: PaymentCreate,
    student_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    Apply a payment to a student's fee record.
    """
    student_fee = await ledger.apply_payment(db, student_id, payment_data.amount, recorded_by=current_user.id)
    return {
        "message": "Payment updated",
        "id": student_fee.id,
        "paid_amount": student_fee.paid_amount,
        "payment_status": student_fee.payment_status,
    }

@router.get("/student/me", response_model=StudentFeeResponse)
async def get_my_fee_record(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_account)
):
    """
    The caller's own fee record, looked up by the account in the token.
    """
    return await ledger.get_by_owner(db, current_user.id)
