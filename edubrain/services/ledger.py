"""
Fee ledger: registration, payment application and read models over the
student fee records.

payment_status is never written directly by callers. It is recomputed from
total_fee and paid_amount every time a payment is applied.
"""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from edubrain.database import commit_or_raise
from edubrain.exceptions import NotFoundError, ValidationError
from edubrain.models.finance import StudentFee, Payment, PaymentStatus
from edubrain.models.users import User, UserRole
from edubrain.schemas.finance import StudentCreate
from edubrain.schemas.users import GeneratedCredential
from edubrain.services.auth import generate_username, generate_password, get_password_hash

logger = logging.getLogger(__name__)

USERNAME_ATTEMPTS = 10


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def compute_status(total_fee, paid_amount) -> PaymentStatus:
    if Decimal(paid_amount or 0) >= Decimal(total_fee):
        return PaymentStatus.PAID
    return PaymentStatus.PENDING


async def username_taken(db: AsyncSession, username: str) -> bool:
    result = await db.execute(select(User.id).where(User.username == username))
    return result.first() is not None


async def _add_student_account(db: AsyncSession, name: str, hashed_password: str) -> User:
    """
    Insert a student account under a fresh generated username.

    The lookup only skips names already known to be taken; a concurrent
    registration can still claim the same name before the insert, in which
    case the unique constraint fails at flush and another name is tried.
    """
    for _ in range(USERNAME_ATTEMPTS):
        username = generate_username(name)
        if await username_taken(db, username):
            continue
        user = User(
            username=username,
            hashed_password=hashed_password,
            role=UserRole.STUDENT.value,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.warning(f"Username '{username}' was claimed concurrently, generating another")
            continue
        return user
    raise ValidationError(f"Could not generate a unique username for '{name}'")


async def register_student(
    db: AsyncSession, student_data: StudentCreate
) -> Tuple[StudentFee, GeneratedCredential]:
    """
    Create a student account with generated credentials and its fee record.

    Both rows are committed together. The plain-text password is only
    returned here; the account stores its hash.
    """
    password = generate_password()
    user = await _add_student_account(db, student_data.name, get_password_hash(password))
    username = user.username
    
    student_fee = StudentFee(
        user_id=user.id,
        name=student_data.name,
        phone=student_data.phone,
        email=student_data.email,
        course=student_data.course,
        total_fee=student_data.total_fee,
        paid_amount=Decimal("0"),
        due_date=student_data.due_date,
        payment_status=compute_status(student_data.total_fee, 0).value,
        last_reminder_date=None,
    )
    db.add(student_fee)
    await commit_or_raise(db)
    await db.refresh(student_fee)
    
    logger.info(f"Registered student {student_fee.id} ({student_fee.name}) as '{username}'")
    return student_fee, GeneratedCredential(username=username, password=password)


async def apply_payment(
    db: AsyncSession, student_id: int, amount, recorded_by: Optional[int] = None
) -> StudentFee:
    """
    Add a payment to a fee record and recompute its status.

    The row is locked for the read-modify-write so that paid_amount and
    payment_status always change together. Overpayment is accepted; the due
    amount then goes negative.
    """
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    
    result = await db.execute(
        select(StudentFee).where(StudentFee.id == student_id).with_for_update()
    )
    student_fee = result.scalars().first()
    
    if not student_fee:
        await db.rollback()
        raise NotFoundError("Student not found")
    
    student_fee.paid_amount = Decimal(student_fee.paid_amount or 0) + amount
    student_fee.payment_status = compute_status(student_fee.total_fee, student_fee.paid_amount).value
    db.add(Payment(student_id=student_fee.id, amount=amount, recorded_by_user_id=recorded_by))
    
    await commit_or_raise(db)
    await db.refresh(student_fee)
    
    logger.info(
        f"Applied payment of {amount} to student {student_fee.id}: "
        f"paid {student_fee.paid_amount} of {student_fee.total_fee} [{student_fee.payment_status}]"
    )
    return student_fee


async def get_by_id(db: AsyncSession, student_id: int) -> StudentFee:
    result = await db.execute(select(StudentFee).where(StudentFee.id == student_id))
    student_fee = result.scalars().first()
    if not student_fee:
        raise NotFoundError("Student not found")
    return student_fee


async def get_by_owner(db: AsyncSession, user_id: int) -> StudentFee:
    result = await db.execute(select(StudentFee).where(StudentFee.user_id == user_id))
    student_fee = result.scalars().first()
    if not student_fee:
        raise NotFoundError("No fee record for this account")
    return student_fee


async def list_all(db: AsyncSession) -> List[StudentFee]:
    result = await db.execute(select(StudentFee).order_by(StudentFee.id))
    return list(result.scalars().all())


async def get_dashboard_stats(db: AsyncSession, today: Optional[date] = None) -> dict:
    """Aggregate counts and sums for the admin dashboard."""
    today = today or utc_today()
    is_pending = StudentFee.payment_status == PaymentStatus.PENDING.value
    
    result = await db.execute(
        select(
            func.count(StudentFee.id),
            func.sum(case((is_pending, StudentFee.total_fee - StudentFee.paid_amount), else_=0)),
            func.sum(StudentFee.paid_amount),
            func.sum(case((is_pending & (StudentFee.due_date < today), 1), else_=0)),
        )
    )
    total_students, pending_fees, collected_fees, overdue_count = result.one()
    
    return {
        "totalStudents": total_students or 0,
        "pendingFees": float(pending_fees or 0),
        "collectedFees": float(collected_fees or 0),
        "overdueCount": int(overdue_count or 0),
    }
