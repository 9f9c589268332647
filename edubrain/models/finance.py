import enum
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from edubrain.database import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"


# Student fee record: one per student account
class StudentFee(Base):
    __tablename__ = "students"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50))
    email = Column(String(255))
    course = Column(String(255))
    total_fee = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), default=0, nullable=False)
    due_date = Column(Date, nullable=False)
    # Derived from total_fee and paid_amount, see services.ledger.compute_status
    payment_status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False)
    # Written only by the reminder sweep
    last_reminder_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    __table_args__ = (
        CheckConstraint("payment_status IN ('Pending', 'Paid')", name="check_payment_status"),
    )
    
    # Relationships
    user = relationship("User", back_populates="student_fee")
    payments = relationship("Payment", back_populates="student_fee")
    reminders = relationship("Reminder", back_populates="student_fee")
    
    @property
    def due_amount(self):
        # Negative when overpaid
        return self.total_fee - (self.paid_amount or 0)


# Payment model: one row per amount applied to a fee record
class Payment(Base):
    __tablename__ = "payments"
    
    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    recorded_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    student_fee = relationship("StudentFee", back_populates="payments")
