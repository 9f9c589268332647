import enum
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from edubrain.database import Base


class ReminderStatus(str, enum.Enum):
    SENT = "Sent"


# Append-only log of fee reminders written by the reminder sweep
class Reminder(Base):
    __tablename__ = "reminders"
    
    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    reminder_date = Column(Date, nullable=False, index=True)
    reminder_type = Column(String(50))
    status = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    student_fee = relationship("StudentFee", back_populates="reminders")
