import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from edubrain.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STUDENT = "student"


# Login accounts for administrators and students
class User(Base):
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, nullable=False)
    hashed_password = Column(Text, nullable=False)
    role = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'student')", name="check_user_role"),
    )
    
    # Relationships
    student_fee = relationship("StudentFee", back_populates="user", uselist=False)
