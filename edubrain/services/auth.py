import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from jose import jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from edubrain.config import settings
from edubrain.models.users import User, UserRole

logger = logging.getLogger(__name__)

# Password hashing utilities
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password, hashed_password):
    """Verify a password against a hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    """Generate a password hash."""
    return pwd_context.hash(password)

async def authenticate_user(username: str, password: str, db: AsyncSession) -> Optional[User]:
    """
    Authenticate a user with username and password.
    Returns the user if authentication is successful, None otherwise.
    """
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalars().first()
    
    if not user:
        return None
    
    if not verify_password(password, user.hashed_password):
        return None
    
    return user

def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token with the given data and expiration.
    """
    to_encode = data.copy()
    
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    
    return encoded_jwt

def create_user_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        data={"sub": str(user.id), "id": user.id, "username": user.username, "role": user.role},
        expires_delta=expires_delta,
    )

def generate_username(name: str) -> str:
    """Lower-cased name stripped to letters and digits, plus a 4-digit suffix."""
    base = re.sub(r"[^a-z0-9]", "", name.lower()) or "student"
    return f"{base}{1000 + secrets.randbelow(9000)}"

def generate_password() -> str:
    return secrets.token_urlsafe(9)

async def ensure_default_admin(db: AsyncSession) -> None:
    """Create the configured administrator account if it does not exist yet."""
    result = await db.execute(select(User).where(User.username == settings.DEFAULT_ADMIN_USERNAME))
    if result.scalars().first():
        return
    
    admin = User(
        username=settings.DEFAULT_ADMIN_USERNAME,
        hashed_password=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
        role=UserRole.ADMIN.value,
    )
    db.add(admin)
    await db.commit()
    logger.info(f"Seeded default admin account '{settings.DEFAULT_ADMIN_USERNAME}'")
