from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from edubrain.database import get_db
from edubrain.schemas.users import LoginRequest, LoginResponse
from edubrain.services.auth import authenticate_user, create_user_token

router = APIRouter()

@router.post("/login", response_model=LoginResponse)
async def login(
    form_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate an admin or student and return a bearer token.
    """
    user = await authenticate_user(form_data.username, form_data.password, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    return {
        "token": create_user_token(user),
        "role": user.role,
        "username": user.username,
    }
