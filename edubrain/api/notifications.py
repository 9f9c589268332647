from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from edubrain.database import get_db
from edubrain.middleware.authentication import require_admin
from edubrain.schemas.notifications import ReminderResponse
from edubrain.schemas.users import TokenData
from edubrain.services.reminders import list_recent_reminders

router = APIRouter()

@router.get("/admin/reminders", response_model=List[ReminderResponse])
async def get_reminders(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(require_admin)
):
    """
    The most recent fee reminders, newest first.
    """
    return await list_recent_reminders(db)
