from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.analytics import generate_overview
from core.auth import current_active_user
from db.category import Category as CategoryModel
from db.database import get_async_session
from db.users import User
from schemas.reports import AnalyticsOverview

router = APIRouter()


@router.get("/overview", response_model=AnalyticsOverview)
async def analytics_overview(
    time_range: Literal["7d", "30d", "90d"] = "30d",
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Generated figures only; see core.analytics."""
    res = await db.execute(
        select(CategoryModel.name).where(CategoryModel.is_active == True)  # noqa: E712
    )
    names = [name for (name,) in res.all()]
    return AnalyticsOverview(**generate_overview(time_range, names))
