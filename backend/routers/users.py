"""
Admin-only user management on top of the fastapi-users routes.

Mounted on /users ahead of the fastapi-users router so /users/stats is not
read as a user id.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_admin
from core.logging import get_logger
from db.database import get_async_session
from db.users import ROLES, User
from schemas.users import Role, UserRead, UserRoleUpdate, UserStats

logger = get_logger(__name__)

router = APIRouter()


@router.get("/", response_model=List[UserRead])
async def list_users(
    role: Optional[Role] = None,
    include_inactive: bool = False,
    admin: User = Depends(current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role)
    if not include_inactive:
        stmt = stmt.where(User.is_active == True)  # noqa: E712
    res = await db.execute(stmt.order_by(User.email.asc()))
    return [UserRead.model_validate(u) for u in res.scalars().all()]


@router.get("/stats", response_model=UserStats)
async def user_stats(
    admin: User = Depends(current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    rows = (
        await db.execute(
            select(User.role, func.count(User.id))
            .where(User.is_active == True)  # noqa: E712
            .group_by(User.role)
        )
    ).all()
    by_role = {r: 0 for r in ROLES}
    for role, n in rows:
        by_role[role] = int(n)
    total = int((await db.execute(select(func.count(User.id)))).scalar_one() or 0)
    return UserStats(total=total, active=sum(by_role.values()), by_role=by_role)


@router.put("/{user_id}/role", response_model=UserRead)
async def set_user_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    admin: User = Depends(current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    if user_id == admin.id and payload.role != "admin":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Admins cannot demote themselves")

    m = await db.get(User, user_id)
    if m is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    m.role = payload.role
    # Admins also get fastapi-users superuser rights (PATCH/DELETE /users/{id})
    m.is_superuser = payload.role == "admin"
    await db.commit()
    await db.refresh(m)

    logger.info("User role changed", user_id=str(user_id), role=payload.role, by=str(admin.id))
    return UserRead.model_validate(m)
