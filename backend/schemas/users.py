# fastapi-users request/response schemas.
# `role` is readable everywhere but only settable through PUT /users/{id}/role
# (admin only); it is left out of UserCreate and UserUpdate so nobody can
# self-promote through /auth/register or /users/me.

import uuid
from typing import Dict, Literal

from fastapi_users import schemas
from pydantic import BaseModel

Role = Literal["admin", "manager", "staff"]


class UserRead(schemas.BaseUser[uuid.UUID]):
    role: str = "staff"


class UserCreate(schemas.BaseUserCreate):
    pass


class UserUpdate(schemas.BaseUserUpdate):
    pass


class UserRoleUpdate(BaseModel):
    role: Role


class UserStats(BaseModel):
    total: int
    active: int
    by_role: Dict[str, int]
