from fastapi import Depends
from fastapi_users.db import SQLAlchemyBaseUserTableUUID, SQLAlchemyUserDatabase
from sqlalchemy import Column, String
from sqlalchemy.ext.asyncio import AsyncSession

from .database import Base, get_async_session

# admin: user management plus everything a manager may do
# manager: catalog and stock writes
# staff: read-only
ROLES = ("admin", "manager", "staff")
DEFAULT_ROLE = "staff"


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"

    role = Column(String(20), nullable=False, default=DEFAULT_ROLE, server_default=DEFAULT_ROLE, index=True)


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    yield SQLAlchemyUserDatabase(session, User)
