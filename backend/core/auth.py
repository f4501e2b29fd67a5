import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin
from fastapi_users.authentication import AuthenticationBackend, BearerTransport, JWTStrategy
from fastapi_users.db import SQLAlchemyUserDatabase

from core.config import settings
from core.logging import get_logger
from db.users import User, get_user_db

logger = get_logger(__name__)


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = settings.jwt_secret
    verification_token_secret = settings.jwt_secret

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info("User registered", user_id=str(user.id), email=user.email)

    async def on_after_forgot_password(self, user: User, token: str, request: Optional[Request] = None):
        # Delivery of the token is left to the deployment (mail relay etc.)
        logger.info("Password reset requested", user_id=str(user.id))

    async def on_after_request_verify(self, user: User, token: str, request: Optional[Request] = None):
        logger.info("Verification requested", user_id=str(user.id))


async def get_user_manager(user_db: SQLAlchemyUserDatabase = Depends(get_user_db)):
    yield UserManager(user_db)


bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=settings.jwt_secret, lifetime_seconds=settings.jwt_lifetime_seconds)


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

current_active_user = fastapi_users.current_user(active=True)


def role_of(user: User) -> str:
    # fastapi-users superusers are admins whatever the role column says
    return "admin" if user.is_superuser else user.role


def require_role(*roles: str):
    """Dependency factory: the current active user, if their role is one of `roles`."""

    async def _check(user: User = Depends(current_active_user)) -> User:
        if role_of(user) not in roles:
            logger.info("Role check failed", user_id=str(user.id), role=role_of(user), required=list(roles))
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return _check


current_manager = require_role("manager", "admin")
current_admin = require_role("admin")
