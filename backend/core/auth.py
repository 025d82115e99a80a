"""
Authentication: fastapi-users wired to a stateless signed session cookie.

The cookie carries ``{"uid", "exp", "nonce"}`` signed with the server key
(core.signing). Nothing is stored server side: logging out only clears the
cookie, and an expired or tampered cookie reads as "not logged in".
"""

import secrets
import time
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi_users import BaseUserManager, FastAPIUsers, IntegerIDMixin, exceptions
from fastapi_users.authentication import AuthenticationBackend, CookieTransport
from fastapi_users.authentication.strategy import Strategy
from fastapi_users.db import SQLAlchemyUserDatabase
from fastapi_users.password import PasswordHelper
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logging import get_logger
from core.signing import SignedSerializer, signer
from db.database import get_async_session
from db.users import ROLE_ADMIN, STAFF_ROLES, User

logger = get_logger(__name__)

SESSION_COOKIE_NAME = "hb_session"
SESSION_LIFETIME_SECONDS = 14 * 24 * 60 * 60


def issue_session_token(user_id: int, serializer: SignedSerializer = signer, now: Optional[float] = None) -> str:
    now = time.time() if now is None else now
    return serializer.sign({
        "uid": int(user_id),
        "exp": int(now) + SESSION_LIFETIME_SECONDS,
        "nonce": secrets.token_urlsafe(16),
    })


def read_session_user_id(
    token: Optional[str], serializer: SignedSerializer = signer, now: Optional[float] = None
) -> Optional[int]:
    """User id from a session cookie, None when missing, tampered or expired."""
    payload = serializer.loads(token)
    if not isinstance(payload, dict):
        return None
    uid = payload.get("uid")
    exp = payload.get("exp")
    if not isinstance(uid, int) or not isinstance(exp, int) or uid <= 0 or exp <= 0:
        return None
    now = time.time() if now is None else now
    if now > exp:
        return None
    return uid


class SignedCookieStrategy(Strategy[User, int]):
    def __init__(self, serializer: SignedSerializer = signer):
        self.serializer = serializer

    async def read_token(self, token: Optional[str], user_manager: BaseUserManager[User, int]) -> Optional[User]:
        user_id = read_session_user_id(token, self.serializer)
        if user_id is None:
            return None
        try:
            return await user_manager.get(user_id)
        except exceptions.UserNotExists:
            return None

    async def write_token(self, user: User) -> str:
        return issue_session_token(user.id, self.serializer)

    async def destroy_token(self, token: str, user: User) -> None:
        # Stateless: the transport clears the cookie.
        return None


# Reset / verify tokens are not exposed over HTTP; the secret only has to exist.
_token_secret = settings.session_hash_key_hex or secrets.token_hex(32)


class UserManager(IntegerIDMixin, BaseUserManager[User, int]):
    reset_password_token_secret = _token_secret
    verification_token_secret = _token_secret

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info("User registered", user_id=user.id, role=user.role)

    async def on_after_login(self, user: User, request: Optional[Request] = None, response=None):
        logger.info("User logged in", user_id=user.id)


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    yield SQLAlchemyUserDatabase(session, User)


async def get_user_manager(user_db: SQLAlchemyUserDatabase = Depends(get_user_db)):
    yield UserManager(user_db)


def get_session_strategy() -> SignedCookieStrategy:
    return SignedCookieStrategy(signer)


cookie_transport = CookieTransport(
    cookie_name=SESSION_COOKIE_NAME,
    cookie_max_age=SESSION_LIFETIME_SECONDS,
    cookie_secure=settings.secure_cookies,
    cookie_httponly=True,
    cookie_samesite="lax",
)

auth_backend = AuthenticationBackend(
    name="session-cookie",
    transport=cookie_transport,
    get_strategy=get_session_strategy,
)

fastapi_users = FastAPIUsers[User, int](get_user_manager, [auth_backend])

current_active_user = fastapi_users.current_user(active=True)


async def current_staff_user(user: User = Depends(current_active_user)) -> User:
    if user.role not in STAFF_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user


password_helper = PasswordHelper()


async def bootstrap_admin(db: AsyncSession) -> Optional[User]:
    """Create the first ADMIN from BOOTSTRAP_ADMIN_* settings when no admin exists yet."""
    res = await db.execute(select(func.count(User.id)).where(User.role == ROLE_ADMIN))
    if res.scalar_one() > 0:
        return None

    email = settings.bootstrap_admin_email.lower()
    password = settings.bootstrap_admin_password
    name = settings.bootstrap_admin_name
    if not (email and password and name):
        logger.warning("No admin account exists and BOOTSTRAP_ADMIN_* is not fully configured")
        return None

    user = User(
        email=email,
        hashed_password=password_helper.hash(password),
        role=ROLE_ADMIN,
        display_name=name,
        is_active=True,
        is_superuser=True,
        is_verified=True,
    )
    db.add(user)
    await db.commit()
    logger.info("Bootstrapped admin user", email=email)
    return user
