"""
Authentication service handling user registration and login.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, PermissionDeniedError, StateConflictError
from app.core.logging import get_logger
from app.core.security import create_access_token, hash_password, verify_password
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Self-registration always yields the plain `user` role.
    """
    email = user_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=email)
        raise StateConflictError("Email already registered", kind="email_taken")

    result = await db.execute(select(User).where(User.username == user_data.username))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="username_exists", username=user_data.username)
        raise StateConflictError("Username already taken", kind="username_taken")

    user = User(
        email=email,
        username=user_data.username,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        hashed_password=hash_password(user_data.password),
        role=UserRole.USER.value,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[User, str]:
    """
    Authenticate user and return it with a fresh JWT access token.
    Raises AuthenticationError if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise PermissionDeniedError("Account is deactivated")

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info("user_logged_in", user_id=user.id)
    return user, token
