from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Type, TypeVar, Union

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from tortoise.models import Model

from models.users import Admin, AdminType, Student, Teacher, User, UserRole
from core.config import settings


BLOCKED_MESSAGE = "Your account has been banned. Please contact support for assistance."

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

ProfileT = TypeVar("ProfileT", bound=Model)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(
    subject: Union[str, int],
    role: Optional[UserRole] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue a signed token for a user

    The token carries the user id as ``sub`` and, when given, the account
    role as ``role``. It expires after ``ACCESS_TOKEN_EXPIRE_MINUTES`` unless
    ``expires_delta`` says otherwise.
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(subject), "exp": datetime.now(timezone.utc) + lifetime}
    if role is not None:
        claims["role"] = UserRole(role).value
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id a token was issued for, or raise 401"""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return int(claims["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise _unauthorized()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    """
    Resolve the bearer token to a user

    Unknown users get 401. Banned accounts get 403 with the ban message on
    every authenticated request, not only at login.
    """
    user = await User.get_or_none(id=decode_access_token(token))
    if user is None:
        raise _unauthorized()
    if user.is_blocked:
        raise _forbidden(BLOCKED_MESSAGE)
    return user


async def get_current_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise _forbidden("Access denied. Admin only.")
    return current_user


def profile_dependency(profile_model: Type[ProfileT], detail: str) -> Callable:
    """
    Build a dependency that loads the role profile of the current user

    Users without a profile row of ``profile_model`` are refused with 403.
    """

    async def dependency(current_user: User = Depends(get_current_user)) -> ProfileT:
        profile = await profile_model.get_or_none(user_id=current_user.id)
        if profile is None:
            raise _forbidden(detail)
        return profile

    return dependency


get_current_student = profile_dependency(Student, "Only students allowed")
get_current_teacher = profile_dependency(Teacher, "Only teachers allowed")


class AdminTypeChecker:
    """
    Allow admins of the given types only

    Example:
        allow_payment_admins = AdminTypeChecker([AdminType.PAYMENT, AdminType.GENERAL])

        @router.put("/{enrollment_id}/verify-payment")
        async def verify(enrollment_id: int, admin: User = Depends(allow_payment_admins)):
            ...
    """

    def __init__(self, allowed_types: List[AdminType]):
        self.allowed_types = allowed_types

    async def __call__(self, user: User = Depends(get_current_admin_user)) -> User:
        if not await Admin.filter(user_id=user.id, admin_type__in=self.allowed_types).exists():
            raise _forbidden("The user doesn't have enough privileges")
        return user
