"""
Accounts, role profiles and account blocking
"""
import logging
from typing import Any, Dict, Optional

from tortoise.exceptions import IntegrityError
from tortoise.queryset import QuerySet
from tortoise.transactions import in_transaction

from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from core.security import BLOCKED_MESSAGE, get_password_hash, verify_password
from models.users import Admin, AdminType, Student, Teacher, User, UserRole


logger = logging.getLogger(__name__)

TEACHER_PROFILE_FIELDS = ("full_name", "prof_title", "phone_number", "location", "about_me")


async def _create_user(name: str, email: str, password: str, role: UserRole) -> User:
    email = email.strip().lower()
    if await User.filter(email=email).exists():
        raise ConflictError("User already exists")

    try:
        return await User.create(
            name=name.strip(),
            email=email,
            password_hash=get_password_hash(password),
            role=role,
        )
    except IntegrityError:
        raise ConflictError("User already exists")


async def signup(name: str, email: str, password: str, role: UserRole = UserRole.STUDENT) -> User:
    """
    Register a student or teacher account together with its profile

    Admin accounts cannot sign up; they are created by a general admin.
    """
    if role == UserRole.ADMIN:
        raise ForbiddenError("Admin accounts are created by an administrator")

    async with in_transaction():
        user = await _create_user(name, email, password, role)
        if role == UserRole.TEACHER:
            await Teacher.create(user=user, full_name=user.name)
        else:
            await Student.create(user=user)

    logger.info("New %s account %s", role.value, user.id)
    return user


async def create_admin(
    name: str,
    email: str,
    password: str,
    admin_type: AdminType = AdminType.GENERAL,
) -> User:
    async with in_transaction():
        user = await _create_user(name, email, password, UserRole.ADMIN)
        await Admin.create(user=user, admin_type=admin_type)

    logger.info("New %s admin account %s", admin_type.value, user.id)
    return user


async def authenticate(email: str, password: str) -> User:
    """
    Check an email and password

    Raises:
        ValidationFailedError: Unknown email or wrong password
        ForbiddenError: The account is blocked
    """
    user = await User.get_or_none(email=(email or "").strip().lower())
    if user is None or not verify_password(password or "", user.password_hash):
        raise ValidationFailedError("Invalid email or password")

    if user.is_blocked:
        raise ForbiddenError(BLOCKED_MESSAGE)
    return user


def users_query(role: Optional[UserRole] = None) -> QuerySet[User]:
    """Users newest first, optionally of one role"""
    query = User.all()
    if role is not None:
        query = query.filter(role=role)
    return query.order_by("-created_at", "-id")


async def set_blocked(admin: User, target_user_id: int, is_blocked: bool = True) -> User:
    user = await User.get_or_none(id=target_user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.id == admin.id:
        raise ValidationFailedError("You cannot block your own account")

    user.is_blocked = is_blocked
    await user.save(update_fields=["is_blocked", "updated_at"])

    logger.info("Admin %s %s user %s", admin.id, "blocked" if is_blocked else "unblocked", user.id)
    return user


async def student_profile(user: User) -> Student:
    """The user's student profile, created on first use"""
    if user.role != UserRole.STUDENT:
        raise ForbiddenError("Only students allowed")
    student, _ = await Student.get_or_create(user=user)
    return student


async def update_student_profile(student: Student, profile_image: Optional[str]) -> Student:
    student.profile_image = profile_image
    await student.save()
    return student


async def update_teacher_profile(teacher: Teacher, data: Dict[str, Any]) -> Teacher:
    changed = [key for key in TEACHER_PROFILE_FIELDS if data.get(key) is not None]
    for key in changed:
        setattr(teacher, key, data[key])

    if changed:
        await teacher.save()
    return teacher


async def get_teacher(teacher_id: int) -> Teacher:
    teacher = await Teacher.get_or_none(id=teacher_id).prefetch_related("user")
    if teacher is None:
        raise NotFoundError("Teacher not found")
    return teacher
