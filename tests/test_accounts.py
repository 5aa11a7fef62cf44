import pytest

from core.config import settings
from core.database import bootstrap_admin
from core.exceptions import ConflictError, ForbiddenError, ValidationFailedError
from core.security import BLOCKED_MESSAGE
from models import Admin, AdminType, Student, Teacher, UserRole
from schemas.user import UserResponse
from services import accounts
from utils.pagination import PageParams, paginate_queryset


async def test_signup_creates_role_profile(db):
    student_user = await accounts.signup("Sara Student", "Sara@Example.com", "secret123")
    teacher_user = await accounts.signup("Tariq Teacher", "tariq@example.com", "secret123", UserRole.TEACHER)

    assert student_user.email == "sara@example.com"
    assert student_user.password_hash != "secret123"
    assert await Student.filter(user_id=student_user.id).exists()

    teacher = await Teacher.get(user_id=teacher_user.id)
    assert teacher.full_name == "Tariq Teacher"


async def test_signup_rejects_admins_and_duplicates(db):
    with pytest.raises(ForbiddenError):
        await accounts.signup("Eve", "eve@example.com", "secret123", UserRole.ADMIN)

    await accounts.signup("Sara Student", "sara@example.com", "secret123")
    with pytest.raises(ConflictError) as exc_info:
        await accounts.signup("Sara Again", "SARA@example.com", "secret123")
    assert exc_info.value.message == "User already exists"


async def test_create_admin(db):
    user = await accounts.create_admin("Pat Payments", "pat@example.com", "secret123", AdminType.PAYMENT)

    assert user.role == UserRole.ADMIN
    assert (await Admin.get(user_id=user.id)).admin_type == AdminType.PAYMENT


async def test_authenticate(db):
    await accounts.signup("Sara Student", "sara@example.com", "secret123")

    user = await accounts.authenticate(" sara@example.com ", "secret123")
    assert user.name == "Sara Student"

    with pytest.raises(ValidationFailedError):
        await accounts.authenticate("sara@example.com", "wrong")
    with pytest.raises(ValidationFailedError):
        await accounts.authenticate("nobody@example.com", "secret123")


async def test_blocked_user_cannot_log_in(general_admin):
    user = await accounts.signup("Sara Student", "sara@example.com", "secret123")

    await accounts.set_blocked(general_admin, user.id, True)

    with pytest.raises(ForbiddenError) as exc_info:
        await accounts.authenticate("sara@example.com", "secret123")
    assert exc_info.value.message == BLOCKED_MESSAGE

    await accounts.set_blocked(general_admin, user.id, False)
    assert (await accounts.authenticate("sara@example.com", "secret123")).id == user.id


async def test_admin_cannot_block_self(general_admin):
    with pytest.raises(ValidationFailedError):
        await accounts.set_blocked(general_admin, general_admin.id, True)


async def test_update_teacher_profile(teacher):
    teacher = await accounts.update_teacher_profile(
        teacher, {"prof_title": "Lead Instructor", "location": None, "is_verified": False}
    )

    assert teacher.prof_title == "Lead Instructor"
    assert teacher.is_verified
    assert (await accounts.get_teacher(teacher.id)).prof_title == "Lead Instructor"


async def test_bootstrap_admin_runs_once(db, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "root@example.com")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "rootpass1")

    assert await bootstrap_admin() is True
    assert await bootstrap_admin() is False

    user = await accounts.authenticate("root@example.com", "rootpass1")
    admin = await Admin.get(user_id=user.id)
    assert admin.admin_type == AdminType.GENERAL


async def test_users_query_pages_in_the_database(db):
    for n in range(3):
        await accounts.signup(f"Student {n}", f"student{n}@example.com", "secret123")
    await accounts.signup("Tariq Teacher", "tariq@example.com", "secret123", UserRole.TEACHER)

    page = await paginate_queryset(
        accounts.users_query(UserRole.STUDENT), PageParams(page=2, page_size=2), UserResponse.model_validate
    )

    assert [user.email for user in page["items"]] == ["student0@example.com"]
    assert page["page_info"].total_items == 3
    assert page["page_info"].has_previous and not page["page_info"].has_next
