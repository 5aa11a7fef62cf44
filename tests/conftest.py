from typing import Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from core.security import create_access_token, get_password_hash
from models import Admin, AdminType, Course, Student, Teacher, User, UserRole

PASSWORD = "secret123"


@pytest.fixture
async def db():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["models"]}, use_tz=True)
    await Tortoise.generate_schemas()
    yield
    await Tortoise._drop_databases()


async def create_user(name: str, email: str, role: UserRole, password: str = PASSWORD) -> User:
    return await User.create(
        name=name,
        email=email,
        password_hash=get_password_hash(password),
        role=role,
    )


async def create_student(name: str = "Sara Student", email: str = "sara@example.com") -> Student:
    user = await create_user(name, email, UserRole.STUDENT)
    return await Student.create(user=user)


async def create_teacher(name: str = "Tariq Teacher", email: str = "tariq@example.com") -> Teacher:
    user = await create_user(name, email, UserRole.TEACHER)
    return await Teacher.create(user=user, full_name=name, prof_title="Senior Instructor")


async def create_admin(
    admin_type: AdminType = AdminType.GENERAL,
    name: str = "Gina Admin",
    email: str = "gina@example.com",
) -> User:
    user = await create_user(name, email, UserRole.ADMIN)
    await Admin.create(user=user, admin_type=admin_type)
    return user


async def create_course(
    teacher: Optional[Teacher] = None,
    title: str = "Python Basics",
    course_id: Optional[str] = None,
    catalog_number: Optional[int] = None,
    is_approved: bool = True,
) -> Course:
    fields = dict(
        course_title=title,
        short_description="Learn the basics",
        long_description="A long description of the course",
        course_categories=["Programming"],
        course_level=["Beginner"],
        original_price=5000,
        course_image="https://example.com/course.png",
        learning_outcomes=["Write Python"],
        requirements=["A computer"],
        content=[{"section_title": "Introduction", "topic_title": "Setup"}],
        teacher_id=teacher.id if teacher else None,
        catalog_number=catalog_number,
        is_approved=is_approved,
    )
    if course_id is not None:
        fields["id"] = course_id
    return await Course.create(**fields)


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(subject=user.id, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def student(db) -> Student:
    return await create_student()


@pytest.fixture
async def teacher(db) -> Teacher:
    return await create_teacher()


@pytest.fixture
async def general_admin(db) -> User:
    return await create_admin(AdminType.GENERAL)


@pytest.fixture
async def payment_admin(db) -> User:
    return await create_admin(AdminType.PAYMENT, name="Pat Payments", email="pat@example.com")


@pytest.fixture
async def client(db):
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
