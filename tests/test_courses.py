import pytest

from core.exceptions import ConflictError, ForbiddenError, NotFoundError
from models import CourseAssignment, Notification, NotificationType, User
from services import courses
from tests.conftest import create_course, create_student, create_teacher

COURSE_DATA = {
    "course_title": "Rust for Pythonistas",
    "short_description": "Systems programming for Python developers",
    "long_description": "Ownership, borrowing and fearless concurrency",
    "course_categories": ["Programming"],
    "course_level": ["Intermediate"],
    "original_price": 8000,
    "course_image": "https://example.com/rust.png",
    "learning_outcomes": ["Write safe Rust"],
    "requirements": ["Python experience"],
    "content": [{"section_title": "Introduction", "topic_title": "Why Rust"}],
}


async def test_teacher_course_waits_for_approval(teacher, general_admin):
    user = await User.get(id=teacher.user_id)

    course = await courses.create_course(user, {**COURSE_DATA, "catalog_number": 50})

    assert not course.is_approved
    assert course.teacher_id == teacher.id
    assert course.catalog_number is None
    assert len(course.id) == 24

    submitted = await Notification.filter(type=NotificationType.COURSE_SUBMITTED)
    assert [n.receiver_id for n in submitted] == [general_admin.id]
    assert "Rust for Pythonistas" in submitted[0].message
    assert await courses.list_approved_courses() == []


async def test_admin_course_is_approved_with_catalog_number(general_admin):
    course = await courses.create_course(general_admin, {**COURSE_DATA, "catalog_number": 50})

    assert course.is_approved
    assert course.catalog_number == 50
    assert course.approved_by_id == general_admin.id

    with pytest.raises(ConflictError):
        await courses.create_course(general_admin, {**COURSE_DATA, "catalog_number": 50})

    resolved = await courses.get_course("50")
    assert resolved.course.id == course.id


async def test_students_cannot_create_courses(db):
    student = await create_student()
    user = await User.get(id=student.user_id)

    with pytest.raises(ForbiddenError):
        await courses.create_course(user, COURSE_DATA)


async def test_approve_and_reject_notify_owner(teacher, general_admin):
    course = await create_course(teacher, is_approved=False)

    course = await courses.approve_course(general_admin, course.id)
    assert course.is_approved

    course = await courses.reject_course(general_admin, course.id)
    assert not course.is_approved
    assert course.rejection_reason == "Course does not meet our standards"

    types = [n.type for n in await Notification.filter(receiver_id=teacher.user_id).order_by("id")]
    assert types == [NotificationType.COURSE_APPROVED, NotificationType.COURSE_REJECTED]

    with pytest.raises(NotFoundError):
        await courses.approve_course(general_admin, "f" * 24)


async def test_only_owner_or_general_admin_edits(teacher, general_admin):
    other = await create_teacher("Olga Other", "olga@example.com")
    course = await create_course(teacher)
    owner_user = await User.get(id=teacher.user_id)
    other_user = await User.get(id=other.user_id)

    updated = await courses.update_course(owner_user, course.id, {"course_title": "Python Basics 2", "id": "x"})
    assert updated.course_title == "Python Basics 2"
    assert updated.id == course.id

    with pytest.raises(NotFoundError):
        await courses.update_course(other_user, course.id, {"course_title": "Mine now"})

    await CourseAssignment.create(teacher=other, course_key=f"course:{course.id}")
    await courses.delete_course(general_admin, course.id)
    assert await CourseAssignment.all().count() == 0


async def test_assign_catalog_course(teacher):
    other = await create_teacher("Olga Other", "olga@example.com")

    resolved = await courses.assign_teacher(teacher, 4)
    assert resolved.title == "Ethical Hacking: Beginner to Advanced"

    with pytest.raises(ConflictError) as exc_info:
        await courses.assign_teacher(teacher, "4")
    assert exc_info.value.message == "You are already assigned to this course"

    with pytest.raises(ConflictError) as exc_info:
        await courses.assign_teacher(other, 4)
    assert exc_info.value.message == courses.TAKEN_BY_OTHER_MESSAGE

    assert (await courses.course_instructor(4)).id == teacher.id
    assert await courses.assignment_status(other, [4, 5]) == {"4": "Tariq Teacher"}
    assert await courses.assignment_status(teacher, [4]) == {}

    assert await courses.unassign_teacher(teacher, 4)
    assert not await courses.unassign_teacher(teacher, 4)
    await courses.assign_teacher(other, 4)


async def test_cannot_assign_owned_course(teacher):
    other = await create_teacher("Olga Other", "olga@example.com")
    course = await create_course(teacher)

    with pytest.raises(ConflictError) as exc_info:
        await courses.assign_teacher(teacher, course.id)
    assert exc_info.value.message == "You are already the owner of this course"

    with pytest.raises(ConflictError):
        await courses.assign_teacher(other, course.id)

    with pytest.raises(NotFoundError):
        await courses.assign_teacher(other, 5000)


async def test_seeded_catalog_course_has_one_instructor(teacher):
    other = await create_teacher("Olga Other", "olga@example.com")
    course = await create_course(title="Seeded Cloud Guide", catalog_number=101)

    await courses.assign_teacher(teacher, 101)
    with pytest.raises(ConflictError):
        await courses.assign_teacher(other, course.id)

    assert await CourseAssignment.filter(course_key="catalog:101").count() == 1
    assert await CourseAssignment.all().count() == 1

    assert await courses.unassign_teacher(teacher, course.id)
    assert not await CourseAssignment.all().exists()
