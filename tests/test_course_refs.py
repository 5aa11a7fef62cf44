import pytest

from core.exceptions import ForbiddenError, NotFoundError
from models import CourseAssignment
from services.course_refs import (
    CatalogCourseRef,
    PersistedCourseRef,
    canonical_ref,
    course_ref_from_key,
    course_title,
    course_titles_for_keys,
    is_course_instructor,
    parse_course_ref,
    resolve_course,
    teacher_course_keys,
)
from tests.conftest import create_course, create_teacher

STORED_ID = "507f1f77bcf86cd799439011"


def test_parse_stored_course_id():
    ref = parse_course_ref(STORED_ID)
    assert ref == PersistedCourseRef(STORED_ID)
    assert ref.key == f"course:{STORED_ID}"
    assert ref.as_client_value() == STORED_ID


@pytest.mark.parametrize("raw", [101, "101", " 101 "])
def test_parse_catalog_number(raw):
    ref = parse_course_ref(raw)
    assert ref == CatalogCourseRef(101)
    assert ref.key == "catalog:101"
    assert ref.as_client_value() == 101


@pytest.mark.parametrize("raw", [None, True, 0, -3, "", "abc", "507f1f77bcf86cd79943901", 1.5])
def test_parse_rejects_other_values(raw):
    assert parse_course_ref(raw) is None


def test_keys_of_both_kinds_never_collide():
    assert parse_course_ref("12").key != parse_course_ref("0" * 22 + "12").key


def test_course_ref_from_key():
    assert course_ref_from_key("catalog:7") == CatalogCourseRef(7)
    assert course_ref_from_key(f"course:{STORED_ID}") == PersistedCourseRef(STORED_ID)
    assert course_ref_from_key("bogus:1") is None
    assert course_ref_from_key("") is None


async def test_unstored_catalog_course_resolves_to_placeholder(db):
    resolved = await resolve_course(CatalogCourseRef(1), strict_catalog_range=True)

    assert resolved.is_placeholder
    assert resolved.title == "Artificial Intelligence"
    assert resolved.teacher_id is None


async def test_unstored_catalog_course_outside_range(db):
    with pytest.raises(NotFoundError) as exc_info:
        await resolve_course(CatalogCourseRef(5000), strict_catalog_range=True)
    assert "between 1 and 999" in exc_info.value.message

    resolved = await resolve_course(CatalogCourseRef(5000))
    assert resolved.title == "Course 5000"


async def test_stored_record_wins_over_placeholder(db):
    teacher = await create_teacher()
    await create_course(teacher, title="Seeded AI", catalog_number=1)

    resolved = await resolve_course(CatalogCourseRef(1))

    assert not resolved.is_placeholder
    assert resolved.title == "Seeded AI"
    assert resolved.teacher_id == teacher.id


async def test_unknown_stored_course(db):
    with pytest.raises(NotFoundError):
        await resolve_course(PersistedCourseRef(STORED_ID))


async def test_unapproved_course_when_approval_required(db):
    await create_course(course_id=STORED_ID, is_approved=False)
    await create_course(title="Draft catalog", catalog_number=3, is_approved=False)

    with pytest.raises(NotFoundError):
        await resolve_course(PersistedCourseRef(STORED_ID), require_approved=True)
    with pytest.raises(ForbiddenError):
        await resolve_course(CatalogCourseRef(3), require_approved=True)

    resolved = await resolve_course(PersistedCourseRef(STORED_ID))
    assert not resolved.is_approved


async def test_teacher_course_keys_and_instructor(db):
    teacher = await create_teacher()
    other = await create_teacher("Olga Other", "olga@example.com")
    owned = await create_course(teacher, course_id=STORED_ID)
    await CourseAssignment.create(teacher=teacher, course_key="catalog:4")

    keys = await teacher_course_keys(teacher.id)

    assert keys == [f"course:{owned.id}", "catalog:4"]
    assert await is_course_instructor(teacher.id, CatalogCourseRef(4))
    assert await is_course_instructor(teacher.id, PersistedCourseRef(STORED_ID))
    assert not await is_course_instructor(other.id, CatalogCourseRef(4))


async def test_course_titles_for_keys(db):
    await create_course(course_id=STORED_ID, title="Stored Course")

    titles = await course_titles_for_keys([
        f"course:{STORED_ID}",
        "catalog:2",
        "course:" + "a" * 24,
        "nonsense",
    ])

    assert titles == {
        f"course:{STORED_ID}": "Stored Course",
        "catalog:2": "Big Data Analytics",
        "course:" + "a" * 24: "Unknown Course",
        "nonsense": "Unknown Course",
    }


async def test_canonical_ref_prefers_catalog_number(db):
    seeded = await create_course(title="Seeded AI", catalog_number=1)
    plain = await create_course(course_id=STORED_ID)

    assert await canonical_ref(PersistedCourseRef(seeded.id)) == CatalogCourseRef(1)
    assert await canonical_ref(PersistedCourseRef(plain.id)) == PersistedCourseRef(STORED_ID)
    assert await canonical_ref(CatalogCourseRef(8)) == CatalogCourseRef(8)
    assert await canonical_ref(None) is None

    resolved = await resolve_course(PersistedCourseRef(seeded.id))
    assert resolved.ref == CatalogCourseRef(1)


async def test_course_title_fallbacks(db):
    assert await course_title(PersistedCourseRef("a" * 24)) == "Unknown Course"
    assert await course_title(CatalogCourseRef(6)) == "Advance Python"
    assert await course_title(None) == "the course"
