"""
Course references

A course is referenced either by the generated identifier of a stored
course or by the small integer of a catalog ("default") course that the
client knows about and that may never have been stored. The two kinds are
kept apart as distinct types, and records that point at a course store a
tagged key (``course:<id>`` or ``catalog:<n>``) so they can never be
confused with each other.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from tortoise.expressions import Q

from core.config import settings
from core.exceptions import ForbiddenError, NotFoundError
from models.course import Course, CourseAssignment


logger = logging.getLogger(__name__)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

PERSISTED_PREFIX = "course:"
CATALOG_PREFIX = "catalog:"

UNKNOWN_COURSE_TITLE = "Unknown Course"

# Titles of the catalog courses shipped with the client
DEFAULT_COURSE_TITLES = {
    1: "Artificial Intelligence",
    2: "Big Data Analytics",
    3: "3D Animations, VR & Simulation",
    4: "Ethical Hacking: Beginner to Advanced",
    5: "Digital Marketing and SEO",
    6: "Advance Python",
    7: "Graphic Designing",
    8: "Project Management",
    9: "The Web Developer Bootcamp 2024",
    10: "Complete AWS Cloud Practitioner Guide",
    11: "Machine Learning Fundamentals",
    12: "Docker & Kubernetes: The Practical Guide",
    13: "Database Design and SQL",
    14: "Mobile App Development",
    15: "UI/UX Design",
    16: "JavaScript Fundamentals",
    17: "Python for Data Science and ML Bootcamp",
    18: "Blockchain Development",
    19: "CompTIA Security+ (SY0-601) Complete Course",
    20: "Content Marketing Strategy",
    21: "Agile and Scrum Mastery",
    22: "Video Editing and Production",
}


@dataclass(frozen=True)
class PersistedCourseRef:
    """Reference to a stored course by its generated identifier"""

    course_id: str

    @property
    def key(self) -> str:
        return f"{PERSISTED_PREFIX}{self.course_id}"

    def as_client_value(self) -> Union[str, int]:
        return self.course_id


@dataclass(frozen=True)
class CatalogCourseRef:
    """Reference to a catalog course by its number"""

    number: int

    @property
    def key(self) -> str:
        return f"{CATALOG_PREFIX}{self.number}"

    def as_client_value(self) -> Union[str, int]:
        return self.number


CourseRef = Union[PersistedCourseRef, CatalogCourseRef]


@dataclass
class ResolvedCourse:
    """What is known about a referenced course after looking it up"""

    ref: CourseRef
    title: str
    course: Optional[Course] = None
    teacher_id: Optional[int] = None
    is_approved: bool = True

    @property
    def is_placeholder(self) -> bool:
        return self.course is None


def parse_course_ref(raw: Any) -> Optional[CourseRef]:
    """
    Classify a raw course reference coming from a client

    Args:
        raw: String or number sent by the client

    Returns:
        The typed reference, or None if the value is neither a stored
        course identifier nor a positive integer
    """
    if isinstance(raw, (PersistedCourseRef, CatalogCourseRef)):
        return raw

    if isinstance(raw, bool) or raw is None:
        return None

    if isinstance(raw, int):
        return CatalogCourseRef(raw) if raw > 0 else None

    if isinstance(raw, str):
        value = raw.strip()
        if OBJECT_ID_PATTERN.match(value):
            return PersistedCourseRef(value.lower())
        if value.isdecimal():
            number = int(value)
            return CatalogCourseRef(number) if number > 0 else None

    return None


def course_ref_from_key(key: str) -> Optional[CourseRef]:
    """Turn a stored course key back into a reference"""
    if not key:
        return None
    if key.startswith(PERSISTED_PREFIX):
        return parse_course_ref(key[len(PERSISTED_PREFIX):])
    if key.startswith(CATALOG_PREFIX):
        return parse_course_ref(key[len(CATALOG_PREFIX):])
    return None


def ref_for_course(course: Course) -> CourseRef:
    """
    Reference under which a stored course is known

    A seeded catalog course keeps its catalog number as its identity.
    """
    if course.catalog_number is not None:
        return CatalogCourseRef(course.catalog_number)
    return PersistedCourseRef(course.id)


async def canonical_ref(ref: Optional[CourseRef]) -> Optional[CourseRef]:
    """
    The one reference records about a course are keyed by

    A seeded catalog course can be named by its identifier or by its catalog
    number, and both map to the catalog key. Catalog references are already
    canonical whether or not the course is stored.
    """
    if isinstance(ref, PersistedCourseRef):
        course = await find_stored_course(ref)
        if course is not None:
            return ref_for_course(course)
    return ref


async def parse_canonical_ref(raw: Any) -> Optional[CourseRef]:
    return await canonical_ref(parse_course_ref(raw))


def is_default_catalog_number(number: int) -> bool:
    return settings.CATALOG_COURSE_ID_MIN <= number <= settings.CATALOG_COURSE_ID_MAX


def course_predicate(ref: CourseRef) -> Q:
    """Query predicate matching the stored course for a reference"""
    if isinstance(ref, PersistedCourseRef):
        return Q(id=ref.course_id)
    return Q(catalog_number=ref.number)


def default_course_title(number: int) -> str:
    return DEFAULT_COURSE_TITLES.get(number, f"Course {number}")


async def find_stored_course(ref: CourseRef) -> Optional[Course]:
    return await Course.filter(course_predicate(ref)).first()


async def resolve_course(
    ref: Optional[CourseRef],
    require_approved: bool = False,
    strict_catalog_range: bool = False,
) -> ResolvedCourse:
    """
    Look up a referenced course

    A stored record always wins over the synthetic catalog placeholder,
    including for catalog numbers that were seeded into storage. The
    returned reference is the canonical one for stored courses.

    Args:
        ref: Parsed course reference
        require_approved: Reject stored courses that are not approved
        strict_catalog_range: Only synthesise placeholders for catalog
            numbers inside the configured catalog range

    Raises:
        NotFoundError: Unknown course
        ForbiddenError: Course exists but is not approved
    """
    if ref is None:
        raise NotFoundError("Course not found")

    course = await find_stored_course(ref)

    if course is None:
        if isinstance(ref, PersistedCourseRef):
            raise NotFoundError("Course not found or not approved" if require_approved else "Course not found")

        if strict_catalog_range and not is_default_catalog_number(ref.number):
            raise NotFoundError(
                "Invalid course ID. Default courses must have numeric IDs between "
                f"{settings.CATALOG_COURSE_ID_MIN} and {settings.CATALOG_COURSE_ID_MAX}."
            )

        logger.debug("Catalog course %s not stored, using placeholder", ref.number)
        return ResolvedCourse(ref=ref, title=default_course_title(ref.number))

    if require_approved and not course.is_approved:
        if isinstance(ref, PersistedCourseRef):
            raise NotFoundError("Course not found or not approved")
        raise ForbiddenError(
            "This course exists but is not approved for enrollment yet. Please contact support."
        )

    return ResolvedCourse(
        ref=ref_for_course(course),
        title=course.course_title,
        course=course,
        teacher_id=course.teacher_id,
        is_approved=course.is_approved,
    )


async def course_title(ref: Optional[CourseRef]) -> str:
    """Best-effort title for notifications and listings"""
    if ref is None:
        return "the course"

    course = await find_stored_course(ref)
    if course is not None:
        return course.course_title

    if isinstance(ref, CatalogCourseRef):
        return default_course_title(ref.number)
    return UNKNOWN_COURSE_TITLE


async def assigned_teacher_id(ref: CourseRef) -> Optional[int]:
    assignment = await CourseAssignment.get_or_none(course_key=ref.key)
    return assignment.teacher_id if assignment else None


async def teacher_course_keys(teacher_id: int) -> List[str]:
    """Keys of every course a teacher owns or is assigned to instruct"""
    owned = await Course.filter(teacher_id=teacher_id)
    keys = [ref_for_course(course).key for course in owned]

    assigned = await CourseAssignment.filter(teacher_id=teacher_id).values_list("course_key", flat=True)
    keys.extend(key for key in assigned if key not in keys)
    return keys


async def is_course_instructor(teacher_id: int, ref: CourseRef) -> bool:
    """Whether a teacher owns the course or is assigned to instruct it"""
    if await Course.filter(course_predicate(ref), teacher_id=teacher_id).exists():
        return True
    return await CourseAssignment.filter(course_key=ref.key, teacher_id=teacher_id).exists()


async def course_titles_for_keys(keys: Iterable[str]) -> Dict[str, str]:
    """
    Titles for many stored course keys at once

    Keys of courses that no longer exist, or that cannot be parsed, map to
    UNKNOWN_COURSE_TITLE.
    """
    refs = {key: course_ref_from_key(key) for key in set(keys)}
    course_ids = [ref.course_id for ref in refs.values() if isinstance(ref, PersistedCourseRef)]
    numbers = [ref.number for ref in refs.values() if isinstance(ref, CatalogCourseRef)]

    stored: Dict[str, str] = {}
    if course_ids or numbers:
        if course_ids and numbers:
            query = Q(id__in=course_ids) | Q(catalog_number__in=numbers)
        elif course_ids:
            query = Q(id__in=course_ids)
        else:
            query = Q(catalog_number__in=numbers)
        for course in await Course.filter(query):
            if course.id in course_ids:
                stored[PersistedCourseRef(course.id).key] = course.course_title
            if course.catalog_number is not None:
                stored[CatalogCourseRef(course.catalog_number).key] = course.course_title

    titles = {}
    for key, ref in refs.items():
        if key in stored:
            titles[key] = stored[key]
        elif isinstance(ref, CatalogCourseRef):
            titles[key] = default_course_title(ref.number)
        else:
            titles[key] = UNKNOWN_COURSE_TITLE
    return titles
