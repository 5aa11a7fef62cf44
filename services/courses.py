"""
Course authoring, moderation and instructor assignment
"""
import logging
from typing import Any, Dict, List, Optional

from tortoise import timezone
from tortoise.exceptions import IntegrityError

from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from models.course import Course, CourseAssignment
from models.notification import NotificationType
from models.users import Admin, AdminType, Teacher, User, UserRole
from services import notifications
from services.course_refs import (
    CatalogCourseRef,
    PersistedCourseRef,
    ResolvedCourse,
    find_stored_course,
    parse_canonical_ref,
    parse_course_ref,
    ref_for_course,
    resolve_course,
)
from services.notifications import NotificationOutbox


logger = logging.getLogger(__name__)

DEFAULT_COURSE_REJECTION_REASON = "Course does not meet our standards"
TAKEN_BY_OTHER_MESSAGE = (
    "This course is already taught by another instructor. "
    "Try creating your own course via Create New Course."
)

# Fields an author may change after creation
EDITABLE_FIELDS = (
    "course_title",
    "short_description",
    "long_description",
    "course_categories",
    "course_level",
    "total_price",
    "original_price",
    "course_image",
    "learning_outcomes",
    "requirements",
    "content",
)


async def is_general_admin(user: User) -> bool:
    if user.role != UserRole.ADMIN:
        return False
    return await Admin.filter(user_id=user.id, admin_type=AdminType.GENERAL).exists()


async def create_course(user: User, data: Dict[str, Any]) -> Course:
    """
    Create a course

    Teacher-authored courses wait for approval by a general admin and the
    general admins are notified. Courses created by a general admin are
    approved straight away and may carry a catalog number.
    """
    teacher = await Teacher.get_or_none(user_id=user.id)
    is_admin = await is_general_admin(user)
    if teacher is None and not is_admin:
        raise ForbiddenError("Only teachers and general admins can create courses")

    fields = {key: data[key] for key in EDITABLE_FIELDS if key in data}
    catalog_number = data.get("catalog_number") if is_admin else None
    if catalog_number is not None and await Course.filter(catalog_number=catalog_number).exists():
        raise ConflictError(f"Catalog course {catalog_number} already exists")

    now = timezone.now()
    course = await Course.create(
        **fields,
        teacher_id=teacher.id if teacher and not is_admin else data.get("teacher_id"),
        catalog_number=catalog_number,
        is_approved=is_admin,
        approved_at=now if is_admin else None,
        approved_by_id=user.id if is_admin else None,
    )
    logger.info("User %s created course %s (approved: %s)", user.id, course.id, is_admin)

    if not is_admin:
        async with NotificationOutbox() as outbox:
            admin_ids = await notifications.admin_recipient_ids(AdminType.GENERAL)
            outbox.add_many(
                admin_ids,
                NotificationType.COURSE_SUBMITTED,
                notifications.course_submitted_message(
                    course.course_title, teacher.full_name or teacher.prof_title or "A teacher"
                ),
                sender_id=user.id,
                data={"course_id": course.id, "course_title": course.course_title},
            )

    return course


async def list_approved_courses() -> List[Course]:
    return await Course.filter(is_approved=True).prefetch_related("teacher").order_by("-created_at")


async def get_course(raw_course_ref: Any) -> ResolvedCourse:
    """A stored course, or the placeholder for an unstored catalog course"""
    ref = parse_course_ref(raw_course_ref)
    if ref is None:
        raise NotFoundError("Course not found")
    return await resolve_course(ref, strict_catalog_range=True)


async def list_teacher_courses(teacher: Teacher) -> List[Course]:
    return await Course.filter(teacher_id=teacher.id).order_by("-created_at")


async def _editable_course(user: User, course_id: str) -> Course:
    teacher = await Teacher.get_or_none(user_id=user.id)
    if teacher is not None:
        course = await Course.get_or_none(id=course_id, teacher_id=teacher.id)
    elif await is_general_admin(user):
        course = await Course.get_or_none(id=course_id)
    else:
        raise ForbiddenError("Only teachers and general admins can change courses")

    if course is None:
        raise NotFoundError("Course not found")
    return course


async def update_course(user: User, course_id: str, data: Dict[str, Any]) -> Course:
    course = await _editable_course(user, course_id)

    changed = [key for key in EDITABLE_FIELDS if key in data]
    for key in changed:
        setattr(course, key, data[key])

    if changed:
        await course.save()
        logger.info("User %s updated course %s: %s", user.id, course.id, ", ".join(changed))
    return course


async def delete_course(user: User, course_id: str) -> None:
    course = await _editable_course(user, course_id)
    key = ref_for_course(course).key

    await course.delete()
    await CourseAssignment.filter(course_key=key).delete()
    logger.info("User %s deleted course %s", user.id, course_id)


async def course_instructor(raw_course_ref: Any) -> Optional[Teacher]:
    """Owner of a course, or its assigned instructor"""
    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None:
        return None

    course = await find_stored_course(ref)
    if course is None and isinstance(ref, PersistedCourseRef):
        return None

    if course is not None:
        resolved = ResolvedCourse(ref=ref, title=course.course_title, course=course, teacher_id=course.teacher_id)
    else:
        resolved = ResolvedCourse(ref=ref, title="")
    return await notifications.resolve_owning_teacher(resolved, fallback_to_first=False)


async def assign_teacher(teacher: Teacher, raw_course_ref: Any) -> ResolvedCourse:
    """
    Make a teacher the instructor of a course they do not own

    A course has at most one instructor, whether owner or assignee.

    Raises:
        ValidationFailedError: Unparseable course reference
        NotFoundError: Unknown stored course
        ConflictError: Already owner or assignee, or another teacher holds it
    """
    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None:
        raise ValidationFailedError("Invalid course ID")

    resolved = await resolve_course(ref, strict_catalog_range=isinstance(ref, CatalogCourseRef))
    if resolved.teacher_id == teacher.id:
        raise ConflictError("You are already the owner of this course")
    if resolved.teacher_id is not None:
        raise ConflictError(TAKEN_BY_OTHER_MESSAGE)

    assignment = await CourseAssignment.get_or_none(course_key=ref.key)
    if assignment is not None:
        if assignment.teacher_id == teacher.id:
            raise ConflictError("You are already assigned to this course")
        raise ConflictError(TAKEN_BY_OTHER_MESSAGE)

    try:
        await CourseAssignment.create(teacher_id=teacher.id, course_key=ref.key)
    except IntegrityError:
        raise ConflictError(TAKEN_BY_OTHER_MESSAGE)

    logger.info("Teacher %s assigned to %s", teacher.id, ref.key)
    return resolved


async def unassign_teacher(teacher: Teacher, raw_course_ref: Any) -> bool:
    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None:
        return False

    deleted = await CourseAssignment.filter(teacher_id=teacher.id, course_key=ref.key).delete()
    if deleted:
        logger.info("Teacher %s removed from %s", teacher.id, ref.key)
    return bool(deleted)


async def assignment_status(teacher: Teacher, raw_course_refs: List[Any]) -> Dict[str, str]:
    """
    Which of the given courses another teacher already teaches

    Returns:
        Mapping of the raw reference (as a string) to the other teacher's name
    """
    status = {}
    for raw in raw_course_refs:
        other = await course_instructor(raw)
        if other is not None and other.id != teacher.id:
            status[str(raw)] = other.full_name or "Another instructor"
    return status


# Moderation

async def list_pending_courses() -> List[Course]:
    return await Course.filter(is_approved=False).prefetch_related("teacher").order_by("-created_at")


async def approve_course(admin: User, course_id: str) -> Course:
    course = await Course.get_or_none(id=course_id)
    if course is None:
        raise NotFoundError("Course not found")

    course.is_approved = True
    course.approved_at = timezone.now()
    course.approved_by_id = admin.id
    await course.save()
    logger.info("Admin %s approved course %s", admin.id, course.id)

    await _notify_owner(
        course,
        NotificationType.COURSE_APPROVED,
        notifications.course_approved_message(course.course_title),
        admin,
    )
    return course


async def reject_course(admin: User, course_id: str, reason: Optional[str] = None) -> Course:
    course = await Course.get_or_none(id=course_id)
    if course is None:
        raise NotFoundError("Course not found")

    course.is_approved = False
    course.rejected_at = timezone.now()
    course.rejected_by_id = admin.id
    course.rejection_reason = (reason or "").strip() or DEFAULT_COURSE_REJECTION_REASON
    await course.save()
    logger.info("Admin %s rejected course %s", admin.id, course.id)

    await _notify_owner(
        course,
        NotificationType.COURSE_REJECTED,
        notifications.course_rejected_message(course.course_title, course.rejection_reason),
        admin,
    )
    return course


async def _notify_owner(course: Course, type: NotificationType, message: str, admin: User) -> None:
    async with NotificationOutbox() as outbox:
        if course.teacher_id is None:
            return
        teacher = await Teacher.get_or_none(id=course.teacher_id)
        if teacher is not None:
            outbox.add(
                teacher.user_id,
                type,
                message,
                sender_id=admin.id,
                data={"course_id": course.id, "course_title": course.course_title},
            )
