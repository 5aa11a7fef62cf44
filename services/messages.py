"""
Direct messages between teachers and the students of their courses
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from core.exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from models.enrollment import Enrollment, EnrollmentStatus
from models.message import Message, MessageDirection, MessageType
from models.notification import NotificationType
from models.users import Student, Teacher, User
from services.course_refs import (
    CourseRef,
    course_ref_from_key,
    course_titles_for_keys,
    is_course_instructor,
    parse_canonical_ref,
)
from services.notifications import NotificationOutbox
from utils.formatting import truncate_text


logger = logging.getLogger(__name__)

NOTIFICATION_PREVIEW_LENGTH = 100

# Message types that also raise a notification for each recipient
NOTIFYING_TYPES = {
    MessageType.ANNOUNCEMENT: NotificationType.ANNOUNCEMENT,
    MessageType.REMINDER: NotificationType.REMINDER,
    MessageType.ZOOM_LINK: NotificationType.GENERAL,
}


@dataclass
class MessageView:
    message: Message
    course_id: Any
    course_title: Optional[str]
    teacher_name: Optional[str] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None


async def _course_ref(raw_course_ref: Any) -> CourseRef:
    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None:
        raise ValidationFailedError("Invalid course ID")
    return ref


async def _enrolled_students(ref: CourseRef, student_ids: List[int]) -> List[Student]:
    enrolled_ids = await Enrollment.filter(
        course_key=ref.key,
        student_id__in=student_ids,
        status__in=[EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED],
    ).values_list("student_id", flat=True)
    if not enrolled_ids:
        return []
    return await Student.filter(id__in=list(set(enrolled_ids))).order_by("id")


async def send_to_students(
    teacher: Teacher,
    raw_course_ref: Any,
    student_ids: List[int],
    text: str,
    message_type: MessageType = MessageType.INFO,
    meeting_date: Optional[datetime] = None,
    meeting_time: Optional[str] = None,
    zoom_link: Optional[str] = None,
    meeting_id: Optional[str] = None,
    meeting_password: Optional[str] = None,
) -> List[Message]:
    """
    Send one message to each listed student enrolled in the course

    Students not enrolled in the course are skipped. Announcements,
    reminders and meeting links also notify each recipient with a
    shortened copy of the text.

    Returns:
        The created messages
    """
    if not text or not text.strip():
        raise ValidationFailedError("Message is required")
    if not student_ids:
        raise ValidationFailedError("courseId and studentIds array are required")
    if message_type == MessageType.STUDENT_MESSAGE:
        raise ValidationFailedError("Teachers cannot send student messages")
    if message_type == MessageType.ZOOM_LINK and not (zoom_link or "").strip():
        raise ValidationFailedError("zoomLink is required")

    ref = await _course_ref(raw_course_ref)
    if not await is_course_instructor(teacher.id, ref):
        raise ForbiddenError("You are not the instructor of this course")

    students = await _enrolled_students(ref, student_ids)
    if not students:
        return []

    drafts = [
        Message(
            teacher_id=teacher.id,
            student_id=student.id,
            course_key=ref.key,
            message=text.strip(),
            message_type=message_type,
            direction=MessageDirection.TEACHER_TO_STUDENT,
            zoom_link=zoom_link,
            meeting_id=meeting_id,
            meeting_password=meeting_password,
            meeting_date=meeting_date,
            meeting_time=meeting_time,
        )
        for student in students
    ]
    await Message.bulk_create(drafts)
    logger.info("Teacher %s sent %s to %d student(s) of %s", teacher.id, message_type.value, len(drafts), ref.key)

    notification_type = NOTIFYING_TYPES.get(message_type)
    if notification_type is not None:
        async with NotificationOutbox() as outbox:
            outbox.add_many(
                [student.user_id for student in students],
                notification_type,
                truncate_text(text.strip(), NOTIFICATION_PREVIEW_LENGTH),
                sender_id=teacher.user_id,
                data={"course_id": ref.as_client_value(), "course_key": ref.key},
            )

    return await Message.filter(
        teacher_id=teacher.id,
        course_key=ref.key,
        student_id__in=[student.id for student in students],
    ).order_by("-created_at", "-id").limit(len(drafts))


async def send_to_teacher(
    student: Student,
    teacher_id: int,
    raw_course_ref: Any,
    text: str,
    reply_to_id: Optional[int] = None,
) -> Message:
    if not text or not text.strip():
        raise ValidationFailedError("Message is required")

    teacher = await Teacher.get_or_none(id=teacher_id)
    if teacher is None:
        raise NotFoundError("Teacher not found")

    ref = await _course_ref(raw_course_ref)

    if reply_to_id is not None:
        original = await Message.get_or_none(id=reply_to_id, student_id=student.id, teacher_id=teacher.id)
        if original is None:
            raise NotFoundError("Message not found")

    message = await Message.create(
        teacher_id=teacher.id,
        student_id=student.id,
        course_key=ref.key,
        message=text.strip(),
        message_type=MessageType.STUDENT_MESSAGE,
        direction=MessageDirection.STUDENT_TO_TEACHER,
        reply_to_id=reply_to_id,
    )
    logger.info("Student %s messaged teacher %s", student.id, teacher.id)
    return message


async def _views(messages: List[Message]) -> List[MessageView]:
    titles = await course_titles_for_keys(m.course_key for m in messages)

    views = []
    for message in messages:
        ref = course_ref_from_key(message.course_key)
        view = MessageView(
            message=message,
            course_id=ref.as_client_value() if ref else None,
            course_title=titles.get(message.course_key),
        )
        teacher = message.teacher
        view.teacher_name = teacher.full_name
        view.student_name = message.student.user.name
        view.student_email = message.student.user.email
        views.append(view)
    return views


async def student_inbox(student: Student) -> List[MessageView]:
    messages = await Message.filter(student_id=student.id).prefetch_related(
        "teacher", "student__user"
    ).order_by("-created_at", "-id")
    return await _views(messages)


async def teacher_inbox(teacher: Teacher) -> List[MessageView]:
    messages = await Message.filter(teacher_id=teacher.id).prefetch_related(
        "teacher", "student__user"
    ).order_by("-created_at", "-id")
    return await _views(messages)


async def mark_message_read(user: User, message_id: int) -> Message:
    """Mark a message read; only its student or teacher may do so"""
    message = await Message.get_or_none(id=message_id)
    if message is None:
        raise NotFoundError("Message not found")

    student = await Student.get_or_none(user_id=user.id)
    teacher = await Teacher.get_or_none(user_id=user.id)
    is_participant = (
        (student is not None and message.student_id == student.id)
        or (teacher is not None and message.teacher_id == teacher.id)
    )
    if not is_participant:
        raise ForbiddenError("Access denied")

    if not message.is_read:
        message.is_read = True
        await message.save(update_fields=["is_read", "updated_at"])
    return message


async def latest_meeting_link(raw_course_ref: Any) -> Optional[Message]:
    """Most recent meeting link sent for a course"""
    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None:
        return None
    return await Message.filter(
        course_key=ref.key, message_type=MessageType.ZOOM_LINK
    ).order_by("-created_at", "-id").first()
