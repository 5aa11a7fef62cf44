"""
Notification fanout

Workflow code collects notifications in a NotificationOutbox while it runs
and writes them in one batch at the end. Emission is at-most-once and
never blocks the workflow: a failure while collecting or writing
notifications is logged and dropped, and the primary state change stands.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.config import settings
from core.exceptions import NotFoundError, ValidationFailedError
from models.enrollment import Enrollment, EnrollmentStatus
from models.notification import Notification, NotificationType
from models.users import Admin, AdminType, Student, Teacher, User
from services.course_refs import ResolvedCourse, assigned_teacher_id, teacher_course_keys
from utils.formatting import format_amount


logger = logging.getLogger(__name__)


@dataclass
class NotificationDraft:
    receiver_id: int
    type: NotificationType
    message: str
    sender_id: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)


class NotificationOutbox:
    """
    Collects notifications and writes them with a single insert

    Used as an async context manager, the outbox flushes on exit and
    swallows (after logging) any error raised while drafts were being
    collected::

        async with NotificationOutbox() as outbox:
            outbox.add(user_id, NotificationType.GENERAL, "Hello")
    """

    def __init__(self):
        self._drafts: List[NotificationDraft] = []
        self.written = 0

    def __len__(self) -> int:
        return len(self._drafts)

    @property
    def drafts(self) -> List[NotificationDraft]:
        return list(self._drafts)

    def add(
        self,
        receiver_id: Optional[int],
        type: NotificationType,
        message: str,
        sender_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        if receiver_id is None:
            logger.debug("Dropping %s notification without a receiver", type.value)
            return
        self._drafts.append(
            NotificationDraft(
                receiver_id=receiver_id,
                type=type,
                message=message,
                sender_id=sender_id,
                data=dict(data or {}),
            )
        )

    def add_many(
        self,
        receiver_ids: Iterable[int],
        type: NotificationType,
        message: str,
        sender_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        for receiver_id in receiver_ids:
            self.add(receiver_id, type, message, sender_id=sender_id, data=data)

    async def flush(self) -> int:
        """
        Write all collected drafts

        Returns:
            Number of notifications written; 0 when the write failed
        """
        if not self._drafts:
            return 0

        drafts, self._drafts = self._drafts, []
        try:
            await Notification.bulk_create([
                Notification(
                    receiver_id=draft.receiver_id,
                    sender_id=draft.sender_id,
                    type=draft.type,
                    message=draft.message,
                    data=draft.data,
                )
                for draft in drafts
            ])
        except Exception:
            logger.exception("Failed to write %d notification(s)", len(drafts))
            return 0

        self.written += len(drafts)
        logger.debug("Wrote %d notification(s)", len(drafts))
        return len(drafts)

    async def __aenter__(self) -> "NotificationOutbox":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None and not issubclass(exc_type, Exception):
            return False

        if exc is not None:
            logger.error("Failed to prepare notifications", exc_info=(exc_type, exc, tb))

        await self.flush()
        return exc is not None


# Recipient resolution

async def admin_recipient_ids(admin_type: AdminType) -> List[int]:
    """User ids of every admin of the given type"""
    return await Admin.filter(admin_type=admin_type).values_list("user_id", flat=True)


async def resolve_owning_teacher(
    resolved: ResolvedCourse,
    fallback_to_first: bool = True,
) -> Optional[Teacher]:
    """
    Teacher responsible for a course

    Tries the course owner, then the assigned instructor, then (only when
    ``fallback_to_first`` is set) the first teacher in the system.
    """
    if resolved.teacher_id is not None:
        teacher = await Teacher.get_or_none(id=resolved.teacher_id)
        if teacher is not None:
            return teacher

    teacher_id = await assigned_teacher_id(resolved.ref)
    if teacher_id is not None:
        teacher = await Teacher.get_or_none(id=teacher_id)
        if teacher is not None:
            return teacher

    if fallback_to_first:
        return await Teacher.all().order_by("id").first()
    return None


async def notification_sender_id(resolved: ResolvedCourse) -> Optional[int]:
    """User id to show as the sender of a course notification"""
    teacher = await resolve_owning_teacher(resolved)
    return teacher.user_id if teacher else None


# Message templates

def payment_approved_message(course_title: str) -> str:
    return f'Your payment for "{course_title}" has been verified. You now have access to the course!'


def payment_rejected_message(course_title: str, reason: str) -> str:
    return (
        f'Your payment for "{course_title}" has been rejected. Reason: {reason}. '
        "Please contact support or submit a new payment."
    )


def student_assigned_message(student_name: str, course_title: str) -> str:
    return f'{student_name} has enrolled in your course "{course_title}" after payment verification.'


def new_payment_message(student_name: str, course_title: str, amount_paid: Optional[float]) -> str:
    return (
        f"New payment of {format_amount(amount_paid, settings.PAYMENT_CURRENCY)} received from "
        f'"{student_name}" for "{course_title}". Payment verification required.'
    )


def course_completed_message(course_title: str) -> str:
    return (
        f'Congratulations! You have successfully completed "{course_title}". '
        "Your certificate of completion will be sent to your email address."
    )


def certificate_required_message(student_name: str, student_email: str, course_title: str) -> str:
    return (
        f'Certificate required: "{student_name}" ({student_email}) has completed '
        f'"{course_title}". Please send the certificate.'
    )


def course_submitted_message(course_title: str, teacher_name: str) -> str:
    return f'New course "{course_title}" submitted by {teacher_name} for approval.'


def course_approved_message(course_title: str) -> str:
    return f'Your course "{course_title}" has been approved and is now live.'


def course_rejected_message(course_title: str, reason: str) -> str:
    return f'Your course "{course_title}" has been rejected. Reason: {reason}'


# User-facing operations

async def broadcast_to_students(
    teacher: Teacher,
    type: NotificationType,
    message: str,
) -> int:
    """
    Notify every student enrolled in one of the teacher's courses

    Each student is notified once however many of the teacher's courses
    they take.

    Returns:
        Number of notifications written
    """
    if not message or not message.strip():
        raise ValidationFailedError("Type and message required")

    course_keys = await teacher_course_keys(teacher.id)
    if not course_keys:
        return 0

    student_ids = await Enrollment.filter(
        course_key__in=course_keys,
        status__in=[EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED],
    ).values_list("student_id", flat=True)
    if not student_ids:
        return 0

    student_user_ids = await Student.filter(id__in=list(set(student_ids))).values_list("user_id", flat=True)
    receivers = sorted(set(student_user_ids))
    if not receivers:
        return 0

    outbox = NotificationOutbox()
    outbox.add_many(receivers, type, message.strip(), sender_id=teacher.user_id)
    written = await outbox.flush()

    logger.info("Teacher %s broadcast %s to %d student(s)", teacher.id, type.value, written)
    return written


async def list_notifications(
    user: User,
    unread_only: bool = False,
    limit: Optional[int] = None,
) -> Tuple[List[Notification], int]:
    """
    Notifications received by a user, newest first

    Returns:
        The notifications and the user's unread count
    """
    query = Notification.filter(receiver_id=user.id)
    if unread_only:
        query = query.filter(is_read=False)
    if limit:
        query = query.limit(limit)

    notifications = await query.order_by("-created_at", "-id")
    unread = await Notification.filter(receiver_id=user.id, is_read=False).count()
    return notifications, unread


async def mark_as_read(user: User, notification_id: int) -> Notification:
    notification = await Notification.get_or_none(id=notification_id, receiver_id=user.id)
    if notification is None:
        raise NotFoundError("Notification not found")

    if not notification.is_read:
        notification.is_read = True
        await notification.save(update_fields=["is_read"])
    return notification


async def mark_all_as_read(user: User) -> int:
    return await Notification.filter(receiver_id=user.id, is_read=False).update(is_read=True)


async def delete_notification(user: User, notification_id: int) -> None:
    deleted = await Notification.filter(id=notification_id, receiver_id=user.id).delete()
    if not deleted:
        raise NotFoundError("Notification not found")
