"""
Enrollment workflow

Enrollments move through pending -> active -> completed, or
pending -> cancelled when an admin rejects the payment. Transitions out of
pending and into completed are conditional updates, so each of them
happens at most once even when two requests race.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from tortoise import timezone

from core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from models.enrollment import Enrollment, EnrollmentStatus
from models.notification import NotificationType
from models.users import AdminType, Student, Teacher, User
from services import notifications
from services.course_refs import (
    UNKNOWN_COURSE_TITLE,
    CourseRef,
    ResolvedCourse,
    course_ref_from_key,
    course_titles_for_keys,
    is_course_instructor,
    parse_canonical_ref,
    resolve_course,
    teacher_course_keys,
)
from services.notifications import NotificationOutbox


logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Payment verification failed"
FIRST_SECTION = "Introduction"

# Enrollments that grant access to the course
ENROLLED_STATUSES = [EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED]


@dataclass
class PaymentDetails:
    """Payment information submitted with an enrollment request"""

    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    amount_paid: Optional[float] = None
    payment_screenshot: Optional[str] = None
    requires_verification: Optional[bool] = None

    @property
    def has_payment_info(self) -> bool:
        return bool(
            self.payment_method
            or self.transaction_id
            or (self.amount_paid or 0) > 0
            or self.payment_screenshot
        )


@dataclass
class EnrollmentView:
    """An enrollment together with the display data listings need"""

    enrollment: Enrollment
    course_ref: Optional[CourseRef]
    course_title: str
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    instructor_name: Optional[str] = None

    @property
    def course_id(self) -> Any:
        return self.course_ref.as_client_value() if self.course_ref else None


@dataclass
class StudentDashboard:
    total_enrolled: int
    completed_courses: int
    average_progress: float
    upcoming_classes: int


@dataclass
class TeacherStudent:
    """A student taking one or more of a teacher's courses"""

    student_id: int
    user_id: int
    name: str
    email: str
    courses: List[EnrollmentView] = field(default_factory=list)


def clamp_progress(progress: float) -> float:
    return min(100.0, max(0.0, float(progress)))


async def _resolve_leniently(ref: CourseRef) -> ResolvedCourse:
    """Course details for an enrollment that already exists"""
    try:
        return await resolve_course(ref)
    except NotFoundError:
        return ResolvedCourse(ref=ref, title=UNKNOWN_COURSE_TITLE)


async def _student_user(student: Student) -> User:
    return await User.get(id=student.user_id)


def _course_data(resolved: ResolvedCourse, enrollment: Enrollment) -> Dict[str, Any]:
    return {
        "course_id": resolved.ref.as_client_value(),
        "course_key": resolved.ref.key,
        "course_title": resolved.title,
        "enrollment_id": enrollment.id,
    }


async def _queue_new_payment(
    outbox: NotificationOutbox,
    student_user: User,
    resolved: ResolvedCourse,
    enrollment: Enrollment,
) -> None:
    admin_ids = await notifications.admin_recipient_ids(AdminType.PAYMENT)
    if not admin_ids:
        logger.warning("No payment admins to notify about enrollment %s", enrollment.id)
        return

    data = _course_data(resolved, enrollment)
    data.update(amount_paid=enrollment.amount_paid, student_name=student_user.name)

    outbox.add_many(
        admin_ids,
        NotificationType.NEW_PAYMENT,
        notifications.new_payment_message(student_user.name, resolved.title, enrollment.amount_paid),
        sender_id=await notifications.notification_sender_id(resolved),
        data=data,
    )


async def enroll(
    student: Student,
    raw_course_ref: Any,
    payment: Optional[PaymentDetails] = None,
) -> Tuple[Enrollment, bool]:
    """
    Enroll a student in a course

    A pending enrollment for the same course is updated in place. Cancelled
    enrollments stay untouched as history and a new one is created.

    Args:
        student: Enrolling student
        raw_course_ref: Course identifier as sent by the client
        payment: Payment details, if any

    Returns:
        The enrollment and whether it was newly created

    Raises:
        ValidationFailedError: The course reference cannot be classified
        ConflictError: The student is already enrolled
        NotFoundError: Unknown course
        ForbiddenError: The course is stored but not approved
    """
    payment = payment or PaymentDetails()

    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None:
        raise ValidationFailedError("Invalid course ID")

    current = await Enrollment.filter(
        student_id=student.id,
        course_key=ref.key,
        status__in=[EnrollmentStatus.PENDING, *ENROLLED_STATUSES],
    ).order_by("-created_at", "-id")

    if any(e.status in ENROLLED_STATUSES for e in current):
        raise ConflictError("Already enrolled in this course")

    if current:
        return await _update_pending(student, current[0], ref, payment), False

    has_history = await Enrollment.filter(
        student_id=student.id, course_key=ref.key, status=EnrollmentStatus.CANCELLED
    ).exists()
    if has_history:
        resolved = await _resolve_leniently(ref)
    else:
        resolved = await resolve_course(ref, require_approved=True, strict_catalog_range=True)

    requires_verification = bool(payment.requires_verification)
    status = EnrollmentStatus.PENDING if requires_verification else EnrollmentStatus.ACTIVE
    is_active = status == EnrollmentStatus.ACTIVE

    enrollment = await Enrollment.create(
        student_id=student.id,
        course_key=ref.key,
        status=status,
        payment_method=payment.payment_method,
        transaction_id=payment.transaction_id,
        amount_paid=payment.amount_paid or 0,
        payment_screenshot=payment.payment_screenshot,
        verification_required=requires_verification,
        progress=0,
        current_section=FIRST_SECTION if is_active else None,
        last_accessed=timezone.now() if is_active else None,
    )
    logger.info(
        "Student %s enrolled in %s (%s, enrollment %s)",
        student.id, ref.key, status.value, enrollment.id,
    )

    if status == EnrollmentStatus.PENDING:
        async with NotificationOutbox() as outbox:
            await _queue_new_payment(outbox, await _student_user(student), resolved, enrollment)

    return enrollment, True


async def _update_pending(
    student: Student,
    enrollment: Enrollment,
    ref: CourseRef,
    payment: PaymentDetails,
) -> Enrollment:
    had_payment_info = enrollment.has_payment_info

    enrollment.payment_method = payment.payment_method or enrollment.payment_method
    enrollment.transaction_id = payment.transaction_id or enrollment.transaction_id
    enrollment.amount_paid = payment.amount_paid or enrollment.amount_paid
    if payment.payment_screenshot:
        enrollment.payment_screenshot = payment.payment_screenshot
    if payment.requires_verification is not None:
        enrollment.verification_required = payment.requires_verification

    await enrollment.save(update_fields=[
        "payment_method",
        "transaction_id",
        "amount_paid",
        "payment_screenshot",
        "verification_required",
        "updated_at",
    ])
    logger.info("Updated pending enrollment %s for student %s", enrollment.id, student.id)

    adding_payment_info = payment.has_payment_info and not had_payment_info
    if adding_payment_info and enrollment.verification_required:
        async with NotificationOutbox() as outbox:
            resolved = await _resolve_leniently(ref)
            await _queue_new_payment(outbox, await _student_user(student), resolved, enrollment)

    return enrollment


async def _pending_enrollment(enrollment_id: int) -> Enrollment:
    enrollment = await Enrollment.get_or_none(id=enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")
    if enrollment.status != EnrollmentStatus.PENDING:
        raise ConflictError(f"Enrollment is not pending (current status: {enrollment.status.value})")
    return enrollment


async def verify_payment(enrollment_id: int, admin: User) -> Enrollment:
    """
    Approve a pending enrollment's payment and activate it

    Raises:
        NotFoundError: Unknown enrollment
        ConflictError: The enrollment is no longer pending
    """
    enrollment = await _pending_enrollment(enrollment_id)

    now = timezone.now()
    updated = await Enrollment.filter(id=enrollment.id, status=EnrollmentStatus.PENDING).update(
        status=EnrollmentStatus.ACTIVE,
        verified_at=now,
        verified_by_id=admin.id,
        current_section=enrollment.current_section or FIRST_SECTION,
        last_accessed=now,
        updated_at=now,
    )
    if not updated:
        raise ConflictError("Enrollment is not pending (already processed)")

    await enrollment.refresh_from_db()
    logger.info("Admin %s verified payment for enrollment %s", admin.id, enrollment.id)

    async with NotificationOutbox() as outbox:
        ref = course_ref_from_key(enrollment.course_key)
        resolved = await _resolve_leniently(ref)
        student = await Student.get(id=enrollment.student_id).prefetch_related("user")
        sender_id = await notifications.notification_sender_id(resolved)
        data = _course_data(resolved, enrollment)

        outbox.add(
            student.user_id,
            NotificationType.PAYMENT_APPROVED,
            notifications.payment_approved_message(resolved.title),
            sender_id=sender_id,
            data=data,
        )

        teacher = await notifications.resolve_owning_teacher(resolved, fallback_to_first=False)
        if teacher is not None:
            outbox.add(
                teacher.user_id,
                NotificationType.STUDENT_ASSIGNED,
                notifications.student_assigned_message(student.user.name, resolved.title),
                sender_id=admin.id,
                data={**data, "student_id": student.id, "student_name": student.user.name},
            )

    return enrollment


async def reject_payment(enrollment_id: int, admin: User, reason: Optional[str] = None) -> Enrollment:
    """
    Reject a pending enrollment's payment

    The enrollment becomes cancelled and stays as history.

    Raises:
        NotFoundError: Unknown enrollment
        ConflictError: The enrollment is no longer pending
    """
    enrollment = await _pending_enrollment(enrollment_id)
    reason = (reason or "").strip() or DEFAULT_REJECTION_REASON

    now = timezone.now()
    updated = await Enrollment.filter(id=enrollment.id, status=EnrollmentStatus.PENDING).update(
        status=EnrollmentStatus.CANCELLED,
        rejected_at=now,
        rejected_by_id=admin.id,
        rejection_reason=reason,
        updated_at=now,
    )
    if not updated:
        raise ConflictError("Enrollment is not pending (already processed)")

    await enrollment.refresh_from_db()
    logger.info("Admin %s rejected payment for enrollment %s", admin.id, enrollment.id)

    async with NotificationOutbox() as outbox:
        resolved = await _resolve_leniently(course_ref_from_key(enrollment.course_key))
        student = await Student.get(id=enrollment.student_id)
        outbox.add(
            student.user_id,
            NotificationType.PAYMENT_REJECTED,
            notifications.payment_rejected_message(resolved.title, reason),
            sender_id=await notifications.notification_sender_id(resolved),
            data={**_course_data(resolved, enrollment), "reason": reason},
        )

    return enrollment


async def update_progress(
    enrollment: Enrollment,
    progress: Optional[float] = None,
    current_section: Optional[str] = None,
    completed_sections: Optional[List[Any]] = None,
) -> Tuple[Enrollment, bool]:
    """
    Record a student's progress through a course

    Progress is clamped to 0-100. The first time it reaches 100 the
    enrollment becomes completed and the completion notifications go out;
    later updates never repeat them and never leave the completed state.

    Returns:
        The enrollment and whether this update completed the course
    """
    if enrollment.status not in ENROLLED_STATUSES:
        raise NotFoundError("Active enrollment not found")

    if progress is not None:
        enrollment.progress = clamp_progress(progress)
    if current_section:
        enrollment.current_section = current_section
    if completed_sections is not None:
        enrollment.completed_sections = completed_sections
    enrollment.last_accessed = timezone.now()

    await enrollment.save(update_fields=[
        "progress",
        "current_section",
        "completed_sections",
        "last_accessed",
        "updated_at",
    ])

    just_completed = False
    if enrollment.progress >= 100 and enrollment.status == EnrollmentStatus.ACTIVE:
        completed = await Enrollment.filter(id=enrollment.id, status=EnrollmentStatus.ACTIVE).update(
            status=EnrollmentStatus.COMPLETED,
            is_completed=True,
        )
        just_completed = completed > 0
        enrollment.status = EnrollmentStatus.COMPLETED
        enrollment.is_completed = True

    if just_completed:
        logger.info("Enrollment %s completed", enrollment.id)
        await _notify_completion(enrollment)

    return enrollment, just_completed


async def _notify_completion(enrollment: Enrollment) -> None:
    async with NotificationOutbox() as outbox:
        resolved = await _resolve_leniently(course_ref_from_key(enrollment.course_key))
        student = await Student.get(id=enrollment.student_id).prefetch_related("user")
        sender_id = await notifications.notification_sender_id(resolved)
        data = _course_data(resolved, enrollment)

        outbox.add(
            student.user_id,
            NotificationType.COURSE_COMPLETED,
            notifications.course_completed_message(resolved.title),
            sender_id=sender_id,
            data=data,
        )

        admin_ids = await notifications.admin_recipient_ids(AdminType.GENERAL)
        outbox.add_many(
            admin_ids,
            NotificationType.CERTIFICATE_REQUIRED,
            notifications.certificate_required_message(
                student.user.name, student.user.email, resolved.title
            ),
            sender_id=sender_id,
            data={
                **data,
                "student_id": student.id,
                "student_name": student.user.name,
                "student_email": student.user.email,
            },
        )


async def update_progress_for_student(
    student: Student,
    enrollment_id: int,
    progress: Optional[float] = None,
    current_section: Optional[str] = None,
    completed_sections: Optional[List[Any]] = None,
) -> Tuple[Enrollment, bool]:
    enrollment = await Enrollment.get_or_none(
        id=enrollment_id, student_id=student.id, status__in=ENROLLED_STATUSES
    )
    if enrollment is None:
        raise NotFoundError("Active enrollment not found")
    return await update_progress(enrollment, progress, current_section, completed_sections)


async def update_progress_as_teacher(
    teacher: Teacher,
    raw_course_ref: Any,
    student_id: int,
    progress: Optional[float] = None,
    current_section: Optional[str] = None,
    completed_sections: Optional[List[Any]] = None,
) -> Tuple[Enrollment, bool]:
    """Instructor updates a student's progress in one of their courses"""
    ref = await _instructor_course_ref(teacher, raw_course_ref)

    enrollment = await Enrollment.filter(
        student_id=student_id, course_key=ref.key, status__in=ENROLLED_STATUSES
    ).order_by("-created_at", "-id").first()
    if enrollment is None:
        raise NotFoundError("Student enrollment not found")

    return await update_progress(enrollment, progress, current_section, completed_sections)


async def _instructor_course_ref(teacher: Teacher, raw_course_ref: Any) -> CourseRef:
    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None or not await is_course_instructor(teacher.id, ref):
        raise NotFoundError("Course not found or access denied")
    return ref


# Listings

async def _views(
    enrollments: List[Enrollment],
    with_student: bool = False,
    with_instructor: bool = False,
) -> List[EnrollmentView]:
    titles = await course_titles_for_keys(e.course_key for e in enrollments)
    instructors: Dict[str, Optional[str]] = {}

    views = []
    for enrollment in enrollments:
        ref = course_ref_from_key(enrollment.course_key)
        view = EnrollmentView(
            enrollment=enrollment,
            course_ref=ref,
            course_title=titles.get(enrollment.course_key, UNKNOWN_COURSE_TITLE),
        )

        if with_student:
            user = enrollment.student.user
            view.student_name = user.name
            view.student_email = user.email

        if with_instructor and ref is not None:
            if enrollment.course_key not in instructors:
                resolved = await _resolve_leniently(ref)
                teacher = await notifications.resolve_owning_teacher(resolved, fallback_to_first=False)
                instructors[enrollment.course_key] = teacher.full_name if teacher else None
            view.instructor_name = instructors[enrollment.course_key] or "Course Instructor"

        views.append(view)
    return views


async def list_student_enrollments(student: Student) -> List[EnrollmentView]:
    enrollments = await Enrollment.filter(student_id=student.id).order_by("-created_at", "-id")
    return await _views(enrollments)


async def student_dashboard(student: Student) -> StudentDashboard:
    """
    Totals for a student's dashboard

    Cancelled enrollments are history and are not counted.
    """
    enrollments = await Enrollment.filter(student_id=student.id).exclude(
        status=EnrollmentStatus.CANCELLED
    )
    now = timezone.now()

    total = len(enrollments)
    return StudentDashboard(
        total_enrolled=total,
        completed_courses=sum(1 for e in enrollments if e.is_completed),
        average_progress=(sum(e.progress or 0 for e in enrollments) / total) if total else 0.0,
        upcoming_classes=sum(
            1 for e in enrollments if e.upcoming_class_date and e.upcoming_class_date >= now
        ),
    )


async def list_payment_submissions(status: Optional[EnrollmentStatus] = None) -> List[EnrollmentView]:
    """
    Enrollments an admin reviews payments for

    Without a status filter: every pending enrollment plus the active and
    cancelled ones that carry a payment screenshot.
    """
    query = Enrollment.all()
    if status is not None:
        query = query.filter(status=status)
    else:
        query = query.filter(status__in=[
            EnrollmentStatus.PENDING,
            EnrollmentStatus.ACTIVE,
            EnrollmentStatus.CANCELLED,
        ])

    enrollments = await query.prefetch_related("student__user").order_by("-created_at", "-id")
    enrollments = [
        e for e in enrollments
        if e.status == EnrollmentStatus.PENDING or e.payment_screenshot
    ]
    return await _views(enrollments, with_student=True, with_instructor=True)


async def list_certificate_requests(unsent_only: bool = False) -> List[EnrollmentView]:
    query = Enrollment.filter(status=EnrollmentStatus.COMPLETED)
    if unsent_only:
        query = query.filter(certificate_sent=False)

    enrollments = await query.prefetch_related("student__user").order_by("-updated_at", "-id")
    return await _views(enrollments, with_student=True)


async def mark_certificate_sent(enrollment_id: int, admin: User) -> Enrollment:
    enrollment = await Enrollment.get_or_none(id=enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found")
    if not enrollment.is_completed:
        raise ValidationFailedError("Course is not completed yet")

    enrollment.certificate_sent = True
    enrollment.certificate_sent_at = timezone.now()
    enrollment.certificate_sent_by_id = admin.id
    await enrollment.save(update_fields=[
        "certificate_sent",
        "certificate_sent_at",
        "certificate_sent_by_id",
        "updated_at",
    ])

    logger.info("Admin %s marked certificate sent for enrollment %s", admin.id, enrollment.id)
    return enrollment


async def course_students(teacher: Teacher, raw_course_ref: Any) -> List[EnrollmentView]:
    """Students enrolled in one of the teacher's courses"""
    ref = await _instructor_course_ref(teacher, raw_course_ref)

    enrollments = await Enrollment.filter(
        course_key=ref.key, status__in=ENROLLED_STATUSES
    ).prefetch_related("student__user").order_by("-created_at", "-id")
    return await _views(enrollments, with_student=True)


async def teacher_students(teacher: Teacher) -> List[TeacherStudent]:
    """Students across all of a teacher's courses, grouped per student"""
    course_keys = await teacher_course_keys(teacher.id)
    if not course_keys:
        return []

    enrollments = await Enrollment.filter(
        course_key__in=course_keys, status__in=ENROLLED_STATUSES
    ).prefetch_related("student__user").order_by("-created_at", "-id")

    students: Dict[int, TeacherStudent] = {}
    for view in await _views(enrollments, with_student=True):
        student = view.enrollment.student
        if student.id not in students:
            students[student.id] = TeacherStudent(
                student_id=student.id,
                user_id=student.user_id,
                name=view.student_name or "Student",
                email=view.student_email or "",
            )
        students[student.id].courses.append(view)

    return list(students.values())


async def enrollment_view(enrollment: Enrollment) -> EnrollmentView:
    views = await _views([enrollment])
    return views[0]
