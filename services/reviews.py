"""
Review eligibility and review management

A student may review the teacher of a course once per course, and only
after completing that course.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

from tortoise.exceptions import IntegrityError

from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from models.course import Course
from models.enrollment import Enrollment, EnrollmentStatus
from models.review import Review, ReviewStatus
from models.users import Student, Teacher
from services.course_refs import (
    CourseRef,
    course_predicate,
    course_ref_from_key,
    course_titles_for_keys,
    find_stored_course,
    parse_canonical_ref,
    teacher_course_keys,
)


logger = logging.getLogger(__name__)

MAX_REVIEW_LENGTH = 2000


class IneligibilityReason(str, Enum):
    ALREADY_REVIEWED = "already_reviewed"
    NOT_COMPLETED = "not_completed"
    NOT_FOUND = "not_found"


@dataclass
class ReviewEligibility:
    can_review: bool
    message: str
    reason: Optional[IneligibilityReason] = None
    existing_review: Optional[Review] = None

    @classmethod
    def eligible(cls) -> "ReviewEligibility":
        return cls(can_review=True, message="Course completed, ready to review")

    @classmethod
    def ineligible(
        cls,
        reason: IneligibilityReason,
        message: str,
        existing_review: Optional[Review] = None,
    ) -> "ReviewEligibility":
        return cls(can_review=False, message=message, reason=reason, existing_review=existing_review)


@dataclass
class ReviewView:
    review: Review
    course_id: Any
    course_title: Optional[str]
    student_name: str = "Student"


@dataclass
class CourseForReview:
    course_id: Any
    course_title: Optional[str]
    progress: float
    completed_at: Optional[datetime]
    has_reviewed: bool
    existing_review: Optional[Review] = None


async def find_teacher(teacher_ref: Any) -> Optional[Teacher]:
    """
    Look up a teacher by profile id, falling back to the teacher's user id
    """
    try:
        teacher_id = int(teacher_ref)
    except (TypeError, ValueError):
        return None

    teacher = await Teacher.get_or_none(id=teacher_id)
    if teacher is None:
        teacher = await Teacher.get_or_none(user_id=teacher_id)
    return teacher


async def _completed_enrollment(student: Student, ref: CourseRef) -> Optional[Enrollment]:
    return await Enrollment.filter(
        student_id=student.id,
        course_key=ref.key,
        status=EnrollmentStatus.COMPLETED,
    ).order_by("-updated_at", "-id").first()


async def _existing_review(teacher: Teacher, student: Student, ref: CourseRef) -> Optional[Review]:
    return await Review.get_or_none(teacher_id=teacher.id, student_id=student.id, course_key=ref.key)


async def can_review(
    student: Optional[Student],
    teacher_ref: Any,
    raw_course_ref: Any,
) -> ReviewEligibility:
    """
    Whether a student may review a teacher for a course

    An existing review for the exact (teacher, student, course) triple
    makes the student ineligible even when another completed enrollment
    for the course exists.
    """
    if student is None:
        return ReviewEligibility.ineligible(IneligibilityReason.NOT_FOUND, "Not a student")

    teacher = await find_teacher(teacher_ref)
    if teacher is None:
        return ReviewEligibility.ineligible(IneligibilityReason.NOT_FOUND, "Teacher not found")

    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None:
        return ReviewEligibility.ineligible(IneligibilityReason.NOT_FOUND, "Course not found")

    existing = await _existing_review(teacher, student, ref)
    if existing is not None:
        return ReviewEligibility.ineligible(
            IneligibilityReason.ALREADY_REVIEWED, "Already reviewed", existing_review=existing
        )

    if await _completed_enrollment(student, ref) is None:
        return ReviewEligibility.ineligible(IneligibilityReason.NOT_COMPLETED, "Course not completed")

    return ReviewEligibility.eligible()


def _validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, (int, float)) or int(rating) != rating:
        raise ValidationFailedError("Rating must be between 1 and 5")
    if rating < 1 or rating > 5:
        raise ValidationFailedError("Rating must be between 1 and 5")
    return int(rating)


def _validate_text(review_text: Optional[str]) -> str:
    text = (review_text or "").strip()
    if not text:
        raise ValidationFailedError("Review text is required")
    if len(text) > MAX_REVIEW_LENGTH:
        raise ValidationFailedError(f"Review text cannot exceed {MAX_REVIEW_LENGTH} characters")
    return text


async def refresh_course_rating(ref: Optional[CourseRef]) -> None:
    """Recompute the rating aggregate of a stored course from its active reviews"""
    if ref is None:
        return

    course = await find_stored_course(ref)
    if course is None:
        return

    ratings = await Review.filter(
        course_key=ref.key, status=ReviewStatus.ACTIVE
    ).values_list("rating", flat=True)

    average = round(sum(ratings) / len(ratings), 1) if ratings else 0
    await Course.filter(course_predicate(ref)).update(rating=average, total_reviews=len(ratings))


async def create_review(
    student: Student,
    teacher_ref: Any,
    raw_course_ref: Any,
    rating: Any,
    review_text: Optional[str],
) -> Review:
    """
    Create a review after checking the student completed the course

    Raises:
        ValidationFailedError: Bad rating or text
        NotFoundError: Unknown teacher
        ForbiddenError: Course not completed, or taught by another teacher
        ConflictError: The student already reviewed this course
    """
    rating = _validate_rating(rating)
    text = _validate_text(review_text)

    teacher = await find_teacher(teacher_ref)
    if teacher is None:
        raise NotFoundError("Teacher not found")

    ref = await parse_canonical_ref(raw_course_ref)
    if ref is None:
        raise ValidationFailedError("Invalid course ID")

    if await _completed_enrollment(student, ref) is None:
        raise ForbiddenError("You can only review a course you have completed (100% progress)")

    course = await find_stored_course(ref)
    if course is not None and course.teacher_id is not None and course.teacher_id != teacher.id:
        raise ForbiddenError("This course is not taught by this teacher")

    if await _existing_review(teacher, student, ref) is not None:
        raise ConflictError(
            "You have already reviewed this course. You can update your existing review instead."
        )

    try:
        review = await Review.create(
            teacher_id=teacher.id,
            student_id=student.id,
            course_key=ref.key,
            rating=rating,
            review_text=text,
        )
    except IntegrityError:
        raise ConflictError("You have already reviewed this course")

    logger.info("Student %s reviewed teacher %s for %s", student.id, teacher.id, ref.key)
    await refresh_course_rating(ref)
    return review


async def _review_views(reviews: List[Review]) -> List[ReviewView]:
    titles = await course_titles_for_keys(r.course_key for r in reviews)

    views = []
    for review in reviews:
        ref = course_ref_from_key(review.course_key)
        views.append(ReviewView(
            review=review,
            course_id=ref.as_client_value() if ref else None,
            course_title=titles.get(review.course_key),
            student_name=review.student.user.name,
        ))
    return views


async def list_teacher_reviews(teacher_ref: Any) -> Tuple[Teacher, List[ReviewView], float]:
    """
    Active reviews of a teacher, newest first

    Returns:
        The teacher, the reviews and the average rating (one decimal)
    """
    teacher = await find_teacher(teacher_ref)
    if teacher is None:
        raise NotFoundError("Teacher not found")

    reviews = await Review.filter(
        teacher_id=teacher.id, status=ReviewStatus.ACTIVE
    ).prefetch_related("student__user").order_by("-created_at", "-id")

    average = round(sum(r.rating for r in reviews) / len(reviews), 1) if reviews else 0.0
    return teacher, await _review_views(reviews), average


async def list_my_reviews(student: Student) -> List[ReviewView]:
    reviews = await Review.filter(student_id=student.id).prefetch_related(
        "student__user"
    ).order_by("-created_at", "-id")
    return await _review_views(reviews)


async def _own_review(student: Student, review_id: int) -> Review:
    review = await Review.get_or_none(id=review_id, student_id=student.id)
    if review is None:
        raise NotFoundError("Review not found or not yours")
    return review


async def update_review(
    student: Student,
    review_id: int,
    rating: Any = None,
    review_text: Optional[str] = None,
) -> Review:
    review = await _own_review(student, review_id)

    if rating is not None:
        review.rating = _validate_rating(rating)
    if review_text is not None:
        review.review_text = _validate_text(review_text)

    await review.save()
    await refresh_course_rating(course_ref_from_key(review.course_key))
    return review


async def delete_review(student: Student, review_id: int) -> None:
    review = await _own_review(student, review_id)
    await review.delete()

    logger.info("Student %s deleted review %s", student.id, review_id)
    await refresh_course_rating(course_ref_from_key(review.course_key))


async def completed_courses_for_review(student: Student, teacher_ref: Any) -> List[CourseForReview]:
    """A student's completed courses taught by a teacher, with review status"""
    teacher = await find_teacher(teacher_ref)
    if teacher is None:
        raise NotFoundError("Teacher not found")

    course_keys = await teacher_course_keys(teacher.id)
    if not course_keys:
        return []

    enrollments = await Enrollment.filter(
        student_id=student.id,
        course_key__in=course_keys,
        status=EnrollmentStatus.COMPLETED,
    ).order_by("-updated_at", "-id")

    reviews = {
        review.course_key: review
        for review in await Review.filter(teacher_id=teacher.id, student_id=student.id)
    }
    titles = await course_titles_for_keys(e.course_key for e in enrollments)

    courses = []
    seen = set()
    for enrollment in enrollments:
        if enrollment.course_key in seen:
            continue
        seen.add(enrollment.course_key)

        ref = course_ref_from_key(enrollment.course_key)
        existing = reviews.get(enrollment.course_key)
        courses.append(CourseForReview(
            course_id=ref.as_client_value() if ref else None,
            course_title=titles.get(enrollment.course_key),
            progress=enrollment.progress,
            completed_at=enrollment.updated_at,
            has_reviewed=existing is not None,
            existing_review=existing,
        ))
    return courses
