from typing import Any

from fastapi import APIRouter, Depends, Path, status

from models.users import Student, User
from schemas.common import MessageResponse
from schemas.review import (
    CanReviewResponse,
    CompletedCourseListResponse,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewSavedResponse,
    ReviewUpdate,
    TeacherReviewsResponse,
)
from core.security import get_current_student, get_current_user
from services import reviews
from services.course_refs import course_ref_from_key, course_title

# Create reviews router
router = APIRouter(prefix="/reviews", tags=["reviews"])


async def _review_response(review) -> ReviewResponse:
    ref = course_ref_from_key(review.course_key)
    return ReviewResponse.from_review(
        review,
        course_id=ref.as_client_value() if ref else None,
        course_title=await course_title(ref),
    )


@router.post("", response_model=ReviewSavedResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    review_in: ReviewCreate,
    student: Student = Depends(get_current_student),
) -> Any:
    """
    Review the teacher of a completed course
    """
    review = await reviews.create_review(
        student, review_in.teacher_id, review_in.course_id, review_in.rating, review_in.review_text
    )
    return {"message": "Review submitted successfully", "review": await _review_response(review)}


@router.get("/can-review/{teacher_id}/{course_id}", response_model=CanReviewResponse)
async def can_review(
    teacher_id: str,
    course_id: str,
    current_user: User = Depends(get_current_user),
) -> Any:
    """
    Whether the current user may review a teacher for a course
    """
    student = await Student.get_or_none(user_id=current_user.id)
    eligibility = await reviews.can_review(student, teacher_id, course_id)

    existing = None
    if eligibility.existing_review is not None:
        existing = await _review_response(eligibility.existing_review)
    return {
        "can_review": eligibility.can_review,
        "message": eligibility.message,
        "reason": eligibility.reason.value if eligibility.reason else None,
        "existing_review": existing,
    }


@router.get("/teacher/{teacher_id}", response_model=TeacherReviewsResponse)
async def list_teacher_reviews(teacher_id: str) -> Any:
    teacher, views, average = await reviews.list_teacher_reviews(teacher_id)
    await teacher.fetch_related("user")
    return {
        "teacher_id": teacher.id,
        "teacher_name": teacher.full_name or teacher.user.name,
        "total_reviews": len(views),
        "average_rating": average,
        "reviews": [ReviewResponse.from_view(view) for view in views],
    }


@router.get("/my-reviews", response_model=ReviewListResponse)
async def list_my_reviews(student: Student = Depends(get_current_student)) -> Any:
    views = await reviews.list_my_reviews(student)
    return {"total": len(views), "reviews": [ReviewResponse.from_view(view) for view in views]}


@router.get("/completed-courses/{teacher_id}", response_model=CompletedCourseListResponse)
async def list_completed_courses(
    teacher_id: str,
    student: Student = Depends(get_current_student),
) -> Any:
    """
    The student's completed courses with a teacher, and which are reviewed
    """
    items = await reviews.completed_courses_for_review(student, teacher_id)
    return {
        "courses": [
            {
                "course_id": item.course_id,
                "course_title": item.course_title,
                "progress": item.progress,
                "completed_at": item.completed_at,
                "has_reviewed": item.has_reviewed,
                "existing_review": (
                    ReviewResponse.from_review(item.existing_review, item.course_id, item.course_title)
                    if item.existing_review else None
                ),
            }
            for item in items
        ]
    }


@router.put("/{review_id}", response_model=ReviewSavedResponse)
async def update_review(
    review_in: ReviewUpdate,
    review_id: int = Path(..., gt=0),
    student: Student = Depends(get_current_student),
) -> Any:
    review = await reviews.update_review(student, review_id, review_in.rating, review_in.review_text)
    return {"message": "Review updated successfully", "review": await _review_response(review)}


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: int = Path(..., gt=0),
    student: Student = Depends(get_current_student),
) -> Any:
    await reviews.delete_review(student, review_id)
    return {"message": "Review deleted successfully"}
