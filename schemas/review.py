from typing import Optional, List, Any, Union
from pydantic import BaseModel
from datetime import datetime

from models.review import ReviewStatus


class ReviewCreate(BaseModel):
    # Rating and text are checked by the review service
    teacher_id: Union[int, str]
    course_id: Union[int, str]
    rating: Any = None
    review_text: Optional[str] = None


class ReviewUpdate(BaseModel):
    rating: Any = None
    review_text: Optional[str] = None


class ReviewResponse(BaseModel):
    id: int
    teacher_id: int
    student_id: int
    course_id: Optional[Union[int, str]] = None
    course_title: Optional[str] = None
    student_name: Optional[str] = None
    rating: int
    review_text: str
    status: ReviewStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_review(cls, review, course_id=None, course_title=None, student_name=None) -> "ReviewResponse":
        return cls(
            id=review.id,
            teacher_id=review.teacher_id,
            student_id=review.student_id,
            course_id=course_id,
            course_title=course_title,
            student_name=student_name,
            rating=review.rating,
            review_text=review.review_text,
            status=review.status,
            created_at=review.created_at,
            updated_at=review.updated_at,
        )

    @classmethod
    def from_view(cls, view) -> "ReviewResponse":
        """Build from a services.reviews.ReviewView"""
        return cls.from_review(view.review, view.course_id, view.course_title, view.student_name)


class ReviewSavedResponse(BaseModel):
    message: str
    review: ReviewResponse


class CanReviewResponse(BaseModel):
    can_review: bool
    message: str
    reason: Optional[str] = None
    existing_review: Optional[ReviewResponse] = None


class TeacherReviewsResponse(BaseModel):
    teacher_id: int
    teacher_name: str
    total_reviews: int
    average_rating: float
    reviews: List[ReviewResponse]


class ReviewListResponse(BaseModel):
    total: int
    reviews: List[ReviewResponse]


class CompletedCourseResponse(BaseModel):
    course_id: Optional[Union[int, str]] = None
    course_title: Optional[str] = None
    progress: float
    completed_at: Optional[datetime] = None
    has_reviewed: bool
    existing_review: Optional[ReviewResponse] = None


class CompletedCourseListResponse(BaseModel):
    courses: List[CompletedCourseResponse]
