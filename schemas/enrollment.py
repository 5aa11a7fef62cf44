from typing import Optional, List, Any, Union
from pydantic import BaseModel, Field
from datetime import datetime

from models.enrollment import EnrollmentStatus


class EnrollCreate(BaseModel):
    """Enrollment request; ``course_id`` is a stored course id or a catalog number"""
    course_id: Union[int, str]
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    amount_paid: Optional[float] = Field(None, ge=0)
    payment_screenshot: Optional[str] = None
    requires_verification: Optional[bool] = None


class ProgressUpdate(BaseModel):
    # Out of range values are clamped to 0-100
    progress: Optional[float] = None
    current_section: Optional[str] = None
    completed_sections: Optional[List[Any]] = None


class PaymentRejection(BaseModel):
    reason: Optional[str] = None


class EnrollmentResponse(BaseModel):
    id: int
    student_id: int
    course_id: Optional[Union[int, str]] = None
    course_title: str
    status: EnrollmentStatus
    progress: float
    is_completed: bool
    current_section: Optional[str] = None
    completed_sections: List[Any] = []
    last_accessed: Optional[datetime] = None
    upcoming_class_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    amount_paid: float = 0
    payment_screenshot: Optional[str] = None
    verification_required: bool = False
    verified_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    certificate_sent: bool = False
    certificate_sent_at: Optional[datetime] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    instructor_name: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_view(cls, view) -> "EnrollmentResponse":
        """Build from a services.enrollments.EnrollmentView"""
        e = view.enrollment
        return cls(
            id=e.id,
            student_id=e.student_id,
            course_id=view.course_id,
            course_title=view.course_title,
            status=e.status,
            progress=e.progress,
            is_completed=e.is_completed,
            current_section=e.current_section,
            completed_sections=e.completed_sections or [],
            last_accessed=e.last_accessed,
            upcoming_class_date=e.upcoming_class_date,
            payment_method=e.payment_method,
            transaction_id=e.transaction_id,
            amount_paid=e.amount_paid or 0,
            payment_screenshot=e.payment_screenshot,
            verification_required=e.verification_required,
            verified_at=e.verified_at,
            rejected_at=e.rejected_at,
            rejection_reason=e.rejection_reason,
            certificate_sent=e.certificate_sent,
            certificate_sent_at=e.certificate_sent_at,
            student_name=view.student_name,
            student_email=view.student_email,
            instructor_name=view.instructor_name,
            created_at=e.created_at,
        )


class EnrollmentSavedResponse(BaseModel):
    message: str
    enrollment: EnrollmentResponse


class EnrollmentListResponse(BaseModel):
    total: int
    enrollments: List[EnrollmentResponse]


class ProgressResponse(BaseModel):
    message: str
    course_completed: bool
    enrollment: EnrollmentResponse


class DashboardResponse(BaseModel):
    total_enrolled: int
    completed_courses: int
    average_progress: float
    upcoming_classes: int


class TeacherStudentResponse(BaseModel):
    student_id: int
    user_id: int
    name: str
    email: str
    courses: List[EnrollmentResponse] = []


class TeacherStudentListResponse(BaseModel):
    total: int
    students: List[TeacherStudentResponse]
