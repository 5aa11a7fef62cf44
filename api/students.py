from typing import Any

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from models.users import Student, User
from schemas.enrollment import (
    DashboardResponse,
    EnrollCreate,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentSavedResponse,
    ProgressResponse,
    ProgressUpdate,
)
from schemas.user import StudentProfileResponse, StudentProfileUpdate
from core.security import get_current_student, get_current_user
from services import accounts, enrollments
from services.enrollments import PaymentDetails

# Create students router
router = APIRouter(prefix="/students", tags=["students"])


@router.get("/profile", response_model=StudentProfileResponse)
async def read_profile(current_user: User = Depends(get_current_user)) -> Any:
    return await accounts.student_profile(current_user)


@router.put("/profile", response_model=StudentProfileResponse)
async def update_profile(
    profile_in: StudentProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> Any:
    student = await accounts.student_profile(current_user)
    return await accounts.update_student_profile(student, profile_in.profile_image)


@router.get("/dashboard", response_model=DashboardResponse)
async def read_dashboard(student: Student = Depends(get_current_student)) -> Any:
    """
    Enrollment totals for the student's dashboard
    """
    return await enrollments.student_dashboard(student)


@router.post("/enroll", response_model=EnrollmentSavedResponse, status_code=status.HTTP_201_CREATED)
async def enroll(
    enroll_in: EnrollCreate,
    student: Student = Depends(get_current_student),
) -> Any:
    """
    Enroll in a course

    Returns 201 for a new enrollment and 200 when a pending enrollment
    for the same course was updated.
    """
    payment = PaymentDetails(
        payment_method=enroll_in.payment_method,
        transaction_id=enroll_in.transaction_id,
        amount_paid=enroll_in.amount_paid,
        payment_screenshot=enroll_in.payment_screenshot,
        requires_verification=enroll_in.requires_verification,
    )
    enrollment, created = await enrollments.enroll(student, enroll_in.course_id, payment)
    view = await enrollments.enrollment_view(enrollment)

    body = EnrollmentSavedResponse(
        message="Enrolled successfully" if created else "Enrollment updated successfully",
        enrollment=EnrollmentResponse.from_view(view),
    )
    if created:
        return body
    return JSONResponse(status_code=status.HTTP_200_OK, content=jsonable_encoder(body))


@router.get("/enrollments", response_model=EnrollmentListResponse)
async def list_enrollments(student: Student = Depends(get_current_student)) -> Any:
    """
    All of the student's enrollments, cancelled ones included
    """
    views = await enrollments.list_student_enrollments(student)
    return {
        "total": len(views),
        "enrollments": [EnrollmentResponse.from_view(view) for view in views],
    }


@router.put("/enrollments/{enrollment_id}/progress", response_model=ProgressResponse)
async def update_progress(
    progress_in: ProgressUpdate,
    enrollment_id: int = Path(..., gt=0),
    student: Student = Depends(get_current_student),
) -> Any:
    enrollment, just_completed = await enrollments.update_progress_for_student(
        student,
        enrollment_id,
        progress_in.progress,
        progress_in.current_section,
        progress_in.completed_sections,
    )
    view = await enrollments.enrollment_view(enrollment)
    return {
        "message": "Course completed" if just_completed else "Progress updated",
        "course_completed": just_completed,
        "enrollment": EnrollmentResponse.from_view(view),
    }
