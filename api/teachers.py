from typing import Any

from fastapi import APIRouter, Depends, Path

from models.users import Teacher
from schemas.common import MessageResponse
from schemas.course import (
    AssignmentResponse,
    AssignmentStatusRequest,
    AssignmentStatusResponse,
    CourseListResponse,
)
from schemas.enrollment import (
    EnrollmentListResponse,
    EnrollmentResponse,
    ProgressResponse,
    ProgressUpdate,
    TeacherStudentListResponse,
)
from schemas.user import TeacherProfileResponse, TeacherProfileUpdate
from core.exceptions import NotFoundError
from core.security import get_current_teacher
from services import accounts, courses, enrollments

# Create teachers router
router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.get("/profile", response_model=TeacherProfileResponse)
async def read_profile(teacher: Teacher = Depends(get_current_teacher)) -> Any:
    return teacher


@router.put("/profile", response_model=TeacherProfileResponse)
async def update_profile(
    profile_in: TeacherProfileUpdate,
    teacher: Teacher = Depends(get_current_teacher),
) -> Any:
    return await accounts.update_teacher_profile(teacher, profile_in.model_dump(exclude_unset=True))


@router.get("/courses", response_model=CourseListResponse)
async def list_my_courses(teacher: Teacher = Depends(get_current_teacher)) -> Any:
    """
    Courses the teacher authored, approved or not
    """
    items = await courses.list_teacher_courses(teacher)
    return {"total": len(items), "courses": items}


@router.get("/students", response_model=TeacherStudentListResponse)
async def list_my_students(teacher: Teacher = Depends(get_current_teacher)) -> Any:
    """
    Students across all of the teacher's courses
    """
    students = await enrollments.teacher_students(teacher)
    return {
        "total": len(students),
        "students": [
            {
                "student_id": s.student_id,
                "user_id": s.user_id,
                "name": s.name,
                "email": s.email,
                "courses": [EnrollmentResponse.from_view(view) for view in s.courses],
            }
            for s in students
        ],
    }


@router.get("/courses/{course_id}/students", response_model=EnrollmentListResponse)
async def list_course_students(
    course_id: str,
    teacher: Teacher = Depends(get_current_teacher),
) -> Any:
    views = await enrollments.course_students(teacher, course_id)
    return {
        "total": len(views),
        "enrollments": [EnrollmentResponse.from_view(view) for view in views],
    }


@router.put("/courses/{course_id}/students/{student_id}/progress", response_model=ProgressResponse)
async def update_student_progress(
    progress_in: ProgressUpdate,
    course_id: str,
    student_id: int = Path(..., gt=0),
    teacher: Teacher = Depends(get_current_teacher),
) -> Any:
    """
    Record a student's progress in one of the teacher's courses
    """
    enrollment, just_completed = await enrollments.update_progress_as_teacher(
        teacher,
        course_id,
        student_id,
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


@router.post("/courses/{course_id}/assign", response_model=AssignmentResponse)
async def assign_course(
    course_id: str,
    teacher: Teacher = Depends(get_current_teacher),
) -> Any:
    """
    Take over teaching a course the teacher does not own
    """
    resolved = await courses.assign_teacher(teacher, course_id)
    return {
        "message": "Course assigned successfully",
        "course_id": resolved.ref.as_client_value(),
        "course_title": resolved.title,
    }


@router.delete("/courses/{course_id}/assign", response_model=MessageResponse)
async def unassign_course(
    course_id: str,
    teacher: Teacher = Depends(get_current_teacher),
) -> Any:
    if not await courses.unassign_teacher(teacher, course_id):
        raise NotFoundError("Course assignment not found")
    return {"message": "Course unassigned successfully"}


@router.post("/assignment-status", response_model=AssignmentStatusResponse)
async def check_assignment_status(
    status_in: AssignmentStatusRequest,
    teacher: Teacher = Depends(get_current_teacher),
) -> Any:
    """
    Which of the listed courses another teacher already teaches
    """
    return {"assignment_status": await courses.assignment_status(teacher, status_in.course_ids)}


@router.get("/{teacher_id}", response_model=TeacherProfileResponse)
async def read_teacher(teacher_id: int = Path(..., gt=0)) -> Any:
    """
    Public teacher profile
    """
    return await accounts.get_teacher(teacher_id)
