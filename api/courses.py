from typing import Any

from fastapi import APIRouter, Depends, status

from models.users import AdminType, User
from schemas.common import MessageResponse
from schemas.course import (
    CourseCreate,
    CourseDetailResponse,
    CourseListResponse,
    CourseRejection,
    CourseSavedResponse,
    CourseUpdate,
    InstructorResponse,
)
from core.security import AdminTypeChecker, get_current_user
from services import courses

# Create courses router
router = APIRouter(prefix="/courses", tags=["courses"])

allow_general_admins = AdminTypeChecker([AdminType.GENERAL])


@router.post("", response_model=CourseSavedResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course_in: CourseCreate,
    current_user: User = Depends(get_current_user),
) -> Any:
    """
    Create a course (teacher or general admin)

    Teacher courses are submitted for approval.
    """
    course = await courses.create_course(current_user, course_in.model_dump(mode="json"))
    message = "Course created successfully" if course.is_approved else "Course submitted for approval"
    return {"message": message, "course": course}


@router.get("", response_model=CourseListResponse)
async def list_courses() -> Any:
    """
    Approved courses, newest first
    """
    items = await courses.list_approved_courses()
    return {"total": len(items), "courses": items}


@router.get("/pending", response_model=CourseListResponse)
async def list_pending_courses(current_user: User = Depends(allow_general_admins)) -> Any:
    items = await courses.list_pending_courses()
    return {"total": len(items), "courses": items}


@router.put("/{course_id}/approve", response_model=CourseSavedResponse)
async def approve_course(
    course_id: str,
    current_user: User = Depends(allow_general_admins),
) -> Any:
    course = await courses.approve_course(current_user, course_id)
    return {"message": "Course approved successfully", "course": course}


@router.put("/{course_id}/reject", response_model=CourseSavedResponse)
async def reject_course(
    course_id: str,
    rejection: CourseRejection,
    current_user: User = Depends(allow_general_admins),
) -> Any:
    course = await courses.reject_course(current_user, course_id, rejection.reason)
    return {"message": "Course rejected", "course": course}


@router.get("/{course_id}", response_model=CourseDetailResponse)
async def read_course(course_id: str) -> Any:
    """
    A stored course, or the placeholder of a catalog course
    """
    resolved = await courses.get_course(course_id)
    return {
        "course_id": resolved.ref.as_client_value(),
        "course_title": resolved.title,
        "is_placeholder": resolved.is_placeholder,
        "course": resolved.course,
    }


@router.get("/{course_id}/instructor", response_model=InstructorResponse)
async def read_course_instructor(course_id: str) -> Any:
    teacher = await courses.course_instructor(course_id)
    if teacher is None:
        return {"instructor": None}

    await teacher.fetch_related("user")
    return {
        "instructor": {
            "id": teacher.id,
            "name": teacher.full_name or teacher.user.name,
            "title": teacher.prof_title,
        }
    }


@router.put("/{course_id}", response_model=CourseSavedResponse)
async def update_course(
    course_id: str,
    course_in: CourseUpdate,
    current_user: User = Depends(get_current_user),
) -> Any:
    """
    Update a course (its teacher or a general admin)
    """
    course = await courses.update_course(
        current_user, course_id, course_in.model_dump(mode="json", exclude_unset=True)
    )
    return {"message": "Course updated successfully", "course": course}


@router.delete("/{course_id}", response_model=MessageResponse)
async def delete_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
) -> Any:
    await courses.delete_course(current_user, course_id)
    return {"message": "Course deleted successfully"}
