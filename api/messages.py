from typing import Any

from fastapi import APIRouter, Depends, Path, status

from models.users import Student, Teacher, User
from schemas.message import (
    DirectMessageResponse,
    InboxResponse,
    MeetingLinkResponse,
    MessageSentResponse,
    StudentMessageCreate,
    TeacherMessageCreate,
)
from core.security import get_current_student, get_current_teacher, get_current_user
from services import messages
from services.course_refs import course_ref_from_key, course_title

# Create messages router
router = APIRouter(prefix="/messages", tags=["messages"])


def _inbox(views) -> dict:
    return {
        "total": len(views),
        "unread_count": sum(1 for view in views if not view.message.is_read),
        "messages": [DirectMessageResponse.from_view(view) for view in views],
    }


@router.post("/students", response_model=MessageSentResponse, status_code=status.HTTP_201_CREATED)
async def send_to_students(
    message_in: StudentMessageCreate,
    teacher: Teacher = Depends(get_current_teacher),
) -> Any:
    """
    Message the listed students of one of the teacher's courses

    Students who are not enrolled in the course are skipped.
    """
    sent = await messages.send_to_students(
        teacher,
        message_in.course_id,
        message_in.student_ids,
        message_in.message,
        message_in.message_type,
        meeting_date=message_in.meeting_date,
        meeting_time=message_in.meeting_time,
        zoom_link=message_in.zoom_link,
        meeting_id=message_in.meeting_id,
        meeting_password=message_in.meeting_password,
    )
    ref = course_ref_from_key(sent[0].course_key) if sent else None
    title = await course_title(ref) if ref else None
    return {
        "message": f"Message sent to {len(sent)} student(s)",
        "count": len(sent),
        "messages": [
            DirectMessageResponse.from_message(m, ref.as_client_value() if ref else None, title)
            for m in sent
        ],
    }


@router.post("/teacher", response_model=DirectMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_to_teacher(
    message_in: TeacherMessageCreate,
    student: Student = Depends(get_current_student),
) -> Any:
    message = await messages.send_to_teacher(
        student,
        message_in.teacher_id,
        message_in.course_id,
        message_in.message,
        message_in.reply_to_id,
    )
    ref = course_ref_from_key(message.course_key)
    return DirectMessageResponse.from_message(message, ref.as_client_value(), await course_title(ref))


@router.get("/student", response_model=InboxResponse)
async def student_inbox(student: Student = Depends(get_current_student)) -> Any:
    return _inbox(await messages.student_inbox(student))


@router.get("/teacher", response_model=InboxResponse)
async def teacher_inbox(teacher: Teacher = Depends(get_current_teacher)) -> Any:
    return _inbox(await messages.teacher_inbox(teacher))


@router.put("/{message_id}/read", response_model=DirectMessageResponse)
async def mark_read(
    message_id: int = Path(..., gt=0),
    current_user: User = Depends(get_current_user),
) -> Any:
    message = await messages.mark_message_read(current_user, message_id)
    ref = course_ref_from_key(message.course_key)
    return DirectMessageResponse.from_message(
        message, ref.as_client_value() if ref else None, await course_title(ref)
    )


@router.get("/courses/{course_id}/meeting-link", response_model=MeetingLinkResponse)
async def latest_meeting_link(
    course_id: str,
    current_user: User = Depends(get_current_user),
) -> Any:
    """
    Most recent meeting link sent for a course
    """
    message = await messages.latest_meeting_link(course_id)
    if message is None:
        return MeetingLinkResponse()
    return message
