from typing import Optional, List, Union
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from models.message import MessageDirection, MessageType


class StudentMessageCreate(BaseModel):
    """Teacher to students of one course"""
    course_id: Union[int, str]
    student_ids: List[int] = Field(..., min_length=1)
    message: str
    message_type: MessageType = MessageType.INFO
    meeting_date: Optional[datetime] = None
    meeting_time: Optional[str] = None
    zoom_link: Optional[str] = None
    meeting_id: Optional[str] = None
    meeting_password: Optional[str] = None


class TeacherMessageCreate(BaseModel):
    """Student to the teacher of a course"""
    teacher_id: int
    course_id: Union[int, str]
    message: str
    reply_to_id: Optional[int] = None


class DirectMessageResponse(BaseModel):
    id: int
    teacher_id: int
    student_id: int
    course_id: Optional[Union[int, str]] = None
    course_title: Optional[str] = None
    message: str
    message_type: MessageType
    direction: MessageDirection
    zoom_link: Optional[str] = None
    meeting_id: Optional[str] = None
    meeting_password: Optional[str] = None
    meeting_date: Optional[datetime] = None
    meeting_time: Optional[str] = None
    is_read: bool
    reply_to_id: Optional[int] = None
    teacher_name: Optional[str] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_message(cls, message, course_id=None, course_title=None, **names) -> "DirectMessageResponse":
        return cls(
            id=message.id,
            teacher_id=message.teacher_id,
            student_id=message.student_id,
            course_id=course_id,
            course_title=course_title,
            message=message.message,
            message_type=message.message_type,
            direction=message.direction,
            zoom_link=message.zoom_link,
            meeting_id=message.meeting_id,
            meeting_password=message.meeting_password,
            meeting_date=message.meeting_date,
            meeting_time=message.meeting_time,
            is_read=message.is_read,
            reply_to_id=message.reply_to_id,
            created_at=message.created_at,
            **names,
        )

    @classmethod
    def from_view(cls, view) -> "DirectMessageResponse":
        """Build from a services.messages.MessageView"""
        return cls.from_message(
            view.message,
            view.course_id,
            view.course_title,
            teacher_name=view.teacher_name,
            student_name=view.student_name,
            student_email=view.student_email,
        )


class MessageSentResponse(BaseModel):
    message: str
    count: int
    messages: List[DirectMessageResponse]


class InboxResponse(BaseModel):
    total: int
    unread_count: int
    messages: List[DirectMessageResponse]


class MeetingLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    zoom_link: Optional[str] = None
    meeting_id: Optional[str] = None
    meeting_password: Optional[str] = None
    meeting_date: Optional[datetime] = None
    meeting_time: Optional[str] = None
