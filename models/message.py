from enum import Enum
from tortoise import fields

from models.base import BaseModel


class MessageType(str, Enum):
    INFO = "info"
    ZOOM_LINK = "zoom_link"
    ANNOUNCEMENT = "announcement"
    REMINDER = "reminder"
    STUDENT_MESSAGE = "student_message"


class MessageDirection(str, Enum):
    TEACHER_TO_STUDENT = "teacher_to_student"
    STUDENT_TO_TEACHER = "student_to_teacher"


class Message(BaseModel):
    """Direct message between a teacher and a student about a course"""

    teacher = fields.ForeignKeyField("models.Teacher", related_name="messages")
    student = fields.ForeignKeyField("models.Student", related_name="messages")
    course_key = fields.CharField(max_length=64, index=True)

    message = fields.TextField()
    message_type = fields.CharEnumField(MessageType, default=MessageType.INFO)
    direction = fields.CharEnumField(MessageDirection)

    # Meeting details for zoom_link messages
    zoom_link = fields.CharField(max_length=2048, null=True)
    meeting_id = fields.CharField(max_length=100, null=True)
    meeting_password = fields.CharField(max_length=100, null=True)
    meeting_date = fields.DatetimeField(null=True)
    meeting_time = fields.CharField(max_length=20, null=True)

    is_read = fields.BooleanField(default=False)
    reply_to = fields.ForeignKeyField(
        "models.Message", related_name="replies", null=True, on_delete=fields.SET_NULL
    )

    class Meta:
        table = "messages"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.direction}: {self.message[:40]}"
