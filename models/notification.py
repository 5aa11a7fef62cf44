from enum import Enum
from tortoise import fields

from models.base import BaseModel


class NotificationType(str, Enum):
    GENERAL = "general"
    ANNOUNCEMENT = "announcement"
    REMINDER = "reminder"
    PAYMENT_APPROVED = "payment_approved"  # Student's payment verified
    PAYMENT_REJECTED = "payment_rejected"  # Student's payment rejected
    STUDENT_ASSIGNED = "student_assigned"  # New student for a teacher
    COURSE_APPROVED = "course_approved"
    COURSE_REJECTED = "course_rejected"
    NEW_PAYMENT = "new_payment"  # Payment admins: screenshot waiting
    COURSE_SUBMITTED = "course_submitted"
    COURSE_COMPLETED = "course_completed"
    CERTIFICATE_REQUIRED = "certificate_required"  # General admins: send a certificate


class Notification(BaseModel):
    """
    One notification for one receiver.

    Only ``is_read`` changes after creation.
    """

    receiver = fields.ForeignKeyField("models.User", related_name="notifications")

    # Null for notifications emitted by the system itself
    sender = fields.ForeignKeyField(
        "models.User", related_name="sent_notifications", null=True, on_delete=fields.SET_NULL
    )

    type = fields.CharEnumField(NotificationType, index=True)
    message = fields.TextField()

    # Additional data (course_key, course_title, enrollment_id, ...)
    data = fields.JSONField(default=dict)

    is_read = fields.BooleanField(default=False)

    class Meta:
        table = "notifications"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.type}: {self.message[:40]}"
