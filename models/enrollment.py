from enum import Enum
from tortoise import fields

from models.base import BaseModel


class EnrollmentStatus(str, Enum):
    PENDING = "pending"  # Waiting for an admin to verify the payment
    ACTIVE = "active"
    COMPLETED = "completed"  # Progress reached 100%, never reverted
    CANCELLED = "cancelled"  # Payment rejected, kept as history


class Enrollment(BaseModel):
    """
    One student's relationship to one course.

    Cancelled enrollments are kept; enrolling again after a rejection
    creates a new row for the same student and course.
    """

    # Relationships
    student = fields.ForeignKeyField("models.Student", related_name="enrollments")

    # Tagged course reference, see services.course_refs
    course_key = fields.CharField(max_length=64, index=True)

    # State
    status = fields.CharEnumField(EnrollmentStatus, default=EnrollmentStatus.PENDING, index=True)
    progress = fields.FloatField(default=0)
    is_completed = fields.BooleanField(default=False)

    # Progress tracking
    current_section = fields.CharField(max_length=255, null=True)
    completed_sections = fields.JSONField(default=list)
    last_accessed = fields.DatetimeField(null=True)
    upcoming_class_date = fields.DatetimeField(null=True)

    # Payment information
    payment_method = fields.CharField(max_length=100, null=True)
    transaction_id = fields.CharField(max_length=255, null=True)
    amount_paid = fields.FloatField(default=0)
    payment_screenshot = fields.TextField(null=True)
    verification_required = fields.BooleanField(default=False)

    # Verification
    verified_at = fields.DatetimeField(null=True)
    verified_by = fields.ForeignKeyField(
        "models.User", related_name="verified_enrollments", null=True, on_delete=fields.SET_NULL
    )

    # Rejection
    rejected_at = fields.DatetimeField(null=True)
    rejected_by = fields.ForeignKeyField(
        "models.User", related_name="rejected_enrollments", null=True, on_delete=fields.SET_NULL
    )
    rejection_reason = fields.TextField(null=True)

    # Certificate tracking
    certificate_sent = fields.BooleanField(default=False)
    certificate_sent_at = fields.DatetimeField(null=True)
    certificate_sent_by = fields.ForeignKeyField(
        "models.User", related_name="sent_certificates", null=True, on_delete=fields.SET_NULL
    )

    class Meta:
        table = "enrollments"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Enrollment #{self.id} ({self.status})"

    @property
    def has_payment_info(self) -> bool:
        return bool(
            self.payment_method
            or self.transaction_id
            or (self.amount_paid or 0) > 0
            or self.payment_screenshot
        )
