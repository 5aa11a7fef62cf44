from enum import Enum
from tortoise import fields

from models.base import BaseModel


class ReviewStatus(str, Enum):
    ACTIVE = "active"
    HIDDEN = "hidden"
    FLAGGED = "flagged"


class Review(BaseModel):
    """A student's review of the teacher of one course"""

    teacher = fields.ForeignKeyField("models.Teacher", related_name="reviews")
    student = fields.ForeignKeyField("models.Student", related_name="reviews")
    course_key = fields.CharField(max_length=64, index=True)

    rating = fields.IntField()
    review_text = fields.TextField()
    status = fields.CharEnumField(ReviewStatus, default=ReviewStatus.ACTIVE)

    class Meta:
        table = "reviews"
        # One review per student per course for a teacher
        unique_together = (("teacher", "student", "course_key"),)
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Review #{self.id} ({self.rating}/5)"
