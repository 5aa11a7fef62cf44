from enum import Enum
from tortoise import fields, models

from models.base import BaseModel, TimestampMixin
from utils.hashing import generate_object_id


class CourseLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class CourseCategory(str, Enum):
    ANIMATION_VR = "Animation & VR"
    ARTIFICIAL_INTELLIGENCE = "Artificial Intelligence (AI)"
    CLOUD_COMPUTING = "Cloud Computing"
    CYBER_SECURITY = "Cyber Security"
    DATA_SCIENCE = "Data Science"
    DATABASE = "Database"
    DESIGN = "Design"
    DEVOPS = "DevOps"
    MANAGEMENT = "Management"
    MARKETING = "Marketing"
    MOBILE_DEVELOPMENT = "Mobile Development"
    PROGRAMMING = "Programming"
    WEB_DEVELOPMENT = "Web Development"


class Course(models.Model, TimestampMixin):
    """
    Course authored by a teacher (or seeded by an admin).

    The primary key is a generated 24 character hex identifier. Seeded
    copies of catalog courses also carry the catalog number the client
    knows them by.
    """

    id = fields.CharField(pk=True, max_length=24, default=generate_object_id)

    course_title = fields.CharField(max_length=255)
    short_description = fields.CharField(max_length=150)
    long_description = fields.TextField()

    course_categories = fields.JSONField(default=list)
    course_level = fields.JSONField(default=list)

    total_price = fields.FloatField(null=True)
    original_price = fields.FloatField()

    course_image = fields.CharField(max_length=2048)
    learning_outcomes = fields.JSONField(default=list)
    requirements = fields.JSONField(default=list)

    # [{"section_title": ..., "topic_title": ..., "estimated_time": ...}]
    content = fields.JSONField(default=list)

    # Aggregates
    rating = fields.FloatField(default=0)
    total_reviews = fields.IntField(default=0)
    total_students_enrolled = fields.IntField(default=0)

    # Admin-created courses may have no owner
    teacher = fields.ForeignKeyField(
        "models.Teacher", related_name="created_courses", null=True, on_delete=fields.SET_NULL
    )

    catalog_number = fields.IntField(null=True, unique=True)

    # Moderation
    is_approved = fields.BooleanField(default=True)
    approved_at = fields.DatetimeField(null=True)
    approved_by = fields.ForeignKeyField(
        "models.User", related_name="approved_courses", null=True, on_delete=fields.SET_NULL
    )
    rejected_at = fields.DatetimeField(null=True)
    rejected_by = fields.ForeignKeyField(
        "models.User", related_name="rejected_courses", null=True, on_delete=fields.SET_NULL
    )
    rejection_reason = fields.TextField(null=True)

    class Meta:
        table = "courses"

    def __str__(self):
        return self.course_title


class CourseAssignment(BaseModel):
    """
    Teacher acting as instructor for a course they do not own.

    ``course_key`` is unique, so a course has at most one assigned
    instructor.
    """

    teacher = fields.ForeignKeyField("models.Teacher", related_name="course_assignments")
    course_key = fields.CharField(max_length=64, unique=True)

    class Meta:
        table = "course_assignments"

    def __str__(self):
        return f"Teacher #{self.teacher_id} -> {self.course_key}"
