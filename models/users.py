from enum import Enum
from tortoise import fields

from models.base import BaseModel


class UserRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class AdminType(str, Enum):
    GENERAL = "general"  # Course moderation, certificates
    PAYMENT = "payment"  # Payment screenshot verification


class User(BaseModel):
    """User account shared by students, teachers and admins"""

    name = fields.CharField(max_length=255)
    email = fields.CharField(max_length=255, unique=True)
    password_hash = fields.CharField(max_length=255)
    role = fields.CharEnumField(UserRole, default=UserRole.STUDENT, index=True)

    # Set by an admin, checked on every authenticated request
    is_blocked = fields.BooleanField(default=False)

    class Meta:
        table = "users"

    def __str__(self):
        return f"{self.name} ({self.email})"


class Student(BaseModel):
    """Student profile attached to a user account"""

    user = fields.OneToOneField("models.User", related_name="student_profile")
    profile_image = fields.CharField(max_length=2048, null=True)

    class Meta:
        table = "students"

    def __str__(self):
        return f"Student #{self.id}"


class Teacher(BaseModel):
    """Teacher profile attached to a user account"""

    user = fields.OneToOneField("models.User", related_name="teacher_profile")

    full_name = fields.CharField(max_length=255)
    prof_title = fields.CharField(max_length=255, null=True)
    phone_number = fields.CharField(max_length=50, null=True)
    location = fields.CharField(max_length=255, null=True)
    about_me = fields.TextField(null=True)
    is_verified = fields.BooleanField(default=True)

    # Relationships
    # created_courses: ReverseRelation[Course]
    # course_assignments: ReverseRelation[CourseAssignment]

    class Meta:
        table = "teachers"

    def __str__(self):
        return self.full_name


class Admin(BaseModel):
    """
    Admin profile attached to a user account.

    Every admin account gets one of these when it is created, so the
    admin type is always known.
    """

    user = fields.OneToOneField("models.User", related_name="admin_profile")
    admin_type = fields.CharEnumField(AdminType, default=AdminType.GENERAL)
    permissions = fields.JSONField(default=list)

    class Meta:
        table = "admins"

    def __str__(self):
        return f"Admin #{self.id} ({self.admin_type})"
