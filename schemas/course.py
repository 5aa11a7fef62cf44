from typing import Optional, List, Dict, Union
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from models.course import CourseCategory, CourseLevel


class ContentSection(BaseModel):
    """One topic of a course's content"""
    section_title: str = Field(..., min_length=1)
    topic_title: str = Field(..., min_length=1)
    estimated_time: Optional[str] = None


class CourseBase(BaseModel):
    """Base course schema with common attributes"""
    course_title: str = Field(..., min_length=1, max_length=255)
    short_description: str = Field(..., min_length=1, max_length=150)
    long_description: str = Field(..., min_length=1)
    course_categories: List[CourseCategory] = Field(..., min_length=1)
    course_level: List[CourseLevel] = Field(..., min_length=1)
    total_price: Optional[float] = Field(None, ge=0)
    original_price: float = Field(..., ge=0)
    course_image: str = Field(..., min_length=1)
    learning_outcomes: List[str] = Field(..., min_length=1)
    requirements: List[str] = Field(..., min_length=1)
    content: List[ContentSection] = Field(..., min_length=1)


class CourseCreate(CourseBase):
    """
    Course creation schema

    ``catalog_number`` and ``teacher_id`` are only honoured for courses
    created by a general admin.
    """
    catalog_number: Optional[int] = Field(None, gt=0)
    teacher_id: Optional[int] = None


class CourseUpdate(BaseModel):
    """Course update schema with optional fields"""
    course_title: Optional[str] = Field(None, min_length=1, max_length=255)
    short_description: Optional[str] = Field(None, min_length=1, max_length=150)
    long_description: Optional[str] = None
    course_categories: Optional[List[CourseCategory]] = None
    course_level: Optional[List[CourseLevel]] = None
    total_price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    course_image: Optional[str] = None
    learning_outcomes: Optional[List[str]] = None
    requirements: Optional[List[str]] = None
    content: Optional[List[ContentSection]] = None


class CourseResponse(BaseModel):
    """Stored course"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    course_title: str
    short_description: str
    long_description: str
    course_categories: List[str] = []
    course_level: List[str] = []
    total_price: Optional[float] = None
    original_price: float
    course_image: str
    learning_outcomes: List[str] = []
    requirements: List[str] = []
    content: List[ContentSection] = []
    rating: float = 0
    total_reviews: int = 0
    total_students_enrolled: int = 0
    teacher_id: Optional[int] = None
    catalog_number: Optional[int] = None
    is_approved: bool
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CourseDetailResponse(BaseModel):
    """
    A course looked up by reference

    ``course`` is empty for catalog courses that were never stored.
    """
    course_id: Union[str, int]
    course_title: str
    is_placeholder: bool
    course: Optional[CourseResponse] = None


class CourseSavedResponse(BaseModel):
    message: str
    course: CourseResponse


class CourseListResponse(BaseModel):
    total: int
    courses: List[CourseResponse]


class InstructorInfo(BaseModel):
    id: int
    name: str
    title: Optional[str] = None


class InstructorResponse(BaseModel):
    instructor: Optional[InstructorInfo] = None


class CourseRejection(BaseModel):
    reason: Optional[str] = None


class AssignmentResponse(BaseModel):
    message: str
    course_id: Union[str, int]
    course_title: str


class AssignmentStatusRequest(BaseModel):
    course_ids: List[Union[int, str]]


class AssignmentStatusResponse(BaseModel):
    # Raw course id -> name of the teacher already teaching it
    assignment_status: Dict[str, str]
