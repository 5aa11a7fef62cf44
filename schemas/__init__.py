# Export all schemas for easier imports
from .token import Token
from .common import MessageResponse, CountResponse
from .user import (
    UserCreate, AdminCreate, UserResponse, AuthResponse,
    UserListResponse, BlockUpdate, UserBlockResponse,
    StudentProfileUpdate, StudentProfileResponse,
    TeacherProfileUpdate, TeacherProfileResponse
)
from .course import (
    CourseCreate, CourseUpdate, CourseResponse, CourseDetailResponse,
    CourseSavedResponse, CourseListResponse, InstructorResponse,
    CourseRejection, AssignmentResponse, AssignmentStatusRequest,
    AssignmentStatusResponse
)
from .enrollment import (
    EnrollCreate, ProgressUpdate, PaymentRejection, EnrollmentResponse,
    EnrollmentSavedResponse, EnrollmentListResponse, ProgressResponse,
    DashboardResponse, TeacherStudentResponse, TeacherStudentListResponse
)
from .notification import BroadcastCreate, NotificationResponse, NotificationListResponse
from .review import (
    ReviewCreate, ReviewUpdate, ReviewResponse, ReviewSavedResponse,
    CanReviewResponse, TeacherReviewsResponse, ReviewListResponse,
    CompletedCourseResponse, CompletedCourseListResponse
)
from .message import (
    StudentMessageCreate, TeacherMessageCreate, DirectMessageResponse,
    MessageSentResponse, InboxResponse, MeetingLinkResponse
)
