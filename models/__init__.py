from .users import User, UserRole, Student, Teacher, Admin, AdminType
from .course import Course, CourseAssignment, CourseCategory, CourseLevel
from .enrollment import Enrollment, EnrollmentStatus
from .notification import Notification, NotificationType
from .review import Review, ReviewStatus
from .message import Message, MessageType, MessageDirection

MODELS = [
    User,
    Student,
    Teacher,
    Admin,
    Course,
    CourseAssignment,
    Enrollment,
    Notification,
    Review,
    Message,
]
