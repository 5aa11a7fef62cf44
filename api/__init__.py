# API routes package
from fastapi import APIRouter

from .auth import router as auth_router
from .users import router as users_router
from .students import router as students_router
from .teachers import router as teachers_router
from .courses import router as courses_router
from .enrollments import router as enrollments_router
from .notifications import router as notifications_router
from .messages import router as messages_router
from .reviews import router as reviews_router

# Create API router
router = APIRouter(prefix="/api/v1")

# Include all routers
router.include_router(auth_router)
router.include_router(users_router)
router.include_router(students_router)
router.include_router(teachers_router)
router.include_router(courses_router)
router.include_router(enrollments_router)
router.include_router(notifications_router)
router.include_router(messages_router)
router.include_router(reviews_router)
