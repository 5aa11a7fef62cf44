from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query

from models.enrollment import EnrollmentStatus
from models.users import AdminType, User
from schemas.enrollment import (
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentSavedResponse,
    PaymentRejection,
)
from core.security import AdminTypeChecker
from services import enrollments
from utils.pagination import Page, PageParams, get_page_params, paginate_results

# Create enrollments router (payment review and certificates)
router = APIRouter(prefix="/enrollments", tags=["enrollments"])

allow_payment_admins = AdminTypeChecker([AdminType.PAYMENT, AdminType.GENERAL])
allow_general_admins = AdminTypeChecker([AdminType.GENERAL])


async def _saved(message: str, enrollment) -> dict:
    view = await enrollments.enrollment_view(enrollment)
    return {"message": message, "enrollment": EnrollmentResponse.from_view(view)}


@router.get("/payments", response_model=Page[EnrollmentResponse])
async def list_payments(
    status: Optional[EnrollmentStatus] = Query(None),
    page_params: PageParams = Depends(get_page_params),
    current_user: User = Depends(allow_payment_admins),
) -> Any:
    """
    Payment submissions, pending ones included
    """
    views = await enrollments.list_payment_submissions(status)
    return paginate_results([EnrollmentResponse.from_view(view) for view in views], page_params)


@router.put("/{enrollment_id}/verify-payment", response_model=EnrollmentSavedResponse)
async def verify_payment(
    enrollment_id: int = Path(..., gt=0),
    current_user: User = Depends(allow_payment_admins),
) -> Any:
    """
    Approve a pending payment and activate the enrollment
    """
    enrollment = await enrollments.verify_payment(enrollment_id, current_user)
    return await _saved("Payment verified successfully", enrollment)


@router.put("/{enrollment_id}/reject-payment", response_model=EnrollmentSavedResponse)
async def reject_payment(
    rejection: PaymentRejection,
    enrollment_id: int = Path(..., gt=0),
    current_user: User = Depends(allow_payment_admins),
) -> Any:
    enrollment = await enrollments.reject_payment(enrollment_id, current_user, rejection.reason)
    return await _saved("Payment rejected", enrollment)


@router.get("/certificates", response_model=EnrollmentListResponse)
async def list_certificate_requests(
    unsent_only: bool = Query(False),
    current_user: User = Depends(allow_general_admins),
) -> Any:
    """
    Completed enrollments awaiting or holding a certificate
    """
    views = await enrollments.list_certificate_requests(unsent_only)
    return {
        "total": len(views),
        "enrollments": [EnrollmentResponse.from_view(view) for view in views],
    }


@router.put("/{enrollment_id}/certificate-sent", response_model=EnrollmentSavedResponse)
async def mark_certificate_sent(
    enrollment_id: int = Path(..., gt=0),
    current_user: User = Depends(allow_general_admins),
) -> Any:
    enrollment = await enrollments.mark_certificate_sent(enrollment_id, current_user)
    return await _saved("Certificate marked as sent", enrollment)
