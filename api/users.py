from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from models.users import AdminType, User, UserRole
from schemas.user import AdminCreate, BlockUpdate, UserBlockResponse, UserResponse
from core.security import AdminTypeChecker
from services import accounts
from utils.pagination import Page, PageParams, get_page_params, paginate_queryset

# Create users router (administration only)
router = APIRouter(prefix="/users", tags=["users"])

allow_general_admins = AdminTypeChecker([AdminType.GENERAL])


@router.get("", response_model=Page[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None),
    page_params: PageParams = Depends(get_page_params),
    current_user: User = Depends(allow_general_admins),
) -> Any:
    """
    List users, newest first
    """
    return await paginate_queryset(accounts.users_query(role), page_params, UserResponse.model_validate)


@router.post("/admins", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    admin_in: AdminCreate,
    current_user: User = Depends(allow_general_admins),
) -> Any:
    """
    Create a general or payment admin account
    """
    return await accounts.create_admin(
        admin_in.name, admin_in.email, admin_in.password, admin_in.admin_type
    )


@router.put("/{user_id}/block", response_model=UserBlockResponse)
async def set_blocked(
    block_in: BlockUpdate,
    user_id: int = Path(..., gt=0),
    current_user: User = Depends(allow_general_admins),
) -> Any:
    """
    Block or unblock a user
    """
    user = await accounts.set_blocked(current_user, user_id, block_in.is_blocked)
    message = "User blocked successfully" if user.is_blocked else "User unblocked successfully"
    return {"message": message, "user": user}
