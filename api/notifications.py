from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query

from models.users import Teacher, User
from schemas.common import CountResponse, MessageResponse
from schemas.notification import BroadcastCreate, NotificationListResponse, NotificationResponse
from core.security import get_current_teacher, get_current_user
from services import notifications

# Create notifications router
router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/broadcast", response_model=CountResponse)
async def broadcast(
    broadcast_in: BroadcastCreate,
    teacher: Teacher = Depends(get_current_teacher),
) -> Any:
    """
    Notify every student enrolled in the teacher's courses
    """
    count = await notifications.broadcast_to_students(teacher, broadcast_in.type, broadcast_in.message)
    return {"message": f"Notification sent to {count} student(s)", "count": count}


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: Optional[int] = Query(None, ge=1, le=200),
    current_user: User = Depends(get_current_user),
) -> Any:
    items, unread = await notifications.list_notifications(current_user, unread_only, limit)
    return {"total": len(items), "unread_count": unread, "notifications": items}


@router.put("/read-all", response_model=CountResponse)
async def mark_all_read(current_user: User = Depends(get_current_user)) -> Any:
    count = await notifications.mark_all_as_read(current_user)
    return {"message": "All notifications marked as read", "count": count}


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int = Path(..., gt=0),
    current_user: User = Depends(get_current_user),
) -> Any:
    return await notifications.mark_as_read(current_user, notification_id)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: int = Path(..., gt=0),
    current_user: User = Depends(get_current_user),
) -> Any:
    await notifications.delete_notification(current_user, notification_id)
    return {"message": "Notification deleted"}
