from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict
from datetime import datetime

from models.notification import NotificationType


class BroadcastCreate(BaseModel):
    """A teacher's notification to every student of their courses"""
    type: NotificationType = NotificationType.ANNOUNCEMENT
    message: str


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    receiver_id: int
    sender_id: Optional[int] = None
    type: NotificationType
    message: str
    data: Dict[str, Any] = {}
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    total: int
    unread_count: int
    notifications: List[NotificationResponse]
