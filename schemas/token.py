from pydantic import BaseModel

from models.users import UserRole


class Token(BaseModel):
    """Token schema for authentication responses"""
    access_token: str
    token_type: str = "bearer"
    user_id: int
    name: str
    role: UserRole
