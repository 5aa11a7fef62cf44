from typing import Optional, List
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime

from models.users import AdminType, UserRole
from schemas.token import Token


class UserBase(BaseModel):
    """Base user schema with common attributes"""
    name: str
    email: EmailStr

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Name is required')
        return v.strip()


class UserCreate(UserBase):
    """Signup schema; admins cannot sign up"""
    password: str
    role: UserRole = UserRole.STUDENT

    @field_validator('password')
    @classmethod
    def password_min_length(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters long')
        return v


class AdminCreate(UserCreate):
    """Admin account created by a general admin"""
    role: UserRole = UserRole.ADMIN
    admin_type: AdminType = AdminType.GENERAL


class UserResponse(BaseModel):
    """User response schema (without sensitive data)"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    role: UserRole
    is_blocked: bool = False
    created_at: datetime


class AuthResponse(BaseModel):
    message: str
    token: Token
    user: UserResponse


class UserListResponse(BaseModel):
    total: int
    users: List[UserResponse]


class BlockUpdate(BaseModel):
    is_blocked: bool = True


class UserBlockResponse(BaseModel):
    message: str
    user: UserResponse


class StudentProfileUpdate(BaseModel):
    profile_image: Optional[str] = None


class StudentProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    profile_image: Optional[str] = None
    created_at: datetime


class TeacherProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    prof_title: Optional[str] = None
    phone_number: Optional[str] = None
    location: Optional[str] = None
    about_me: Optional[str] = None


class TeacherProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    full_name: str
    prof_title: Optional[str] = None
    phone_number: Optional[str] = None
    location: Optional[str] = None
    about_me: Optional[str] = None
    is_verified: bool = True
