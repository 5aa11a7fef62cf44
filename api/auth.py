from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from models.users import User
from schemas.user import AuthResponse, UserCreate, UserResponse
from core.security import create_access_token, get_current_user
from services import accounts

# Create auth router
router = APIRouter(prefix="/auth", tags=["authentication"])


def _auth_response(message: str, user: User) -> Dict[str, Any]:
    access_token = create_access_token(subject=user.id, role=user.role)
    return {
        "message": message,
        "token": {
            "access_token": access_token,
            "token_type": "bearer",
            "user_id": user.id,
            "name": user.name,
            "role": user.role,
        },
        "user": user,
    }


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_in: UserCreate) -> Any:
    """
    Register a new student or teacher
    """
    user = await accounts.signup(user_in.name, user_in.email, user_in.password, user_in.role)
    return _auth_response("User created successfully", user)


@router.post("/login", response_model=AuthResponse)
async def login(form_data: OAuth2PasswordRequestForm = Depends()) -> Any:
    """
    OAuth2 compatible token login; the username field carries the email
    """
    user = await accounts.authenticate(form_data.username, form_data.password)
    return _auth_response("Login successful", user)


@router.get("/me", response_model=UserResponse)
async def read_user_me(current_user: User = Depends(get_current_user)) -> Any:
    return current_user
