from fastapi import APIRouter, Depends, HTTPException, status

from authentication.deps import get_current_user
from authentication.local_users import LocalUser, verify_local_user
from authentication.schemas import LoginRequest, LoginResponse, UserResponse
from authentication.security import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest):
    user = verify_local_user(payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token(user.username, user.role)
    return {
        "access_token": token,
        "token_type": "bearer",
        "role": user.role,
        "email": user.username,
    }


@router.get("/me", response_model=UserResponse)
def me(current_user: LocalUser = Depends(get_current_user)):
    return {
        "email": current_user.username,
        "role": current_user.role,
        "is_active": current_user.is_active,
    }
