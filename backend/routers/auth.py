from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.auth import SignupRequest, LoginRequest, UserResponse, UserData, AuthData
from schemas.common import ApiResponse
from services.auth_service import AuthService
from dependencies.auth import get_current_active_user

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_payload(user: User) -> AuthData:
    return AuthData(
        user=UserResponse.model_validate(user),
        token=AuthService.create_access_token(user)
    )


@router.post("/signup", response_model=ApiResponse[AuthData], status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest, db: Session = Depends(get_db)):
    """Create a local account and return a bearer token for it."""
    user = AuthService(db).signup(
        name=request.name,
        email=request.email,
        password=request.password
    )
    return ApiResponse(message="Account created", data=_auth_payload(user))


@router.post("/login", response_model=ApiResponse[AuthData])
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    user = AuthService(db).authenticate(request.email, request.password)
    return ApiResponse(message="Logged in", data=_auth_payload(user))


@router.get("/me", response_model=ApiResponse[UserData])
async def me(current_user: User = Depends(get_current_active_user)):
    return ApiResponse(data=UserData(user=UserResponse.model_validate(current_user)))


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(current_user: User = Depends(get_current_active_user)):
    """Tokens are stateless; the client drops its copy."""
    return ApiResponse(message="Logged out", data={})
