from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db
from models.user import User
from services.auth_service import AuthService
from exceptions.exceptions import UnauthorizedException

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


async def get_current_active_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the `Authorization: Bearer` header to a user (401 when missing or invalid)"""
    if not token:
        raise UnauthorizedException("Not authenticated")
    return AuthService(db).get_user_from_token(token)
