from datetime import timedelta
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from core.clock import utcnow
from core.config import settings
from core.logger import logger
from models.user import User
from exceptions.exceptions import ConflictException, UnauthorizedException, ValidationException
from services.base import BaseService

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


class AuthService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)

    def signup(self, name: str, email: str, password: str) -> User:
        """
        Register a new local account.

        Args:
            name: Display name
            email: Email address (unique, case-insensitive)
            password: Plain text password

        Returns:
            Created User
        """
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name:
            raise ValidationException("Name is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationException(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        if self.get_user_by_email(email):
            raise ConflictException("Email already registered")

        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            provider="local"
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictException("Email already registered")

        logger.info(f"User {user.id} signed up")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise UnauthorizedException("Incorrect email or password")
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == (email or "").strip().lower()).first()

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed JWT identifying the user"""
        now = utcnow()
        expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

        to_encode = {
            "sub": str(user.id),
            "email": user.email,
            "exp": expire,
            "iat": now,
            "type": "access_token"
        }
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    def get_user_from_token(self, token: str) -> User:
        """Resolve a bearer token to its user, or raise Unauthorized"""
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
            user_id = UUID(payload.get("sub"))
        except (JWTError, ValueError, TypeError):
            raise UnauthorizedException("Invalid or expired token")

        user = self.get_user_by_id(user_id)
        if user is None:
            raise UnauthorizedException("Invalid or expired token")
        return user
