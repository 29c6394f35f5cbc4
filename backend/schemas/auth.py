from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from uuid import UUID


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    picture: Optional[str] = None
    provider: str

    class Config:
        from_attributes = True


class UserData(BaseModel):
    user: UserResponse


class AuthData(BaseModel):
    user: UserResponse
    token: str
