from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from models.share import Permission


class ShareCreate(BaseModel):
    email: EmailStr
    permission: Permission = Permission.VIEW

    class Config:
        json_schema_extra = {
            "example": {
                "email": "colleague@example.com",
                "permission": "view"
            }
        }


class ShareLinkCreate(BaseModel):
    permission: Permission = Permission.VIEW
    expires_in_hours: Optional[int] = Field(None, gt=0, description="Hours until the link expires")


class SharedWithEntry(BaseModel):
    user_id: UUID
    email: str
    name: str
    permission: Permission
    granted_at: datetime


class ShareLinkResponse(BaseModel):
    enabled: bool = True
    share_link: str
    token: str
    permission: Permission
    expires_at: Optional[datetime]


class ShareInfoData(BaseModel):
    shared_with: List[SharedWithEntry]
    share_link: Optional[ShareLinkResponse] = None
