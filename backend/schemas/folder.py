from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from schemas.file import NodeResponse


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Folder name")
    parent_id: Optional[UUID] = Field(None, description="Parent folder ID for nested folders")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Documents",
                "parent_id": None
            }
        }


class FolderData(BaseModel):
    folder: NodeResponse
