from pydantic import AliasChoices, BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from models.node import NodeKind


class NodeResponse(BaseModel):
    id: UUID
    name: str
    kind: NodeKind = Field(validation_alias=AliasChoices("kind", "type"), serialization_alias="type")
    parent_id: Optional[UUID]
    owner_id: UUID
    mime_type: Optional[str]
    size_bytes: Optional[int] = Field(default=None, validation_alias=AliasChoices("size_bytes", "size"), serialization_alias="size")
    trashed: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FileListData(BaseModel):
    files: List[NodeResponse]
    has_more: bool = False
    limit: Optional[int] = None
    offset: Optional[int] = None


class FileData(BaseModel):
    file: NodeResponse


class SharedFileData(BaseModel):
    file: NodeResponse
    permission: str


class PathData(BaseModel):
    path: List[NodeResponse]


class UsageData(BaseModel):
    used_bytes: int
    limit_bytes: int
    file_count: int


class FileRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "renamed_file.pdf"
            }
        }


class FileMove(BaseModel):
    parent_id: Optional[UUID] = None

    class Config:
        json_schema_extra = {
            "example": {
                "parent_id": "550e8400-e29b-41d4-a716-446655440000"
            }
        }
