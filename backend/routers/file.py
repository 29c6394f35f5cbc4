from fastapi import APIRouter, Depends, UploadFile, File, Form, status, HTTPException, Query, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import Iterator, List, Optional
from urllib.parse import quote
from uuid import UUID

from database import get_db
from models.node import Node
from models.user import User
from schemas.common import ApiResponse
from schemas.file import (
    NodeResponse,
    FileListData,
    FileData,
    PathData,
    UsageData,
    FileRename,
    FileMove
)
from schemas.folder import FolderCreate, FolderData
from services.blob_store import BlobStore, get_blob_store
from services.node_service import NodeService
from services.query_service import QueryService, MAX_PAGE_SIZE
from services.upload_service import UploadService
from dependencies.auth import get_current_active_user
from exceptions.exceptions import ValidationException

router = APIRouter(prefix="/files", tags=["files"])


def node_out(node: Node) -> NodeResponse:
    return NodeResponse.model_validate(node)


def nodes_out(nodes: List[Node]) -> List[NodeResponse]:
    return [node_out(n) for n in nodes]


def download_response(node: Node, chunks: Iterator[bytes]) -> StreamingResponse:
    """Stream a file with Content-Disposition carrying its display name"""
    quoted = quote(node.name)
    if quoted != node.name:
        disposition = f"attachment; filename*=utf-8''{quoted}"
    else:
        disposition = f'attachment; filename="{node.name}"'

    headers = {"Content-Disposition": disposition}
    if node.size_bytes is not None:
        headers["Content-Length"] = str(node.size_bytes)

    return StreamingResponse(
        chunks,
        media_type=node.mime_type or "application/octet-stream",
        headers=headers
    )


def _parse_parent_id(parent_id: Optional[str]) -> Optional[UUID]:
    # Multipart forms send "" or "null" for the root
    if parent_id is None or parent_id.strip() in ("", "null", "root"):
        return None
    try:
        return UUID(parent_id.strip())
    except ValueError:
        raise ValidationException("parent_id must be a valid UUID")


@router.get("", response_model=ApiResponse[FileListData])
async def list_files(
    parent_folder_id: Optional[UUID] = Query(None, alias="parentFolderId"),
    limit: int = Query(100, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    List the live children of a folder.

    - **parentFolderId**: Folder to list (omit for the root of your drive)
    - **limit**: Maximum number of records to return
    - **offset**: Number of records to skip (for pagination)
    """
    files, has_more = QueryService(db).list_children(
        parent_id=parent_folder_id,
        requester_id=current_user.id,
        limit=limit,
        offset=offset
    )
    return ApiResponse(data=FileListData(
        files=nodes_out(files),
        has_more=has_more,
        limit=limit,
        offset=offset
    ))


@router.get("/search", response_model=ApiResponse[FileListData])
async def search_files(
    q: str = Query(..., min_length=1, description="Text to look for in names"),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Case-insensitive search over your files and files shared with you."""
    files = QueryService(db).search(current_user.id, q)
    return ApiResponse(data=FileListData(files=nodes_out(files)))


@router.get("/trash", response_model=ApiResponse[FileListData])
async def list_trash(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    files = QueryService(db).list_trash(current_user.id)
    return ApiResponse(data=FileListData(files=nodes_out(files)))


@router.get("/usage", response_model=ApiResponse[UsageData])
async def storage_usage(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Bytes used by your files (trash included) against the displayed limit."""
    return ApiResponse(data=UsageData(**QueryService(db).storage_usage(current_user.id)))


@router.post("/upload", response_model=ApiResponse[FileData], status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    parent_id: Optional[str] = Form(None),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    """
    Upload a file.

    - **file**: The file to upload
    - **name**: Optional display name (defaults to the uploaded filename)
    - **parent_id**: Optional folder ID to upload into
    """
    try:
        file_content = await file.read()
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error reading file: {str(e)}"
        )

    upload_service = UploadService(db, blob_store)
    file_record = upload_service.upload_file(
        user_id=current_user.id,
        file_content=file_content,
        filename=name if name and name.strip() else file.filename,
        mime_type=file.content_type,
        parent_id=_parse_parent_id(parent_id)
    )
    return ApiResponse(message="File uploaded", data=FileData(file=node_out(file_record)))


@router.post("/folder", response_model=ApiResponse[FolderData], status_code=status.HTTP_201_CREATED)
async def create_folder(
    folder_data: FolderCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    folder = NodeService(db).create_folder(
        owner_id=current_user.id,
        name=folder_data.name,
        parent_id=folder_data.parent_id
    )
    return ApiResponse(message="Folder created", data=FolderData(folder=node_out(folder)))


@router.get("/{file_id}", response_model=ApiResponse[FileData])
async def get_file(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Get file metadata by ID."""
    file_record = NodeService(db).get_node(file_id, current_user.id)
    return ApiResponse(data=FileData(file=node_out(file_record)))


@router.get("/{file_id}/path", response_model=ApiResponse[PathData])
async def get_path(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Breadcrumb trail from the outermost folder you can see down to this node."""
    path = NodeService(db).get_breadcrumbs(file_id, current_user.id)
    return ApiResponse(data=PathData(path=nodes_out(path)))


@router.patch("/{file_id}/rename", response_model=ApiResponse[FileData])
async def rename_file(
    file_id: UUID,
    rename_data: FileRename,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    file_record = NodeService(db).rename(file_id, current_user.id, rename_data.name)
    return ApiResponse(message="Renamed", data=FileData(file=node_out(file_record)))


@router.patch("/{file_id}/move", response_model=ApiResponse[FileData])
async def move_file(
    file_id: UUID,
    move_data: FileMove,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Move a file or folder.

    - **parent_id**: Destination folder ID (null for the root)
    """
    file_record = NodeService(db).move(file_id, current_user.id, move_data.parent_id)
    return ApiResponse(message="Moved", data=FileData(file=node_out(file_record)))


@router.post("/{file_id}/copy", response_model=ApiResponse[FileData], status_code=status.HTTP_201_CREATED)
async def copy_file(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    file_record = UploadService(db, blob_store).copy_file(file_id, current_user.id)
    return ApiResponse(message="Copy created", data=FileData(file=node_out(file_record)))


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Move a file or folder (with everything inside it) to the trash."""
    NodeService(db).trash(file_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{file_id}/restore", response_model=ApiResponse[FileData])
async def restore_file(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    file_record = NodeService(db).restore(file_id, current_user.id)
    return ApiResponse(message="Restored", data=FileData(file=node_out(file_record)))


@router.get("/{file_id}/download")
async def download_file(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    node, chunks = UploadService(db, blob_store).download(file_id, current_user.id)
    return download_response(node, chunks)
