from fastapi import APIRouter, Depends, status, Response
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from database import get_db
from models.share import ShareGrant, ShareLink
from models.user import User
from schemas.common import ApiResponse
from schemas.file import FileListData, SharedFileData, FileData, FileRename, FileMove
from schemas.share import (
    ShareCreate,
    ShareLinkCreate,
    SharedWithEntry,
    ShareLinkResponse,
    ShareInfoData
)
from services.access_service import AccessService
from services.blob_store import BlobStore, get_blob_store
from services.node_service import NodeService
from services.query_service import QueryService
from services.upload_service import UploadService
from dependencies.auth import get_current_active_user
from routers.file import node_out, nodes_out, download_response

router = APIRouter(prefix="/files", tags=["sharing"])


def _grant_out(grant: ShareGrant) -> SharedWithEntry:
    return SharedWithEntry(
        user_id=grant.grantee_user_id,
        email=grant.grantee.email,
        name=grant.grantee.name,
        permission=grant.permission,
        granted_at=grant.granted_at
    )


def _link_out(link: Optional[ShareLink]) -> Optional[ShareLinkResponse]:
    if link is None:
        return None
    return ShareLinkResponse(
        share_link=AccessService.link_url(link),
        token=link.token,
        permission=link.permission,
        expires_at=link.expires_at
    )


# Static /shared paths are registered before the /{file_id} routes of the files router.

@router.get("/shared", response_model=ApiResponse[FileListData])
async def shared_with_me(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Everything other users have shared with you directly."""
    files = QueryService(db).list_shared_with_me(current_user.id)
    return ApiResponse(data=FileListData(files=nodes_out(files)))


@router.get("/shared/{token}", response_model=ApiResponse[SharedFileData])
async def open_share_link(token: str, db: Session = Depends(get_db)):
    """Resolve a public share link. No login required."""
    node = QueryService(db).list_shared_link_target(token)
    return ApiResponse(data=SharedFileData(file=node_out(node), permission=node.share_link.permission.value))


@router.get("/shared/{token}/download")
async def download_share_link(
    token: str,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    node, chunks = UploadService(db, blob_store).download_via_link(token)
    return download_response(node, chunks)


@router.patch("/shared/{token}/rename", response_model=ApiResponse[FileData])
async def rename_via_link(token: str, rename_data: FileRename, db: Session = Depends(get_db)):
    """Rename through an edit link."""
    node = NodeService(db).rename_via_link(token, rename_data.name)
    return ApiResponse(message="Renamed", data=FileData(file=node_out(node)))


@router.patch("/shared/{token}/move", response_model=ApiResponse[FileData])
async def move_via_link(token: str, move_data: FileMove, db: Session = Depends(get_db)):
    """Move through an edit link, within the owner's own folders."""
    node = NodeService(db).move_via_link(token, move_data.parent_id)
    return ApiResponse(message="Moved", data=FileData(file=node_out(node)))


@router.post("/{file_id}/share", response_model=ApiResponse[SharedWithEntry])
async def share_file(
    file_id: UUID,
    share_data: ShareCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """
    Share a file or folder with another account.

    - **email**: Email of an existing account
    - **permission**: view or edit (sharing again updates the permission)
    """
    grant = AccessService(db).grant(
        node_id=file_id,
        requester_id=current_user.id,
        grantee_email=share_data.email,
        permission=share_data.permission
    )
    return ApiResponse(message="File shared", data=_grant_out(grant))


@router.get("/{file_id}/share", response_model=ApiResponse[ShareInfoData])
async def get_share_info(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    info = AccessService(db).get_share_info(file_id, current_user.id)
    return ApiResponse(data=ShareInfoData(
        shared_with=[_grant_out(g) for g in info["shared_with"]],
        share_link=_link_out(info["share_link"])
    ))


@router.delete("/{file_id}/share/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_share(
    file_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    AccessService(db).revoke(file_id, current_user.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{file_id}/share-link", response_model=ApiResponse[ShareLinkResponse], status_code=status.HTTP_201_CREATED)
async def create_share_link(
    file_id: UUID,
    link_data: Optional[ShareLinkCreate] = None,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Create a public link, replacing any link the file already had."""
    link_data = link_data or ShareLinkCreate()
    link = AccessService(db).create_link(
        node_id=file_id,
        requester_id=current_user.id,
        permission=link_data.permission,
        expires_in_hours=link_data.expires_in_hours
    )
    return ApiResponse(message="Share link created", data=_link_out(link))


@router.delete("/{file_id}/share-link", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_share_link(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    AccessService(db).revoke_link(file_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
