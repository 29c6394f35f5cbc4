import os
import uuid
from sqlalchemy.orm import Session
from typing import Iterator, Optional, Tuple
from uuid import UUID

from core.logger import logger
from models.node import Node, NodeKind
from models.share import Permission
from exceptions.exceptions import DriveException, FileUploadException, ValidationException
from services.base import BaseService
from services.blob_store import BlobStore, BlobStoreError
from services.node_service import NodeService

DEFAULT_MIME_TYPE = "application/octet-stream"


class UploadService(BaseService):
    """Operations that span the blob store and the metadata tree."""

    def __init__(self, db: Session, blob_store: BlobStore):
        super().__init__(db)
        self.blob_store = blob_store
        self.node_service = NodeService(db)
        self.access = self.node_service.access

    def _generate_storage_key(self, user_id: UUID, filename: str) -> str:
        """Generate a unique storage key; it never encodes the folder or display name"""

        unique_id = uuid.uuid4().hex
        file_ext = os.path.splitext(filename)[1].lower()
        return f"users/{user_id}/{unique_id}{file_ext}"

    def upload_file(
        self,
        user_id: UUID,
        file_content: bytes,
        filename: str,
        mime_type: Optional[str] = None,
        parent_id: Optional[UUID] = None
    ) -> Node:
        """
        Store the bytes, then record the file in the tree.

        Args:
            user_id: ID of the user uploading the file
            file_content: Binary content of the file
            filename: Display name for the file
            mime_type: MIME type of the file
            parent_id: Optional folder ID

        Returns:
            Created Node

        The node row is the commit point: if it cannot be created the blob is
        removed again, so no listing ever shows a file without bytes.
        """
        filename = self._validate_name(filename)
        # Fail fast before writing bytes; re-checked under lock in create_file
        self.node_service._resolve_parent(user_id, parent_id)

        storage_key = self._generate_storage_key(user_id, filename)
        try:
            self.blob_store.put(storage_key, file_content, mime_type)
        except BlobStoreError as e:
            logger.error(f"Blob write failed for {storage_key}: {e}")
            raise FileUploadException(f"Failed to store file: {str(e)}")

        try:
            return self.node_service.create_file(
                owner_id=user_id,
                name=filename,
                parent_id=parent_id,
                storage_key=storage_key,
                size_bytes=len(file_content),
                mime_type=mime_type or DEFAULT_MIME_TYPE
            )
        except Exception as e:
            self._discard_blob(storage_key)
            if isinstance(e, DriveException):
                raise
            raise FileUploadException(f"Error uploading file: {str(e)}")

    def _discard_blob(self, storage_key: str) -> None:
        try:
            self.blob_store.delete(storage_key)
        except BlobStoreError as e:
            logger.warning(f"Failed to discard orphan blob {storage_key}: {e}")

    # --- download ---

    def _open_file(self, node: Node) -> Tuple[Node, Iterator[bytes]]:
        if node.kind != NodeKind.FILE:
            raise ValidationException("Folders cannot be downloaded")
        try:
            return node, self.blob_store.open(node.storage_key)
        except BlobStoreError as e:
            logger.error(f"Blob read failed for node {node.id}: {e}")
            raise FileUploadException("Stored file is not available")

    def download(self, node_id: UUID, requester_id: UUID) -> Tuple[Node, Iterator[bytes]]:
        node = self.node_service.get_node(node_id, requester_id)
        return self._open_file(node)

    def download_via_link(self, token: str) -> Tuple[Node, Iterator[bytes]]:
        node, _ = self.access.require_link_access(token, Permission.VIEW)
        return self._open_file(node)

    # --- copy ---

    def copy_file(self, node_id: UUID, requester_id: UUID) -> Node:
        """
        Make a copy of a file the requester can view.

        The copy belongs to the requester. It lands next to the original when
        the requester owns it, otherwise in the requester's root.
        """
        source = self.node_service.get_node(node_id, requester_id)
        if source.kind != NodeKind.FILE:
            raise ValidationException("Only files can be copied")

        parent_id = source.parent_id if source.owner_id == requester_id else None
        copy_name = f"{source.name} (copy)"
        storage_key = self._generate_storage_key(requester_id, source.name)

        try:
            self.blob_store.copy(source.storage_key, storage_key)
        except BlobStoreError as e:
            logger.error(f"Blob copy failed for node {source.id}: {e}")
            raise FileUploadException(f"Failed to copy file: {str(e)}")

        try:
            return self.node_service.create_file(
                owner_id=requester_id,
                name=copy_name,
                parent_id=parent_id,
                storage_key=storage_key,
                size_bytes=source.size_bytes or 0,
                mime_type=source.mime_type
            )
        except Exception as e:
            self._discard_blob(storage_key)
            if isinstance(e, DriveException):
                raise
            raise FileUploadException(f"Error copying file: {str(e)}")
