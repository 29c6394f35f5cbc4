from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID

from core.clock import utcnow
from core.logger import logger
from models.node import Node, NodeKind
from models.share import Permission
from exceptions.exceptions import (
    CycleDetectedException,
    InvalidParentException,
    NotFoundException,
    ValidationException,
)
from services.base import BaseService
from services.access_service import AccessService, satisfies


class NodeService(BaseService):
    """Owns the per-user folder forest: creation, rename, move, trash and ancestry."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.access = AccessService(db)

    def _resolve_parent(self, owner_id: UUID, parent_id: Optional[UUID], lock: bool = False) -> Optional[Node]:
        """Validate that parent_id is a visible folder owned by owner_id (None means root)"""
        if parent_id is None:
            return None

        parent = self._get_node(parent_id, lock=lock)
        if (
            not parent
            or parent.owner_id != owner_id
            or parent.kind != NodeKind.FOLDER
            or self._is_hidden(parent)
        ):
            raise InvalidParentException("Parent folder not found or access denied")
        return parent

    def create_folder(self, owner_id: UUID, name: str, parent_id: Optional[UUID] = None) -> Node:
        """
        Create a new folder.

        Args:
            owner_id: ID of the user creating the folder
            name: Name of the folder
            parent_id: Optional parent folder ID for nested folders

        Returns:
            Created Node
        """
        name = self._validate_name(name)
        try:
            self._resolve_parent(owner_id, parent_id, lock=True)

            folder = Node(
                owner_id=owner_id,
                name=name,
                kind=NodeKind.FOLDER,
                parent_id=parent_id
            )
            self.db.add(folder)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Folder {folder.id} created by {owner_id}")
        return folder

    def create_file(
        self,
        owner_id: UUID,
        name: str,
        parent_id: Optional[UUID],
        storage_key: str,
        size_bytes: int,
        mime_type: Optional[str] = None
    ) -> Node:
        """
        Record an uploaded file in the tree.

        The blob behind storage_key must already be durably written; creating
        this row is the commit point of an upload.
        """
        name = self._validate_name(name)
        if not storage_key:
            raise ValidationException("A file needs a storage key")
        try:
            self._resolve_parent(owner_id, parent_id, lock=True)

            file = Node(
                owner_id=owner_id,
                name=name,
                kind=NodeKind.FILE,
                parent_id=parent_id,
                storage_key=storage_key,
                size_bytes=size_bytes,
                mime_type=mime_type
            )
            self.db.add(file)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"File {file.id} created by {owner_id} ({size_bytes} bytes)")
        return file

    def get_node(self, node_id: UUID, requester_id: UUID) -> Node:
        """Get a visible node the requester can at least view"""
        node = self._get_visible_node(node_id)
        self.access.require_access(requester_id, node, Permission.VIEW)
        return node

    # --- rename ---

    def rename(self, node_id: UUID, requester_id: UUID, new_name: str) -> Node:
        """Rename a node. Requires edit access; stored bytes are untouched."""
        new_name = self._validate_name(new_name)
        try:
            node = self._get_visible_node(node_id, lock=True)
            self.access.require_access(requester_id, node, Permission.EDIT)
            self._apply_rename(node, new_name)
        except Exception:
            self.db.rollback()
            raise
        return node

    def rename_via_link(self, token: str, new_name: str) -> Node:
        new_name = self._validate_name(new_name)
        try:
            node, _ = self.access.require_link_access(token, Permission.EDIT)
            node = self._get_visible_node(node.id, lock=True)
            self._apply_rename(node, new_name)
        except Exception:
            self.db.rollback()
            raise
        return node

    def _apply_rename(self, node: Node, new_name: str) -> None:
        old_name = node.name
        node.name = new_name
        self.db.commit()
        logger.info(f"Node {node.id} renamed from '{old_name}' to '{new_name}'")

    # --- move ---

    def move(self, node_id: UUID, requester_id: UUID, new_parent_id: Optional[UUID]) -> Node:
        """
        Move a node under a different folder (None for the owner's root).

        Args:
            node_id: ID of the node to move
            requester_id: ID of the user moving it (needs edit access)
            new_parent_id: Destination folder ID

        Returns:
            Updated Node
        """
        try:
            node = self._get_visible_node(node_id)
            self.access.require_access(requester_id, node, Permission.EDIT)

            node, new_parent = self._lock_for_move(node, new_parent_id)
            if new_parent is not None:
                level = self.access.get_access_level(requester_id, new_parent)
                if not satisfies(level, Permission.EDIT):
                    raise InvalidParentException("Parent folder not found or access denied")

            self._apply_move(node, new_parent)
        except Exception:
            self.db.rollback()
            raise
        return node

    def move_via_link(self, token: str, new_parent_id: Optional[UUID]) -> Node:
        try:
            node, _ = self.access.require_link_access(token, Permission.EDIT)
            node, new_parent = self._lock_for_move(node, new_parent_id)
            self._apply_move(node, new_parent)
        except Exception:
            self.db.rollback()
            raise
        return node

    def _lock_for_move(self, node: Node, new_parent_id: Optional[UUID]):
        """Lock node, old parent and new parent, then re-validate against the locked rows"""
        locked = self._lock_nodes(node.id, node.parent_id, new_parent_id)
        node = locked.get(node.id)
        if not node or self._is_hidden(node):
            raise NotFoundException("File not found")

        # The parent read before locking may be stale if the node moved meanwhile
        if node.parent_id is not None and node.parent_id not in locked:
            locked[node.parent_id] = self._get_node(node.parent_id, lock=True)

        new_parent = self._resolve_parent(node.owner_id, new_parent_id)
        return node, new_parent

    def _apply_move(self, node: Node, new_parent: Optional[Node]) -> None:
        if new_parent is not None:
            self._check_cycle(node.id, new_parent)

        old_parent_id = node.parent_id
        node.parent_id = new_parent.id if new_parent is not None else None
        self.db.commit()
        logger.info(f"Node {node.id} moved from {old_parent_id} to {node.parent_id}")

    def _check_cycle(self, node_id: UUID, new_parent: Node) -> None:
        """Walk from the destination up to the root; meeting node_id means a cycle"""
        seen = set()
        current = new_parent
        while current is not None:
            if current.id == node_id:
                raise CycleDetectedException("Cannot move a folder into itself or one of its descendants")
            if current.id in seen:
                raise CycleDetectedException("Folder hierarchy contains a cycle")
            seen.add(current.id)
            if current.parent_id is None:
                break
            current = self._get_node(current.parent_id)

    # --- trash ---

    def trash(self, node_id: UUID, requester_id: UUID) -> Node:
        """
        Move a node to the trash (owner only).

        Only this row is written; its descendants disappear from listings
        because visibility is derived from the nearest trashed ancestor.
        """
        try:
            node = self._get_visible_node(node_id, lock=True)
            self.access.require_owner(requester_id, node)

            node.trashed = True
            node.trashed_at = utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Node {node_id} moved to trash by {requester_id}")
        return node

    def restore(self, node_id: UUID, requester_id: UUID) -> Node:
        """Take a node out of the trash (owner only). Restoring a live node is a no-op."""
        try:
            node = self._get_node(node_id, lock=True)
            if not node:
                raise NotFoundException("File not found")
            self.access.require_owner(requester_id, node)

            if node.trashed:
                node.trashed = False
                node.trashed_at = None
                self.db.commit()
                logger.info(f"Node {node_id} restored by {requester_id}")
        except Exception:
            self.db.rollback()
            raise
        return node

    # --- ancestry ---

    def get_ancestry_path(self, node_id: UUID) -> List[Node]:
        """
        Return the chain of nodes from the root down to node_id (inclusive).

        Raises CycleDetected instead of looping if the parent links are corrupt.
        """
        node = self._get_node(node_id)
        if not node:
            raise NotFoundException("File not found")

        path = []
        seen = set()
        current = node
        while current is not None:
            if current.id in seen:
                raise CycleDetectedException("Folder hierarchy contains a cycle")
            seen.add(current.id)
            path.append(current)
            if current.parent_id is None:
                break
            current = self._get_node(current.parent_id)

        path.reverse()
        return path

    def get_breadcrumbs(self, node_id: UUID, requester_id: UUID) -> List[Node]:
        """Ancestry path trimmed to the part the requester is allowed to see"""
        node = self.get_node(node_id, requester_id)
        path = self.get_ancestry_path(node.id)

        visible = []
        for ancestor in reversed(path):
            if not satisfies(self.access.get_access_level(requester_id, ancestor), Permission.VIEW):
                break
            visible.append(ancestor)
        visible.reverse()
        return visible
