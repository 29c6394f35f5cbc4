from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple
from uuid import UUID

from core.config import settings
from models.node import Node, NodeKind
from models.share import ShareGrant, Permission
from exceptions.exceptions import InvalidParentException, ValidationException
from services.base import BaseService
from services.access_service import AccessService

MAX_PAGE_SIZE = 1000


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class QueryService(BaseService):
    """Read-side views of the tree, filtered through access control."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.access = AccessService(db)

    @staticmethod
    def _granted_ids(user_id: UUID):
        return select(ShareGrant.node_id).where(ShareGrant.grantee_user_id == user_id)

    @staticmethod
    def _ordered(query):
        # created_at is strictly increasing, so new rows always sort last
        return query.order_by(Node.created_at.asc(), Node.id.asc())

    def list_children(
        self,
        parent_id: Optional[UUID],
        requester_id: UUID,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[Node], bool]:
        """
        List the live direct children of a folder, one page at a time.

        Args:
            parent_id: Folder to list (None for the requester's root)
            requester_id: ID of the user listing
            limit: Maximum number of nodes to return
            offset: Number of nodes to skip

        Returns:
            (nodes, has_more)
        """
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationException(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationException("offset cannot be negative")

        query = self.db.query(Node).filter(Node.trashed.is_(False))

        if parent_id is None:
            query = query.filter(Node.owner_id == requester_id, Node.parent_id.is_(None))
        else:
            parent = self._get_visible_node(parent_id)
            if parent.kind != NodeKind.FOLDER:
                raise InvalidParentException("Only folders can be listed")
            self.access.require_access(requester_id, parent, Permission.VIEW)
            query = query.filter(Node.parent_id == parent.id)
            if parent.owner_id != requester_id:
                # Grants name single nodes; only children shared directly are listed
                query = query.filter(Node.id.in_(self._granted_ids(requester_id)))

        rows = self._ordered(query).offset(offset).limit(limit + 1).all()
        return rows[:limit], len(rows) > limit

    def search(self, requester_id: UUID, query_text: str) -> List[Node]:
        """Case-insensitive name search over nodes the requester owns or was granted"""
        text = (query_text or "").strip()
        if not text:
            raise ValidationException("Search query cannot be empty")

        query = self.db.query(Node).filter(
            or_(Node.owner_id == requester_id, Node.id.in_(self._granted_ids(requester_id))),
            Node.name.ilike(f"%{_escape_like(text)}%", escape="\\"),
            Node.id.not_in(self._hidden_node_ids())
        )
        return self._ordered(query).all()

    def list_shared_with_me(self, user_id: UUID) -> List[Node]:
        """All live nodes other users have explicitly shared with user_id"""
        query = (
            self.db.query(Node)
            .join(ShareGrant, ShareGrant.node_id == Node.id)
            .filter(
                ShareGrant.grantee_user_id == user_id,
                Node.id.not_in(self._hidden_node_ids())
            )
        )
        return self._ordered(query).all()

    def list_shared_link_target(self, token: str) -> Node:
        node, _ = self.access.resolve_link(token)
        return node

    def list_trash(self, owner_id: UUID) -> List[Node]:
        """Nodes the owner trashed directly (their descendants come back with them)"""
        return (
            self.db.query(Node)
            .filter(Node.owner_id == owner_id, Node.trashed.is_(True))
            .order_by(Node.trashed_at.desc(), Node.id.asc())
            .all()
        )

    def storage_usage(self, owner_id: UUID) -> dict:
        """Bytes held by the owner's files, trashed ones included"""
        used_bytes, file_count = (
            self.db.query(func.coalesce(func.sum(Node.size_bytes), 0), func.count(Node.id))
            .filter(Node.owner_id == owner_id, Node.kind == NodeKind.FILE)
            .one()
        )
        return {
            "used_bytes": int(used_bytes),
            "limit_bytes": settings.STORAGE_LIMIT_BYTES,
            "file_count": int(file_count),
        }
