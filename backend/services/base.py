from sqlalchemy import select
from sqlalchemy.orm import Session, aliased
from typing import Optional
from uuid import UUID

from models.node import Node
from exceptions.exceptions import NotFoundException, CycleDetectedException, ValidationException

MAX_NAME_LENGTH = 255


class BaseService:
    def __init__(self, db: Session):
        self.db = db

    def _get_node(self, node_id: UUID, lock: bool = False) -> Optional[Node]:
        """Load a node by ID, optionally taking a row lock for the transaction"""
        query = self.db.query(Node).filter(Node.id == node_id)
        if lock:
            query = query.with_for_update().populate_existing()
        return query.first()

    def _lock_nodes(self, *node_ids: Optional[UUID]) -> dict:
        """Lock several node rows in a stable order so concurrent movers cannot deadlock"""
        locked = {}
        for node_id in sorted({n for n in node_ids if n is not None}, key=str):
            locked[node_id] = self._get_node(node_id, lock=True)
        return locked

    def _is_hidden(self, node: Node) -> bool:
        """True if the node or any of its ancestors is trashed"""
        seen = set()
        current = node
        while current is not None:
            if current.trashed:
                return True
            if current.id in seen:
                raise CycleDetectedException("Folder hierarchy contains a cycle")
            seen.add(current.id)
            if current.parent_id is None:
                return False
            current = self._get_node(current.parent_id)
        return False

    def _get_visible_node(self, node_id: UUID, lock: bool = False) -> Node:
        """Get a node that exists and is not hidden by trash, or raise NotFound"""
        node = self._get_node(node_id, lock=lock)
        if not node or self._is_hidden(node):
            raise NotFoundException("File not found")
        return node

    def _hidden_node_ids(self):
        """
        Select the IDs of every trashed node and everything beneath one.

        Descendants of a trashed folder are never written when the folder is
        trashed; this recursive query derives their visibility at read time.
        """
        hidden = (
            self.db.query(Node.id)
            .filter(Node.trashed.is_(True))
            .cte(name="hidden_nodes", recursive=True)
        )
        hidden_alias = aliased(hidden, name="h")
        child = aliased(Node, name="child")
        hidden = hidden.union(
            self.db.query(child.id).filter(child.parent_id == hidden_alias.c.id)
        )
        return select(hidden.c.id)

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationException("Name cannot be empty")
        if len(cleaned) > MAX_NAME_LENGTH:
            raise ValidationException(f"Name cannot be longer than {MAX_NAME_LENGTH} characters")
        return cleaned
