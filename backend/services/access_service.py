import secrets
from datetime import timedelta
from sqlalchemy.orm import Session
from typing import Optional, Tuple, Union
from uuid import UUID

from core.clock import utcnow, as_utc
from core.config import settings
from core.logger import logger
from models.node import Node
from models.share import ShareGrant, ShareLink, Permission
from models.user import User
from exceptions.exceptions import (
    ForbiddenException,
    GranteeNotFoundException,
    InvalidOrExpiredTokenException,
    NotFoundException,
    NotSharedException,
    ValidationException,
)
from services.base import BaseService

OWNER = "owner"
NONE = "none"

ACCESS_ORDER = {NONE: 0, Permission.VIEW.value: 1, Permission.EDIT.value: 2, OWNER: 3}


def _level(value: Union[str, Permission]) -> str:
    return value.value if isinstance(value, Permission) else value


def _permission(value: Union[str, Permission]) -> Permission:
    try:
        return Permission(_level(value))
    except ValueError:
        raise ValidationException(f"Unknown permission: {value}")


def satisfies(level: Union[str, Permission], required: Union[str, Permission]) -> bool:
    return ACCESS_ORDER[_level(level)] >= ACCESS_ORDER[_level(required)]


class AccessService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)

    # --- authorization ---

    def get_access_level(self, user_id: Optional[UUID], node: Node) -> str:
        """
        Resolve a user's access level on a node.

        Owner wins, then an explicit grant on the node, otherwise no access.
        Share links are not consulted here; link holders go through
        `require_link_access`.
        """
        if user_id is None:
            return NONE
        if node.owner_id == user_id:
            return OWNER

        grant = self.db.query(ShareGrant).filter(
            ShareGrant.node_id == node.id,
            ShareGrant.grantee_user_id == user_id
        ).first()
        if grant:
            return grant.permission.value
        return NONE

    def require_access(self, user_id: UUID, node: Node, required: Union[str, Permission]) -> str:
        level = self.get_access_level(user_id, node)
        if not satisfies(level, required):
            raise ForbiddenException(
                "Only the owner can perform this action" if _level(required) == OWNER
                else f"You need {_level(required)} access to this file"
            )
        return level

    def require_owner(self, user_id: UUID, node: Node) -> None:
        self.require_access(user_id, node, OWNER)

    # --- user grants ---

    def grant(
        self,
        node_id: UUID,
        requester_id: UUID,
        grantee_email: str,
        permission: Union[str, Permission] = Permission.VIEW
    ) -> ShareGrant:
        """
        Share a node with another account, or change the permission of an existing share.

        Args:
            node_id: ID of the node to share
            requester_id: ID of the user sharing (must own the node)
            grantee_email: Email address of the account to share with
            permission: view or edit

        Returns:
            The created or updated ShareGrant
        """
        permission = _permission(permission)
        try:
            node = self._get_visible_node(node_id, lock=True)
            self.require_owner(requester_id, node)

            email = (grantee_email or "").strip().lower()
            if not email:
                raise ValidationException("Email is required")

            grantee = self.db.query(User).filter(User.email == email).first()
            if not grantee:
                raise GranteeNotFoundException(f"No user found with email {email}")
            if grantee.id == node.owner_id:
                raise ValidationException("You cannot share a file with yourself")

            grant = self.db.query(ShareGrant).filter(
                ShareGrant.node_id == node.id,
                ShareGrant.grantee_user_id == grantee.id
            ).first()

            if grant:
                grant.permission = permission
            else:
                grant = ShareGrant(
                    node_id=node.id,
                    grantee_user_id=grantee.id,
                    granted_by=requester_id,
                    permission=permission
                )
                self.db.add(grant)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Node {node_id} shared with {grantee.id} ({_level(permission)})")
        return grant

    def revoke(self, node_id: UUID, requester_id: UUID, grantee_user_id: UUID) -> None:
        """Remove a user's access to a node (owner only)"""
        try:
            node = self._get_visible_node(node_id, lock=True)
            self.require_owner(requester_id, node)

            grant = self.db.query(ShareGrant).filter(
                ShareGrant.node_id == node.id,
                ShareGrant.grantee_user_id == grantee_user_id
            ).first()
            if not grant:
                raise NotSharedException("File is not shared with this user")

            self.db.delete(grant)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Access to node {node_id} revoked for {grantee_user_id}")

    # --- share links ---

    def create_link(
        self,
        node_id: UUID,
        requester_id: UUID,
        permission: Union[str, Permission] = Permission.VIEW,
        expires_in_hours: Optional[int] = None
    ) -> ShareLink:
        """
        Issue a public share link for a node, replacing any existing one.

        The old row is deleted and the new one inserted in the same transaction
        while the node row is locked, so resolvers see either the old token or
        the new one, never both and never neither.
        """
        permission = _permission(permission)
        if expires_in_hours is None:
            expires_in_hours = settings.SHARE_LINK_EXPIRE_HOURS
        if expires_in_hours is not None and expires_in_hours <= 0:
            raise ValidationException("expires_in_hours must be positive")

        try:
            node = self._get_visible_node(node_id, lock=True)
            self.require_owner(requester_id, node)

            existing = self.db.query(ShareLink).filter(ShareLink.node_id == node.id).first()
            if existing:
                self.db.delete(existing)
                self.db.flush()

            expires_at = None
            if expires_in_hours is not None:
                expires_at = utcnow() + timedelta(hours=expires_in_hours)

            link = ShareLink(
                node_id=node.id,
                token=secrets.token_urlsafe(32),
                permission=permission,
                expires_at=expires_at
            )
            self.db.add(link)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Share link created for node {node_id} ({_level(permission)})")
        return link

    def revoke_link(self, node_id: UUID, requester_id: UUID) -> None:
        """Disable the public share link of a node (owner only)"""
        try:
            node = self._get_visible_node(node_id, lock=True)
            self.require_owner(requester_id, node)

            link = self._active_link(node.id)
            if not link:
                raise NotSharedException("File has no active share link")

            self.db.delete(link)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Share link revoked for node {node_id}")

    def _active_link(self, node_id: UUID) -> Optional[ShareLink]:
        link = self.db.query(ShareLink).filter(ShareLink.node_id == node_id).first()
        if link and self._is_expired(link):
            return None
        return link

    @staticmethod
    def _is_expired(link: ShareLink) -> bool:
        return link.expires_at is not None and as_utc(link.expires_at) <= utcnow()

    def resolve_link(self, token: str) -> Tuple[Node, Permission]:
        """
        Resolve a share token to its node and permission.

        No session is required; this is the anonymous access path.
        """
        link = self.db.query(ShareLink).filter(ShareLink.token == token).first()
        if not link or self._is_expired(link):
            raise InvalidOrExpiredTokenException()

        node = self._get_node(link.node_id)
        if not node or self._is_hidden(node):
            raise NotFoundException("Shared file is no longer available")
        return node, link.permission

    def require_link_access(self, token: str, required: Permission) -> Tuple[Node, Permission]:
        node, permission = self.resolve_link(token)
        if not satisfies(permission, required):
            raise ForbiddenException(f"This share link does not allow {_level(required)} access")
        return node, permission

    # --- share info ---

    def get_share_info(self, node_id: UUID, requester_id: UUID) -> dict:
        """List who a node is shared with and its active link (owner only)"""
        node = self._get_visible_node(node_id)
        self.require_owner(requester_id, node)

        grants = (
            self.db.query(ShareGrant)
            .filter(ShareGrant.node_id == node.id)
            .order_by(ShareGrant.granted_at.asc(), ShareGrant.id.asc())
            .all()
        )
        return {
            "shared_with": grants,
            "share_link": self._active_link(node.id),
        }

    @staticmethod
    def link_url(link: ShareLink) -> str:
        return f"{settings.FRONTEND_URL.rstrip('/')}/shared/{link.token}"
