from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import enum
import uuid
from core.clock import utcnow
from database import Base


class Permission(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"


class ShareGrant(Base):
    __tablename__ = "share_grants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    node_id = Column(Uuid(as_uuid=True), ForeignKey("nodes.id"), nullable=False, index=True)
    grantee_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    granted_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    permission = Column(Enum(Permission), nullable=False, default=Permission.VIEW)
    granted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    node = relationship("Node", back_populates="grants")
    grantee = relationship("User", foreign_keys=[grantee_user_id])

    __table_args__ = (
        UniqueConstraint("node_id", "grantee_user_id", name="uq_share_grant_node_grantee"),
    )

    def __repr__(self):
        return f"ShareGrant(node_id={self.node_id}, grantee_user_id={self.grantee_user_id}, permission={self.permission})"


class ShareLink(Base):
    __tablename__ = "share_links"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    node_id = Column(Uuid(as_uuid=True), ForeignKey("nodes.id"), nullable=False, unique=True)
    token = Column(String, nullable=False, unique=True, index=True)
    permission = Column(Enum(Permission), nullable=False, default=Permission.VIEW)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    node = relationship("Node", back_populates="share_link")

    def __repr__(self):
        return f"ShareLink(node_id={self.node_id}, permission={self.permission}, expires_at={self.expires_at})"
