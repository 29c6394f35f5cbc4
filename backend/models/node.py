from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, ForeignKey, Enum, Index, Uuid
from sqlalchemy.orm import relationship
import enum
import uuid
from core.clock import utcnow
from database import Base


class NodeKind(str, enum.Enum):
    FILE = "file"
    FOLDER = "folder"


class Node(Base):
    __tablename__ = "nodes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    kind = Column(Enum(NodeKind), nullable=False)
    parent_id = Column(Uuid(as_uuid=True), ForeignKey("nodes.id"), nullable=True, index=True)
    storage_key = Column(String, nullable=True, unique=True)  # files only, never changes
    size_bytes = Column(BigInteger, nullable=True)
    mime_type = Column(String, nullable=True)
    trashed = Column(Boolean, nullable=False, default=False)
    trashed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", backref="nodes")
    parent = relationship("Node", remote_side=[id])
    grants = relationship("ShareGrant", back_populates="node", cascade="all, delete-orphan")
    share_link = relationship("ShareLink", back_populates="node", uselist=False, cascade="all, delete-orphan")

    # Listing order: (parent, created_at, id)
    __table_args__ = (
        Index("ix_nodes_owner_parent_created", "owner_id", "parent_id", "created_at"),
    )

    def __repr__(self):
        return f"Node(id={self.id}, owner_id={self.owner_id}, name={self.name}, kind={self.kind}, parent_id={self.parent_id}, storage_key={self.storage_key}, size_bytes={self.size_bytes}, trashed={self.trashed})"
