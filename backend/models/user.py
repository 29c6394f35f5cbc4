from sqlalchemy import Column, String, DateTime, Uuid
import uuid
from core.clock import utcnow
from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    picture = Column(String, nullable=True)
    provider = Column(String(50), nullable=False, default="local")
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"User(id={self.id}, email={self.email}, provider={self.provider})"
