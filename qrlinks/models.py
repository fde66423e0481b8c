from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from qrlinks.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    links = relationship("Link", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)


class Link(Base):
    __tablename__ = "links"

    link_id = Column(Integer, primary_key=True, index=True)
    original_url = Column(String(2048), nullable=False)
    shortened_code = Column(String(20), unique=True, index=True, nullable=False)
    complete_shortened_url = Column(String(255), nullable=False)
    qr_code_path = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    # Reserved: stored but neither enforced nor incremented yet
    expires_at = Column(DateTime(timezone=True), nullable=True)
    clicks = Column(Integer, default=0, nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False)

    owner = relationship("User", back_populates="links")
