from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, String, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Owner(Base):
    """A registered collector. Every computer and component belongs to exactly one owner."""

    __tablename__ = "owners"

    id = Column(Integer, primary_key=True, index=True)
    user_name = Column(String(15), nullable=False, unique=True, index=True)
    email = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=True)
    admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)

    computers = relationship("Computer", back_populates="owner", cascade="all, delete-orphan")
    components = relationship("Component", back_populates="owner", cascade="all, delete-orphan")


__all__ = ["Owner"]
