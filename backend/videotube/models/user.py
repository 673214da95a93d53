# videotube/models/user.py
from sqlalchemy import Column, DateTime, Integer, String, Text, func

from videotube.core.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Stored trimmed + lowercased; login accepts either one.
    username = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    fullname = Column(String(100), nullable=False)

    # Public URLs plus the object-storage keys needed to delete them later.
    avatar = Column(String(1024), nullable=False)
    avatar_key = Column(String(1024), nullable=True)
    cover_image = Column(String(1024), nullable=False, server_default="", default="")
    cover_image_key = Column(String(1024), nullable=True)

    password_hash = Column(String(255), nullable=False)

    # The single active refresh token for this user (NULL = logged out).
    refresh_token = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
