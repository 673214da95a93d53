# videotube/models/video.py
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from videotube.core.base import Base


class Video(Base):
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, index=True)

    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    video_file = Column(String(1024), nullable=False)
    thumbnail = Column(String(1024), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    # Seconds, as reported by the upload provider
    duration = Column(Float, nullable=False)
    views = Column(Integer, nullable=False, server_default="0", default=0)
    is_published = Column(Boolean, nullable=False, server_default="true", default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    owner = relationship("User")
