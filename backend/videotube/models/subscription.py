# videotube/models/subscription.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func

from videotube.core.base import Base


class Subscription(Base):
    """One user (subscriber) following another user's channel."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscriptions_subscriber_channel"),
    )

    id = Column(Integer, primary_key=True, index=True)

    subscriber_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
