# videotube/services/channels.py
from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from videotube.core.errors import BadRequest, NotFound
from videotube.models.subscription import Subscription
from videotube.schemas.user import ChannelProfileOut
from videotube.services import users as user_store


def get_channel_profile(db: Session, username: str, *, viewer_id: int | None = None) -> ChannelProfileOut:
    """
    Channel page for `username`: profile fields plus subscription counts.

    is_subscribed is relative to `viewer_id` (False for anonymous viewers).
    """
    if not (username or "").strip():
        raise BadRequest("Username is missing")

    channel = user_store.find_by_username(db, username)
    if channel is None:
        raise NotFound("Channel does not exist")

    subscribers_count = (
        db.query(func.count(Subscription.id)).filter(Subscription.channel_id == channel.id).scalar() or 0
    )
    subscribed_to_count = (
        db.query(func.count(Subscription.id)).filter(Subscription.subscriber_id == channel.id).scalar() or 0
    )

    is_subscribed = False
    if viewer_id is not None:
        is_subscribed = (
            db.query(Subscription.id)
            .filter(Subscription.channel_id == channel.id, Subscription.subscriber_id == viewer_id)
            .first()
            is not None
        )

    return ChannelProfileOut(
        id=channel.id,
        username=channel.username,
        fullname=channel.fullname,
        email=channel.email,
        avatar=channel.avatar,
        cover_image=channel.cover_image or "",
        subscribers_count=int(subscribers_count),
        channels_subscribed_to_count=int(subscribed_to_count),
        is_subscribed=is_subscribed,
    )
