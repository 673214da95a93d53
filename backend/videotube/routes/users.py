from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from videotube.core.database import get_db
from videotube.dependencies.auth import get_current_user, get_optional_user, get_session_service
from videotube.models.user import User
from videotube.schemas.auth import MessageOut
from videotube.schemas.user import ChangePasswordIn, ChannelProfileOut, UpdateAccountIn, UserOut
from videotube.services import accounts, channels
from videotube.services.sessions import SessionService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/current-user", response_model=UserOut)
def get_current(user: User = Depends(get_current_user)) -> User:
    return user


@router.post("/change-password", response_model=MessageOut)
def change_password(
    payload: ChangePasswordIn,
    user: User = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    sessions.change_password(user.id, payload.old_password, payload.new_password)
    return {"message": "Password changed successfully"}


@router.patch("/update-account", response_model=UserOut)
def update_account(
    payload: UpdateAccountIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return accounts.update_account_details(db, user.id, fullname=payload.fullname, email=payload.email)


@router.patch("/avatar", response_model=UserOut)
def update_avatar(
    avatar: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return accounts.update_avatar(
        db,
        user.id,
        avatar.file if avatar else None,
        filename=avatar.filename if avatar else None,
        content_type=avatar.content_type if avatar else None,
    )


@router.patch("/cover-image", response_model=UserOut)
def update_cover_image(
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return accounts.update_cover_image(
        db,
        user.id,
        cover_image.file if cover_image else None,
        filename=cover_image.filename if cover_image else None,
        content_type=cover_image.content_type if cover_image else None,
    )


@router.get("/c/{username}", response_model=ChannelProfileOut)
def get_channel_profile(
    username: str,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    return channels.get_channel_profile(db, username, viewer_id=viewer.id if viewer else None)
