# videotube/routes/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, File, Form, Request, Response, UploadFile, status

from videotube.core.errors import BadRequest, ServiceError
from videotube.dependencies.auth import get_current_user, get_session_service
from videotube.models.user import User
from videotube.schemas.auth import LoginIn, LoginOut, MessageOut, RefreshIn, TokenPairOut
from videotube.schemas.user import UserOut
from videotube.services import media_storage
from videotube.services.accounts import AVATAR_FOLDER, COVER_FOLDER, check_image
from videotube.services.auth_cookies import clear_auth_cookies, read_refresh_token, set_auth_cookies
from videotube.services.sessions import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["auth"])


def _upload(file: UploadFile | None, folder: str) -> media_storage.StoredObject | None:
    if file is None or not file.filename:
        return None
    return media_storage.upload_image(
        file.file,
        filename=file.filename,
        content_type=file.content_type,
        folder=folder,
    )


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(
    fullname: str = Form(""),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    sessions: SessionService = Depends(get_session_service),
):
    # Field, password and duplicate checks all run before any upload.
    sessions.check_registration(username=username, email=email, fullname=fullname, password=password)

    if avatar is None or not avatar.filename:
        raise BadRequest("Avatar file is required")
    check_image(avatar.file, content_type=avatar.content_type, label="Avatar")
    if cover_image is not None and cover_image.filename:
        check_image(cover_image.file, content_type=cover_image.content_type, label="Cover image")

    avatar_obj = _upload(avatar, AVATAR_FOLDER)
    if avatar_obj is None:
        raise BadRequest("Avatar file is required")
    cover_obj = _upload(cover_image, COVER_FOLDER)

    try:
        return sessions.register(
            username=username,
            email=email,
            fullname=fullname,
            password=password,
            avatar_url=avatar_obj.url,
            avatar_key=avatar_obj.key,
            cover_image_url=cover_obj.url if cover_obj else "",
            cover_image_key=cover_obj.key if cover_obj else None,
        )
    except ServiceError:
        media_storage.delete_object(avatar_obj.key)
        if cover_obj:
            media_storage.delete_object(cover_obj.key)
        raise


@router.post("/login", response_model=LoginOut)
def login(
    payload: LoginIn,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
):
    if not payload.identifiers:
        raise BadRequest("Username or email is required")

    result = sessions.login(payload.identifiers, payload.password)
    set_auth_cookies(response, result.access_token, result.refresh_token)

    return LoginOut(
        user=result.user,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.post("/logout", response_model=MessageOut)
def logout(
    response: Response,
    user: User = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    sessions.logout(user.id)
    clear_auth_cookies(response)
    return {"message": "User logged out"}


@router.post("/refresh-token", response_model=TokenPairOut)
def refresh_access_token(
    request: Request,
    response: Response,
    payload: RefreshIn | None = Body(None),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Rotate the token pair:
      - read refresh token from cookie, else from the body
      - verify signature/expiry and that it is the user's current token
      - store the new refresh token, set both cookies
    """
    presented = read_refresh_token(request, payload.refresh_token if payload else None)
    pair = sessions.refresh(presented)
    set_auth_cookies(response, pair.access_token, pair.refresh_token)
    return TokenPairOut(access_token=pair.access_token, refresh_token=pair.refresh_token)
