from __future__ import annotations

import io

from videotube.models.user import User

BASE = "/api/v1/users"


def test_current_user_via_cookie_and_bearer(client, logged_in):
    with logged_in("alice") as (user, login):
        res = client.get(f"{BASE}/current-user")
        assert res.status_code == 200
        assert res.json()["id"] == user.id

        client.cookies.clear()
        res2 = client.get(f"{BASE}/current-user", headers={"Authorization": f"Bearer {login['accessToken']}"})
        assert res2.status_code == 200
        assert "password_hash" not in res2.json()


def test_current_user_rejects_refresh_token_as_access(client, logged_in):
    with logged_in("alice") as (_user, login):
        client.cookies.clear()
        res = client.get(f"{BASE}/current-user", headers={"Authorization": f"Bearer {login['refreshToken']}"})
        assert res.status_code == 401


def test_current_user_rejects_expired_access_token(client, logged_in, clock):
    with logged_in("alice"):
        clock.advance(hours=2)
        res = client.get(f"{BASE}/current-user")
        assert res.status_code == 401


def test_change_password_flow(client, logged_in):
    with logged_in("alice", password="pw1"):
        bad = client.post(f"{BASE}/change-password", json={"oldPassword": "nope", "newPassword": "pw2"})
        assert bad.status_code == 400

        ok = client.post(f"{BASE}/change-password", json={"oldPassword": "pw1", "newPassword": "pw2"})
        assert ok.status_code == 200
        assert ok.json()["message"] == "Password changed successfully"

    assert client.post(f"{BASE}/login", json={"username": "alice", "password": "pw1"}).status_code == 401
    assert client.post(f"{BASE}/login", json={"username": "alice", "password": "pw2"}).status_code == 200


def test_change_password_requires_authentication(client):
    res = client.post(f"{BASE}/change-password", json={"oldPassword": "a", "newPassword": "b"})
    assert res.status_code == 401


def test_update_account_details(client, logged_in, db_session):
    with logged_in("alice") as (user, _login):
        res = client.patch(f"{BASE}/update-account", json={"fullname": " Alice L ", "email": "New@Example.com"})
        assert res.status_code == 200
        assert res.json()["fullname"] == "Alice L"
        assert res.json()["email"] == "new@example.com"

    db_session.expire_all()
    assert db_session.query(User).filter(User.id == user.id).one().email == "new@example.com"


def test_update_account_email_taken_is_409(client, logged_in, make_user):
    make_user("bob")
    with logged_in("alice"):
        res = client.patch(f"{BASE}/update-account", json={"fullname": "Alice", "email": "bob@example.com"})
        assert res.status_code == 409


def test_update_account_invalid_email_is_422(client, logged_in):
    with logged_in("alice"):
        res = client.patch(f"{BASE}/update-account", json={"fullname": "Alice", "email": "not-an-email"})
        assert res.status_code == 422


def test_update_avatar_replaces_and_deletes_old_object(client, logged_in, fake_s3):
    with logged_in("alice") as (user, _login):
        old_key = user.avatar_key
        res = client.patch(
            f"{BASE}/avatar",
            files={"avatar": ("new.png", io.BytesIO(b"\x89PNG"), "image/png")},
        )
        assert res.status_code == 200
        assert res.json()["avatar"].startswith("https://cdn.example.invalid/media/avatars/")
        assert fake_s3.deleted == [old_key]
        assert len(fake_s3.uploaded) == 1


def test_update_avatar_missing_file_is_400(client, logged_in):
    with logged_in("alice"):
        res = client.patch(f"{BASE}/avatar")
        assert res.status_code == 400
        assert res.json()["message"] == "Avatar file is missing"


def test_update_avatar_rejects_non_image(client, logged_in, fake_s3):
    with logged_in("alice"):
        res = client.patch(
            f"{BASE}/avatar",
            files={"avatar": ("notes.txt", io.BytesIO(b"hello"), "text/plain")},
        )
        assert res.status_code == 400
        assert fake_s3.uploaded == []


def test_update_avatar_upload_failure_is_400_and_keeps_record(client, logged_in, monkeypatch, db_session):
    from videotube.services import media_storage

    monkeypatch.setattr(media_storage, "upload_image", lambda *a, **kw: None)
    with logged_in("alice") as (user, _login):
        before = user.avatar
        res = client.patch(
            f"{BASE}/avatar",
            files={"avatar": ("new.png", io.BytesIO(b"\x89PNG"), "image/png")},
        )
        assert res.status_code == 400

    db_session.expire_all()
    assert db_session.query(User).filter(User.id == user.id).one().avatar == before


def test_update_cover_image_first_time(client, logged_in, fake_s3):
    with logged_in("alice"):
        res = client.patch(
            f"{BASE}/cover-image",
            files={"coverImage": ("cover.jpg", io.BytesIO(b"\xff\xd8"), "image/jpeg")},
        )
        assert res.status_code == 200
        assert res.json()["coverImage"].startswith("https://cdn.example.invalid/media/covers/")
        # No previous cover to delete.
        assert fake_s3.deleted == []


def test_update_account_email_matching_another_username_is_allowed(client, logged_in, make_user):
    make_user("carol@example.org", email="carol-real@example.org")
    with logged_in("alice"):
        res = client.patch(f"{BASE}/update-account", json={"fullname": "Alice", "email": "carol@example.org"})
        assert res.status_code == 200, res.text
        assert res.json()["email"] == "carol@example.org"


def test_update_avatar_over_size_limit_is_400(client, logged_in, fake_s3, monkeypatch):
    from videotube.core import config as app_config

    monkeypatch.setattr(app_config.settings, "MAX_UPLOAD_BYTES", 4)
    with logged_in("alice"):
        res = client.patch(
            f"{BASE}/avatar",
            files={"avatar": ("big.png", io.BytesIO(b"\x89PNG-too-large"), "image/png")},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Avatar is too large"
        assert fake_s3.uploaded == []
