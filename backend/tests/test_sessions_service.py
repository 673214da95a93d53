from __future__ import annotations

import pytest

from videotube.core.errors import BadRequest, Conflict, NotFound, Unauthorized
from videotube.models.user import User
from videotube.services.sessions import SessionService


def _register(session_service, username="alice", password="pw1", **overrides):
    fields = dict(
        username=username,
        email=f"{username}@example.com",
        fullname=username.title(),
        password=password,
        avatar_url=f"https://cdn.example.invalid/{username}.png",
    )
    fields.update(overrides)
    return session_service.register(**fields)


def _stored_token(db_session, user_id):
    db_session.expire_all()
    return db_session.query(User).filter(User.id == user_id).one().refresh_token


def test_register_returns_sanitized_user_and_no_session(session_service, db_session):
    user = _register(session_service)

    dumped = user.model_dump()
    assert dumped["username"] == "alice"
    assert "password_hash" not in dumped and "refresh_token" not in dumped
    assert _stored_token(db_session, user.id) is None


def test_register_normalizes_username_and_email(session_service):
    user = _register(session_service, username="  Alice ", email=" ALICE@Example.com ")
    assert user.username == "alice"
    assert user.email == "alice@example.com"


def test_register_duplicate_username_or_email_is_conflict(session_service):
    _register(session_service)
    with pytest.raises(Conflict):
        _register(session_service, email="other@example.com")
    with pytest.raises(Conflict):
        _register(session_service, username="someone", email="alice@example.com")


@pytest.mark.parametrize("field", ["username", "email", "fullname", "password", "avatar_url"])
def test_register_blank_field_is_bad_request(session_service, field):
    with pytest.raises(BadRequest):
        _register(session_service, **{field: "  "})


def test_login_by_username_or_email_issues_pair_and_persists_refresh(session_service, token_service, db_session):
    user = _register(session_service)

    for identifier in ("alice", "ALICE@example.com"):
        result = session_service.login(identifier, "pw1")
        assert token_service.verify_access(result.access_token).user_id == user.id
        assert token_service.verify_refresh(result.refresh_token).user_id == user.id
        assert _stored_token(db_session, user.id) == result.refresh_token
        assert result.user.id == user.id


def test_login_access_claims_describe_the_user(session_service, token_service):
    _register(session_service, fullname="Alice Liddell")
    claims = token_service.verify_access(session_service.login("alice", "pw1").access_token)
    assert (claims.username, claims.email, claims.fullname) == ("alice", "alice@example.com", "Alice Liddell")


def test_login_wrong_password_is_unauthorized(session_service):
    _register(session_service)
    with pytest.raises(Unauthorized):
        session_service.login("alice", "nope")


def test_login_unknown_user_is_not_found(session_service):
    with pytest.raises(NotFound):
        session_service.login("ghost", "pw1")


def test_login_overwrites_previous_session(session_service):
    _register(session_service)
    first = session_service.login("alice", "pw1")
    second = session_service.login("alice", "pw1")

    with pytest.raises(Unauthorized):
        session_service.refresh(first.refresh_token)
    assert session_service.refresh(second.refresh_token).refresh_token


def test_refresh_rotates_and_rejects_replay(session_service, db_session):
    user = _register(session_service)
    t1 = session_service.login("alice", "pw1")

    t2 = session_service.refresh(t1.refresh_token)
    assert t2.refresh_token != t1.refresh_token
    assert _stored_token(db_session, user.id) == t2.refresh_token

    with pytest.raises(Unauthorized, match="expired or used"):
        session_service.refresh(t1.refresh_token)
    # A rejected replay does not disturb the live session.
    assert _stored_token(db_session, user.id) == t2.refresh_token


@pytest.mark.parametrize("presented", [None, "", "   "])
def test_refresh_without_token_is_unauthorized(session_service, presented):
    with pytest.raises(Unauthorized):
        session_service.refresh(presented)


def test_refresh_with_access_token_is_unauthorized(session_service):
    _register(session_service)
    result = session_service.login("alice", "pw1")
    with pytest.raises(Unauthorized):
        session_service.refresh(result.access_token)


def test_refresh_expired_token_is_unauthorized_and_keeps_slot(session_service, clock, auth_config, db_session):
    user = _register(session_service)
    result = session_service.login("alice", "pw1")

    clock.advance(seconds=auth_config.refresh_token_ttl_seconds)
    with pytest.raises(Unauthorized):
        session_service.refresh(result.refresh_token)
    assert _stored_token(db_session, user.id) == result.refresh_token


def test_refresh_for_deleted_user_is_unauthorized(session_service, db_session):
    user = _register(session_service)
    result = session_service.login("alice", "pw1")

    db_session.query(User).filter(User.id == user.id).delete()
    db_session.commit()

    with pytest.raises(Unauthorized):
        session_service.refresh(result.refresh_token)


def test_logout_clears_slot_and_is_idempotent(session_service, db_session):
    user = _register(session_service)
    result = session_service.login("alice", "pw1")

    session_service.logout(user.id)
    session_service.logout(user.id)
    assert _stored_token(db_session, user.id) is None

    with pytest.raises(Unauthorized):
        session_service.refresh(result.refresh_token)


def test_logout_for_unknown_user_is_noop(session_service):
    session_service.logout(987654)


def test_change_password(session_service):
    user = _register(session_service)

    with pytest.raises(BadRequest, match="old password"):
        session_service.change_password(user.id, "wrong", "pw2")

    session_service.change_password(user.id, "pw1", "pw2")

    with pytest.raises(Unauthorized):
        session_service.login("alice", "pw1")
    assert session_service.login("alice", "pw2").access_token


def test_change_password_keeps_existing_refresh_token(session_service):
    user = _register(session_service)
    result = session_service.login("alice", "pw1")

    session_service.change_password(user.id, "pw1", "pw2")

    assert session_service.refresh(result.refresh_token).access_token


def test_change_password_unknown_user_is_not_found(session_service):
    with pytest.raises(NotFound):
        session_service.change_password(424242, "pw1", "pw2")


def test_alice_session_lifecycle(session_service, token_service):
    alice = _register(session_service)

    t1 = session_service.login("alice", "pw1")
    assert token_service.verify_access(t1.access_token).user_id == alice.id

    t2 = session_service.refresh(t1.refresh_token)

    with pytest.raises(Unauthorized):
        session_service.refresh(t1.refresh_token)

    session_service.logout(alice.id)

    with pytest.raises(Unauthorized):
        session_service.refresh(t2.refresh_token)


def test_concurrent_refresh_is_last_writer_wins(db_session, token_service, session_service):
    """
    Two refreshes racing on the same valid token both pass the equality check
    (both read before either writes); only the last persisted token survives.
    """
    _register(session_service)
    start = session_service.login("alice", "pw1")

    class ReadBeforeWriteStore:
        """Answers `matches` from a snapshot, like a second request that read first."""

        def __init__(self, inner, snapshot):
            self._inner = inner
            self._snapshot = snapshot

        def get_active(self, user_id):
            return self._snapshot

        def matches(self, user_id, token):
            return token == self._snapshot

        def set_active(self, user_id, token):
            self._inner.set_active(user_id, token)

        def clear(self, user_id):
            self._inner.clear(user_id)

    from videotube.services.session_store import UserRecordSessionStore

    racer = SessionService(
        db_session,
        token_service,
        sessions=ReadBeforeWriteStore(UserRecordSessionStore(db_session), start.refresh_token),
    )

    winner_first = session_service.refresh(start.refresh_token)
    last_writer = racer.refresh(start.refresh_token)

    with pytest.raises(Unauthorized):
        session_service.refresh(winner_first.refresh_token)
    assert session_service.refresh(last_writer.refresh_token).access_token


class InMemorySessionStore:
    def __init__(self):
        self.slots: dict[int, str] = {}

    def get_active(self, user_id):
        return self.slots.get(user_id)

    def set_active(self, user_id, token):
        self.slots[user_id] = token

    def clear(self, user_id):
        self.slots.pop(user_id, None)

    def matches(self, user_id, token):
        return bool(token) and self.slots.get(user_id) == token


def test_session_store_is_swappable(db_session, token_service, session_service):
    _register(session_service)
    store = InMemorySessionStore()
    svc = SessionService(db_session, token_service, sessions=store)

    result = svc.login("alice", "pw1")
    assert store.slots[result.user.id] == result.refresh_token

    rotated = svc.refresh(result.refresh_token)
    assert store.slots[result.user.id] == rotated.refresh_token

    svc.logout(result.user.id)
    assert result.user.id not in store.slots


def test_register_password_over_limit_is_bad_request(session_service, db_session):
    with pytest.raises(BadRequest):
        _register(session_service, password="p" * 129)
    assert db_session.query(User).count() == 0


def test_login_with_several_identifiers_matches_any(session_service):
    user = _register(session_service)
    result = session_service.login(("nobody", "alice@example.com"), "pw1")
    assert result.user.id == user.id


def test_login_with_only_blank_identifiers_is_bad_request(session_service):
    with pytest.raises(BadRequest):
        session_service.login(("", "  "), "pw1")
