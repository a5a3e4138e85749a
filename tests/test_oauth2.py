from datetime import timedelta
from types import SimpleNamespace

import pytest

from memestack import oauth2
from memestack.core.db_defaults import utcnow
from memestack.core.exceptions import (
    AccountSuspendedException,
    AuthenticationException,
    InvalidTokenException,
)
from tests.factories import make_user


def _request():
    return SimpleNamespace(state=SimpleNamespace())


def test_create_and_verify_access_token_roundtrip():
    token = oauth2.create_access_token({"user_id": "123"})

    assert oauth2.verify_access_token(token).id == 123


def test_create_access_token_invalid_user_id():
    with pytest.raises(ValueError):
        oauth2.create_access_token({"user_id": "not-an-int"})


def test_verify_rejects_bad_tokens():
    with pytest.raises(InvalidTokenException):
        oauth2.verify_access_token(oauth2.create_access_token({"foo": "bar"}))
    with pytest.raises(InvalidTokenException):
        oauth2.verify_access_token(
            oauth2.create_access_token({"user_id": 1}, timedelta(minutes=-1))
        )
    with pytest.raises(InvalidTokenException):
        oauth2.verify_access_token("garbage")


def test_get_current_user_binds_request_state(session):
    user = make_user(session, "alice")
    request = _request()

    resolved = oauth2.get_current_user(
        request, token=oauth2.create_access_token({"user_id": user.id}), db=session
    )

    assert resolved.id == user.id
    assert request.state.user is resolved


def test_get_current_user_refuses_unknown_banned_and_suspended(session):
    with pytest.raises(AuthenticationException):
        oauth2.get_current_user(
            _request(), token=oauth2.create_access_token({"user_id": 404}), db=session
        )

    banned = make_user(session, "mallory", is_banned=True)
    with pytest.raises(AccountSuspendedException):
        oauth2.get_current_user(
            _request(), token=oauth2.create_access_token({"user_id": banned.id}), db=session
        )

    suspended = make_user(
        session, "sybil", suspended_until=utcnow() + timedelta(hours=1)
    )
    with pytest.raises(AccountSuspendedException) as exc:
        oauth2.get_current_user(
            _request(),
            token=oauth2.create_access_token({"user_id": suspended.id}),
            db=session,
        )
    assert "suspended_until" in exc.value.details


def test_expired_suspension_is_ignored(session):
    user = make_user(session, "reformed", suspended_until=utcnow() - timedelta(hours=1))

    resolved = oauth2.get_current_user(
        _request(), token=oauth2.create_access_token({"user_id": user.id}), db=session
    )
    assert resolved.id == user.id


def test_optional_user_allows_anonymous(session):
    assert oauth2.get_optional_user(_request(), token=None, db=session) is None
