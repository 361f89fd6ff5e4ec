from datetime import timedelta

import jwt
import pytest

from dentaldesk import db
from dentaldesk.errors import NotAuthenticated
from dentaldesk.session import AuthEvent, SessionGate, SessionState, create_access_token


def test_gate_starts_loading_and_blocks_context():
    gate = SessionGate()
    assert gate.state is SessionState.LOADING
    with pytest.raises(NotAuthenticated):
        gate.context


def test_valid_token_authenticates(account):
    gate = SessionGate()
    assert gate.check(create_access_token(account)) is SessionState.AUTHENTICATED
    assert gate.context.account_id == account.id


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_missing_or_malformed_token_is_unauthenticated(app, token):
    gate = SessionGate()
    assert gate.check(token) is SessionState.UNAUTHENTICATED
    with pytest.raises(NotAuthenticated):
        gate.context


def test_expired_token_is_unauthenticated(app, account):
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(seconds=-10)
    token = create_access_token(account)
    assert SessionGate().check(token) is SessionState.UNAUTHENTICATED


def test_token_signed_with_another_key_is_rejected(app, account):
    forged = jwt.encode({"sub": account.id, "jti": "x"}, "another-key-of-sufficient-length!!", algorithm="HS256")
    assert SessionGate().check(forged) is SessionState.UNAUTHENTICATED


def test_deleted_account_is_unauthenticated(account):
    token = create_access_token(account)
    db.session.delete(account)
    db.session.commit()
    assert SessionGate().check(token) is SessionState.UNAUTHENTICATED


def test_sign_out_revokes_the_token(account):
    token = create_access_token(account)
    gate = SessionGate()
    gate.check(token)

    assert gate.on_auth_event(AuthEvent.SIGNED_OUT) is SessionState.UNAUTHENTICATED
    assert SessionGate().check(token) is SessionState.UNAUTHENTICATED


def test_sign_in_event_authenticates(account):
    gate = SessionGate()
    gate.check(None)
    assert gate.state is SessionState.UNAUTHENTICATED

    assert gate.on_auth_event("SIGNED_IN", create_access_token(account)) is SessionState.AUTHENTICATED


def test_failed_revocation_keeps_the_session(account, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from sqlalchemy.orm import Session

    token = create_access_token(account)
    gate = SessionGate()
    gate.check(token)

    def broken_commit(self):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "commit", broken_commit)
    assert gate.on_auth_event(AuthEvent.SIGNED_OUT) is SessionState.AUTHENTICATED
    monkeypatch.undo()

    assert SessionGate().check(token) is SessionState.AUTHENTICATED
