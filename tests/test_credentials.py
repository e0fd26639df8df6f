import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from service.credentials import (
    EmptyCredential, Identity, SessionToken, StoredCredential, UsernamePassword
)


def test_stored_credential_is_taken_once():
    stored = StoredCredential(SessionToken("secret"))
    assert not stored.is_used

    assert stored.take() == SessionToken("secret")
    assert stored.is_used
    assert isinstance(stored.take(), EmptyCredential)
    assert isinstance(stored.take(), EmptyCredential)


def test_empty_slot():
    stored = StoredCredential()
    assert stored.is_used
    assert not stored.take()


def test_credentials_truthiness():
    assert not EmptyCredential()
    assert SessionToken("x")
    assert UsernamePassword("user", "pass")


def test_secrets_are_not_in_repr():
    assert "secret" not in repr(SessionToken("secret"))
    assert "hunter2" not in repr(UsernamePassword("alice", "hunter2"))
    assert "alice" in repr(UsernamePassword("alice", "hunter2"))


def test_identity_display():
    assert str(Identity.UNAUTHENTICATED) == "<not logged in>"
    assert not Identity.UNAUTHENTICATED.is_authenticated
    assert str(Identity("alice", "GitHub")) == "alice (GitHub)"
    assert str(Identity("alice")) == "alice"
    assert Identity("alice", "GitHub").is_authenticated
