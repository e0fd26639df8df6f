"""
Credentials and identities

A credential configured for a run (e.g. from the environment) is kept in a StoredCredential
slot that hands it out once. Whatever the outcome of that first attempt, later attempts in
the same run fall back to prompting instead of resending the same value.
"""

from dataclasses import dataclass
from typing import ClassVar, Optional, Union


@dataclass(frozen=True)
class EmptyCredential:
    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class UsernamePassword:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"UsernamePassword(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class SessionToken:
    token: str

    def __repr__(self) -> str:
        return "SessionToken(token='***')"


Credential = Union[EmptyCredential, UsernamePassword, SessionToken]

EMPTY = EmptyCredential()


class StoredCredential:
    """Two-state slot: unused (holding a value) or used"""

    def __init__(self, value: Optional[Credential] = None):
        self._value: Credential = value if value is not None else EMPTY

    @property
    def is_used(self) -> bool:
        return isinstance(self._value, EmptyCredential)

    def take(self) -> Credential:
        value, self._value = self._value, EMPTY
        return value


@dataclass(frozen=True)
class Identity:
    """The user the session is logged in as; `provenance` is informational only"""
    name: Optional[str] = None
    provenance: Optional[str] = None

    UNAUTHENTICATED: ClassVar['Identity']

    @property
    def is_authenticated(self) -> bool:
        return self.name is not None

    def __str__(self) -> str:
        if self.name is None:
            return "<not logged in>"
        if self.provenance:
            return f"{self.name} ({self.provenance})"
        return self.name


Identity.UNAUTHENTICATED = Identity()
