"""Remediation requests and their outcomes."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

__all__ = [
    "Credentials",
    "RemediationKind",
    "RemediationRequest",
    "RemediationOutcome",
    "describe_error",
]


class RemediationKind(str, Enum):
    INSTALL = "install"
    LAUNCH = "launch"
    AUTHENTICATE = "authenticate"
    WHITELIST = "whitelist"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class Credentials:
    """Login details handed to the oracle; never persisted by this package."""

    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password='***')"


@dataclass(slots=True, frozen=True)
class RemediationRequest:
    """One user-triggered attempt at a remediation.

    ``retry()`` produces the next attempt with identical parameters; a retried
    request never re-prompts for credentials or re-resolves the directory.
    """

    kind: RemediationKind
    directory: str | None = None
    credentials: Credentials | None = None
    attempt: int = 1

    def __post_init__(self) -> None:
        if self.kind is RemediationKind.WHITELIST and not self.directory:
            raise ValueError("whitelist requests need a directory")
        if self.kind is RemediationKind.AUTHENTICATE and self.credentials is None:
            raise ValueError("authenticate requests need credentials")
        if self.attempt < 1:
            raise ValueError("attempt numbers start at 1")

    def retry(self) -> RemediationRequest:
        return replace(self, attempt=self.attempt + 1)


@dataclass(slots=True, frozen=True)
class RemediationOutcome:
    request: RemediationRequest
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def describe_error(self) -> str | None:
        if self.error is None:
            return None
        return describe_error(self.error)


def describe_error(error: BaseException) -> str:
    """Serialize a failure cause for display in a notification.

    Oracles attach their diagnostic payload either as a ``payload`` attribute
    or as the exception's sole argument; either is rendered as compact JSON.
    Exceptions carrying no message are described by their class name.
    """

    payload: Any
    if hasattr(error, "payload"):
        payload = getattr(error, "payload")
    elif len(error.args) == 1:
        payload = error.args[0]
    else:
        payload = str(error)
    if payload is None or payload == "":
        payload = type(error).__name__
    try:
        return json.dumps(payload, default=str, separators=(",", ":"))
    except (TypeError, ValueError):
        return json.dumps(str(payload))
