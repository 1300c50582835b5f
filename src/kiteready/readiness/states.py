"""Daemon lifecycle states reported by the status oracle."""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .remediation import RemediationKind

__all__ = ["LifecycleState"]


class LifecycleState(IntEnum):
    """Staged readiness checklist, ordered from least to most ready.

    Each stage presupposes every earlier stage. ``WHITELISTED`` is the only
    state that needs no remediation.
    """

    UNSUPPORTED = 0
    UNINSTALLED = 1
    INSTALLED = 2
    RUNNING = 3
    REACHABLE = 4
    AUTHENTICATED = 5
    WHITELISTED = 6

    def __str__(self) -> str:
        return self.name

    @property
    def is_ready(self) -> bool:
        return self is LifecycleState.WHITELISTED

    @property
    def remediation(self) -> RemediationKind | None:
        """The remediation offered for this state, or ``None`` when there is none."""

        from .remediation import RemediationKind

        return {
            LifecycleState.UNINSTALLED: RemediationKind.INSTALL,
            LifecycleState.INSTALLED: RemediationKind.LAUNCH,
            LifecycleState.REACHABLE: RemediationKind.AUTHENTICATE,
            LifecycleState.AUTHENTICATED: RemediationKind.WHITELIST,
        }.get(self)

    @classmethod
    def coerce(cls, value: Any) -> LifecycleState:
        """Return the member for ``value`` (a member, a name, or an integer rank)."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown lifecycle state {value!r}") from None
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Unknown lifecycle state rank {value!r}") from None
        raise ValueError(f"Cannot interpret {value!r} as a lifecycle state")
