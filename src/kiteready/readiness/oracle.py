"""Interface to the component that inspects and repairs the daemon."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .states import LifecycleState

__all__ = ["StatusOracle", "OracleError"]


class OracleError(Exception):
    """Failure raised by oracle implementations, carrying a diagnostic payload."""

    def __init__(self, payload: Any, message: str | None = None) -> None:
        super().__init__(message or str(payload))
        self.payload = payload


@runtime_checkable
class StatusOracle(Protocol):
    """Reports the daemon's lifecycle state and performs remediations.

    The oracle owns the daemon connection and any platform specifics. Every
    remediation raises on failure; success does not imply a state change, so
    callers re-query afterwards. ``run_daemon`` in particular may return
    before the daemon answers queries.
    """

    async def query_state(self, path: str | None) -> LifecycleState:  # pragma: no cover - protocol stub
        ...

    async def install_daemon(self) -> None:  # pragma: no cover - protocol stub
        ...

    async def run_daemon(self) -> None:  # pragma: no cover - protocol stub
        ...

    async def authenticate_user(self, email: str, password: str) -> None:  # pragma: no cover - protocol stub
        ...

    async def enable_directory(self, path: str) -> None:  # pragma: no cover - protocol stub
        ...
