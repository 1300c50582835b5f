"""Readiness controller: maps daemon lifecycle states to user remediations.

``ensure()`` asks the oracle where the daemon is in its lifecycle and shows
one notification describing the problem. Buttons on those notifications start
remediations; a remediation that succeeds leads back to ``ensure()`` (after a
settling delay for launches), while one that fails shows an error with a
"Retry" button that re-submits the identical request.

Nothing here raises into the caller. Oracle failures become notifications or
telemetry, and button clicks are turned into background tasks tracked by the
controller (see :meth:`ReadinessController.wait_idle`).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Coroutine

from ..editor.context import EditorContext
from ..services.settings import DEFAULT_SETTLE_DELAY, Settings, redact_secret
from ..ui.events import (
    Event,
    EventBus,
    ReadinessChecked,
    ReadinessCheckFailed,
    RemediationFailed,
    RemediationStarted,
    RemediationSucceeded,
)
from ..ui.notifications import Notification, NotificationButton, Notifier, Severity
from ..utils.telemetry import TelemetryClient, TelemetrySink
from . import messages
from .messages import NoticeCopy
from .oracle import StatusOracle
from .remediation import (
    Credentials,
    RemediationKind,
    RemediationOutcome,
    RemediationRequest,
    describe_error,
)
from .states import LifecycleState

__all__ = ["ReadinessController", "CredentialsProvider"]

LOGGER = logging.getLogger(__name__)

CredentialsProvider = Callable[[], Awaitable[Credentials | None]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class _Topic:
    """Telemetry vocabulary for one remediation kind."""

    activity: str

    def started(self) -> str:
        return f"{self.activity} started"

    def succeeded(self) -> str:
        return f"{self.activity} succeeded"

    def failed(self) -> str:
        return f"{self.activity} failed"

    def retry_clicked(self) -> str:
        return f"retry button clicked (via {self.activity} error)"

    def error_dismissed(self) -> str:
        return f"{self.activity} error dismissed"


_TOPICS: dict[RemediationKind, _Topic] = {
    RemediationKind.INSTALL: _Topic("download-and-install"),
    RemediationKind.LAUNCH: _Topic("launch"),
    RemediationKind.AUTHENTICATE: _Topic("authentication"),
    RemediationKind.WHITELIST: _Topic("whitelisting"),
}


@dataclass(slots=True, frozen=True)
class _Notice:
    """Notification copy plus the telemetry names it reports under."""

    copy: NoticeCopy
    topic: str
    clicked: str | None = None


# States the user cannot fix from the editor.
_BLOCKED: dict[LifecycleState, _Notice] = {
    LifecycleState.UNSUPPORTED: _Notice(messages.NOT_SUPPORTED, "not-supported warning"),
    LifecycleState.RUNNING: _Notice(messages.NOT_REACHABLE, "not-reachable warning"),
}

_OFFERS: dict[RemediationKind, _Notice] = {
    RemediationKind.INSTALL: _Notice(
        messages.NOT_INSTALLED,
        "not-installed warning",
        "install button clicked (via not-installed warning)",
    ),
    RemediationKind.LAUNCH: _Notice(
        messages.NOT_RUNNING,
        "not-running warning",
        "start button clicked (via not-running warning)",
    ),
    RemediationKind.AUTHENTICATE: _Notice(
        messages.NOT_AUTHENTICATED,
        "not-authenticated warning",
        "login button clicked (via not-authenticated warning)",
    ),
}


class ReadinessController:
    """Drives the daemon from whatever state it is in towards ``WHITELISTED``."""

    def __init__(
        self,
        *,
        oracle: StatusOracle,
        notifier: Notifier,
        telemetry: TelemetrySink | None = None,
        editor: EditorContext | None = None,
        credentials_provider: CredentialsProvider | None = None,
        event_bus: EventBus[Event] | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._oracle = oracle
        self._notifier = notifier
        if telemetry is None:
            telemetry = TelemetryClient(enabled=False)
        self._telemetry: TelemetrySink = telemetry
        self._editor = editor
        self._credentials_provider = credentials_provider
        self._event_bus = event_bus
        self._settle_delay = max(0.0, float(settle_delay))
        self._sleep = sleep
        self._tasks: set[asyncio.Task[Any]] = set()
        self.last_state: LifecycleState | None = None

    @classmethod
    def from_settings(cls, settings: Settings, **collaborators: Any) -> ReadinessController:
        return cls(settle_delay=settings.settle_delay_seconds, **collaborators)

    @property
    def settle_delay(self) -> float:
        return self._settle_delay

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Checking
    # ------------------------------------------------------------------
    def current_path(self) -> str | None:
        if self._editor is None:
            return None
        try:
            return self._editor.get_active_file_path()
        except Exception:
            LOGGER.debug("Editor context lookup failed; checking without a file", exc_info=True)
            return None

    async def ensure(self) -> LifecycleState | None:
        """Check the daemon once and present the matching notification.

        Returns the observed state, or ``None`` when the oracle could not
        determine one. Concurrent calls are not coalesced.
        """

        path = self.current_path()
        try:
            state = LifecycleState.coerce(await self._oracle.query_state(path))
        except Exception as exc:
            error = describe_error(exc)
            LOGGER.warning("Readiness check failed: %s", error)
            self._track("handleState failed", error=error)
            self._publish(ReadinessCheckFailed(error=error))
            return None

        LOGGER.debug("Daemon state for %s: %s", path or "<no file>", state)
        self.last_state = state
        self._publish(ReadinessChecked(state=state, path=path))
        self._dispatch(state, path)
        return state

    def _dispatch(self, state: LifecycleState, path: str | None) -> None:
        if state.is_ready:
            self._track("kite is ready")
            return
        kind = state.remediation
        if kind is None:
            notice = _BLOCKED[state]
            self._present(notice.copy, notice.topic, severity=Severity.ERROR)
        elif kind is RemediationKind.WHITELIST:
            if path is None:
                # Nothing to enable without a file; the daemon itself is healthy.
                self._track("not-whitelisted warning skipped")
                return
            directory = str(Path(path).parent)
            self._present(
                messages.not_whitelisted(path, directory),
                "not-whitelisted warning",
                clicked="enable button clicked (via not-whitelisted warning)",
                action=lambda: self.whitelist(directory),
                dir=directory,
            )
        else:
            notice = _OFFERS[kind]
            actions: dict[RemediationKind, Callable[[], Coroutine[Any, Any, Any]]] = {
                RemediationKind.INSTALL: self.install,
                RemediationKind.LAUNCH: self.launch,
                RemediationKind.AUTHENTICATE: self.authenticate,
            }
            self._present(notice.copy, notice.topic, clicked=notice.clicked, action=actions[kind])

    def _present(
        self,
        copy: NoticeCopy,
        topic: str,
        *,
        severity: Severity = Severity.WARNING,
        clicked: str | None = None,
        action: Callable[[], Coroutine[Any, Any, Any]] | None = None,
        **attributes: Any,
    ) -> Notification | None:
        buttons: list[NotificationButton] = []
        if copy.button and action is not None:

            def on_click() -> None:
                if clicked:
                    self._track(clicked, **attributes)
                notification.dismiss()
                self._spawn(action())

            buttons.append(NotificationButton(copy.button, on_click))

        try:
            if severity is Severity.ERROR:
                notification = self._notifier.show_error(
                    copy.title,
                    description=copy.description,
                    dismissable=True,
                    buttons=buttons,
                    icon=copy.icon,
                )
            else:
                notification = self._notifier.show_warning(
                    copy.title,
                    description=copy.description,
                    icon=copy.icon,
                    dismissable=True,
                    buttons=buttons,
                )
            notification.on_dismiss(lambda: self._track(f"{topic} dismissed", **attributes))
        except Exception:
            LOGGER.exception("Notifier failed to show %r", copy.title)
            self._track(f"{topic} failed to show", **attributes)
            return None
        self._track(f"{topic} shown", **attributes)
        return notification

    # ------------------------------------------------------------------
    # Remediations
    # ------------------------------------------------------------------
    async def install(self) -> RemediationOutcome:
        """Install the daemon; on success launch it without re-checking first."""

        return await self._drive(RemediationRequest(RemediationKind.INSTALL))

    async def launch(self) -> RemediationOutcome:
        """Start the daemon; on success wait the settling delay, then re-check."""

        return await self._drive(RemediationRequest(RemediationKind.LAUNCH))

    async def authenticate(self, credentials: Credentials | None = None) -> RemediationOutcome | None:
        """Log in, prompting through the credentials provider when none are given.

        Returns ``None`` when no credentials could be obtained.
        """

        if credentials is None:
            credentials = await self._request_credentials()
            if credentials is None:
                self._track("authentication cancelled")
                return None
        return await self._drive(RemediationRequest(RemediationKind.AUTHENTICATE, credentials=credentials))

    async def whitelist(self, directory: str) -> RemediationOutcome | None:
        """Enable the daemon for ``directory``; on success re-check.

        Returns ``None`` without contacting the oracle when ``directory`` is empty.
        """

        if not directory:
            LOGGER.warning("Cannot enable Kite without a directory")
            self._track("whitelisting skipped")
            return None
        return await self._drive(RemediationRequest(RemediationKind.WHITELIST, directory=directory))

    async def _request_credentials(self) -> Credentials | None:
        if self._credentials_provider is None:
            LOGGER.warning("No login flow configured; cannot authenticate")
            return None
        try:
            return await self._credentials_provider()
        except Exception:
            LOGGER.exception("Login flow failed")
            return None

    async def _drive(self, request: RemediationRequest) -> RemediationOutcome:
        """Run ``request`` and the steps that follow from it.

        Installing leads straight into launching; every other success ends in
        a fresh ``ensure()``. A failure stops the chain and offers a retry,
        which starts a new drive rather than recursing.
        """

        outcome = await self._attempt(request)
        step: RemediationRequest | None = request
        current = outcome
        while step is not None:
            if not current.succeeded:
                self._offer_retry(current)
                break
            step = await self._advance(step)
            if step is not None:
                current = await self._attempt(step)
        return outcome

    async def _advance(self, request: RemediationRequest) -> RemediationRequest | None:
        if request.kind is RemediationKind.INSTALL:
            return RemediationRequest(RemediationKind.LAUNCH)
        if request.kind is RemediationKind.LAUNCH:
            await self._sleep(self._settle_delay)
            self._track(_TOPICS[request.kind].succeeded())
        await self.ensure()
        return None

    async def _attempt(self, request: RemediationRequest) -> RemediationOutcome:
        topic = _TOPICS[request.kind]
        attributes = _request_attributes(request)
        LOGGER.info("Starting %s (attempt %d)", request.kind, request.attempt)
        self._track(topic.started(), **attributes)
        self._publish(
            RemediationStarted(kind=request.kind, attempt=request.attempt, directory=request.directory)
        )
        try:
            await self._invoke_oracle(request)
        except Exception as exc:
            outcome = RemediationOutcome(request, error=exc)
            error = outcome.describe_error() or ""
            LOGGER.warning("%s attempt %d failed: %s", request.kind, request.attempt, error)
            self._track(topic.failed(), error=error, **attributes)
            self._publish(
                RemediationFailed(
                    kind=request.kind,
                    attempt=request.attempt,
                    error=error,
                    directory=request.directory,
                )
            )
            return outcome

        # Launch success is only reported once the settling delay has passed.
        if request.kind is not RemediationKind.LAUNCH:
            self._track(topic.succeeded(), **attributes)
        self._publish(
            RemediationSucceeded(kind=request.kind, attempt=request.attempt, directory=request.directory)
        )
        return RemediationOutcome(request)

    async def _invoke_oracle(self, request: RemediationRequest) -> None:
        if request.kind is RemediationKind.INSTALL:
            await self._oracle.install_daemon()
        elif request.kind is RemediationKind.LAUNCH:
            await self._oracle.run_daemon()
        elif request.kind is RemediationKind.AUTHENTICATE:
            assert request.credentials is not None
            LOGGER.debug("Logging in as %s", redact_secret(request.credentials.email))
            await self._oracle.authenticate_user(request.credentials.email, request.credentials.password)
        else:
            assert request.directory is not None
            await self._oracle.enable_directory(request.directory)

    def _offer_retry(self, outcome: RemediationOutcome) -> Notification | None:
        request = outcome.request
        topic = _TOPICS[request.kind]
        attributes = _request_attributes(request)

        def on_retry() -> None:
            self._track(topic.retry_clicked(), **attributes)
            notification.dismiss()
            self._spawn(self._drive(request.retry()))

        title = messages.failure_title(request.kind, request.directory)
        try:
            notification = self._notifier.show_error(
                title,
                description=outcome.describe_error() or "",
                dismissable=True,
                buttons=[NotificationButton(messages.RETRY_LABEL, on_retry)],
            )
            notification.on_dismiss(lambda: self._track(topic.error_dismissed(), **attributes))
        except Exception:
            LOGGER.exception("Notifier failed to show %r", title)
            return None
        return notification

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------
    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_finished)
        return task

    def _on_task_finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("Readiness task failed", exc_info=error)

    async def wait_idle(self) -> None:
        """Wait for every remediation started from a button click to finish.

        Must not be awaited from inside one of those tasks.
        """

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------
    def _track(self, name: str, **attributes: Any) -> None:
        try:
            self._telemetry.record(name, attributes or None)
        except Exception:
            LOGGER.debug("Telemetry sink rejected %r", name, exc_info=True)

    def _publish(self, event: Event) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event)


def _request_attributes(request: RemediationRequest) -> dict[str, Any]:
    if request.directory is None:
        return {}
    return {"dir": request.directory}
