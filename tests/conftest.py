"""Shared pytest fixtures: a scripted oracle plus in-memory notifier and telemetry."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Iterable

import pytest

from kiteready.readiness.controller import ReadinessController
from kiteready.readiness.oracle import OracleError
from kiteready.readiness.states import LifecycleState
from kiteready.ui.events import Event, EventBus
from kiteready.ui.notifications import NotificationCenter
from kiteready.utils.telemetry import InMemoryTelemetrySink


class ScriptedOracle:
    """Oracle double that replays a script of states and queued failures.

    ``states`` are returned in order; the last one repeats forever. Failures
    queued with :meth:`fail_next` are raised by the next call to that method.
    """

    def __init__(self, states: Iterable[LifecycleState] = (LifecycleState.WHITELISTED,)) -> None:
        self.states: list[Any] = list(states)
        self.calls: list[tuple[Any, ...]] = []
        self._failures: defaultdict[str, list[BaseException]] = defaultdict(list)

    def script(self, *states: Any) -> None:
        self.states = list(states)

    def fail_next(self, method: str, error: BaseException | Any) -> None:
        if not isinstance(error, BaseException):
            error = OracleError(error)
        self._failures[method].append(error)

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def methods(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def query_state(self, path: str | None) -> Any:
        self.calls.append(("query_state", path))
        self._raise_pending("query_state")
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]

    async def install_daemon(self) -> None:
        self.calls.append(("install_daemon",))
        self._raise_pending("install_daemon")

    async def run_daemon(self) -> None:
        self.calls.append(("run_daemon",))
        self._raise_pending("run_daemon")

    async def authenticate_user(self, email: str, password: str) -> None:
        self.calls.append(("authenticate_user", email, password))
        self._raise_pending("authenticate_user")

    async def enable_directory(self, path: str) -> None:
        self.calls.append(("enable_directory", path))
        self._raise_pending("enable_directory")

    def _raise_pending(self, method: str) -> None:
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that notes how far the oracle had got."""

    def __init__(self, oracle: ScriptedOracle) -> None:
        self._oracle = oracle
        self.delays: list[float] = []
        self.queries_at_sleep: list[int] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.queries_at_sleep.append(self._oracle.count("query_state"))


class StaticContext:
    def __init__(self, path: str | None) -> None:
        self.path = path

    def get_active_file_path(self) -> str | None:
        return self.path


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def notifier() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture
def telemetry() -> InMemoryTelemetrySink:
    return InMemoryTelemetrySink()


@pytest.fixture
def sleep(oracle: ScriptedOracle) -> RecordingSleep:
    return RecordingSleep(oracle)


@pytest.fixture
def editor() -> StaticContext:
    return StaticContext("/work/project/main.py")


@pytest.fixture
def bus() -> EventBus[Event]:
    return EventBus()


@pytest.fixture
def make_controller(
    oracle: ScriptedOracle,
    notifier: NotificationCenter,
    telemetry: InMemoryTelemetrySink,
    sleep: RecordingSleep,
    editor: StaticContext,
    bus: EventBus[Event],
) -> Callable[..., ReadinessController]:
    def factory(**overrides: Any) -> ReadinessController:
        options: dict[str, Any] = {
            "oracle": oracle,
            "notifier": notifier,
            "telemetry": telemetry,
            "editor": editor,
            "event_bus": bus,
            "settle_delay": 5.0,
            "sleep": sleep,
        }
        options.update(overrides)
        return ReadinessController(**options)

    return factory


@pytest.fixture
def controller(make_controller: Callable[..., ReadinessController]) -> ReadinessController:
    return make_controller()
