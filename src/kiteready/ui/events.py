"""Typed event bus used to broadcast readiness progress to host UI.

The readiness controller publishes these events when a bus is supplied so a
status bar or panel can follow the workflow without holding a reference to
the controller itself.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar
from weakref import WeakMethod

from ..readiness.remediation import RemediationKind
from ..readiness.states import LifecycleState

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for readiness events."""


@dataclass(slots=True)
class ReadinessChecked(Event):
    """Emitted after the oracle reported a lifecycle state.

    Attributes:
        state: The state the oracle reported.
        path: The active file the check ran against, if any.
    """

    state: LifecycleState
    path: str | None = None


@dataclass(slots=True)
class ReadinessCheckFailed(Event):
    """Emitted when the oracle could not determine a state."""

    error: str


@dataclass(slots=True)
class RemediationStarted(Event):
    """Emitted when a remediation attempt is submitted to the oracle."""

    kind: RemediationKind
    attempt: int
    directory: str | None = None


@dataclass(slots=True)
class RemediationSucceeded(Event):
    kind: RemediationKind
    attempt: int
    directory: str | None = None


@dataclass(slots=True)
class RemediationFailed(Event):
    """Emitted when the oracle rejected a remediation attempt.

    Attributes:
        error: Serialized failure cause, as shown in the notification.
    """

    kind: RemediationKind
    attempt: int
    error: str
    directory: str | None = None


class EventBus(Generic[E]):
    """Publish-subscribe bus keyed by event class.

    Bound methods are held weakly so a widget that goes away stops receiving
    events; plain functions and lambdas are held strongly. Not thread-safe:
    publish from the event loop thread.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: defaultdict[type, list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: E) -> None:
        """Invoke handlers for ``type(event)`` in registration order.

        A handler that raises is logged and the remaining handlers still run.
        """

        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        live: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                continue
            live.append(handler_ref)
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised while handling %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
        if len(live) != len(handlers):
            self._handlers[event_type] = [ref for ref in handlers if ref.resolve() is not None]

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    __slots__ = ("_target", "_weak")

    def __init__(self, target: object, weak: bool) -> None:
        self._target = target
        self._weak = weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), weak=True)  # type: ignore[arg-type]
            except TypeError:
                pass
        return cls(handler, weak=False)

    def resolve(self) -> Handler | None:
        if self._weak:
            return self._target()  # type: ignore[operator]
        return self._target  # type: ignore[return-value]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "ReadinessChecked",
    "ReadinessCheckFailed",
    "RemediationStarted",
    "RemediationSucceeded",
    "RemediationFailed",
]
