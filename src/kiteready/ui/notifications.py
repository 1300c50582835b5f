"""Notification handles and a notification center with optional Qt widgets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol, Sequence

try:  # pragma: no cover - Qt imports are optional during tests
    from PySide6.QtWidgets import QFrame, QHBoxLayout, QLabel, QPushButton, QVBoxLayout
except Exception:  # pragma: no cover - PySide6 not available
    QFrame = None  # type: ignore[assignment]
    QHBoxLayout = None  # type: ignore[assignment]
    QLabel = None  # type: ignore[assignment]
    QPushButton = None  # type: ignore[assignment]
    QVBoxLayout = None  # type: ignore[assignment]

LOGGER = logging.getLogger(__name__)

__all__ = [
    "Severity",
    "NotificationButton",
    "Notification",
    "Notifier",
    "NotificationCenter",
]


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class NotificationButton:
    text: str
    on_click: Callable[[], None]


class Notification:
    """Handle for one presented notification.

    Dismissal callbacks fire exactly once. Registering a callback after the
    notification was dismissed runs it immediately. Clicking a button never
    dismisses on its own.
    """

    def __init__(
        self,
        title: str,
        *,
        severity: Severity,
        description: str = "",
        icon: str | None = None,
        dismissable: bool = True,
        buttons: Sequence[NotificationButton] = (),
    ) -> None:
        self.title = title
        self.severity = severity
        self.description = description
        self.icon = icon
        self.dismissable = dismissable
        self.buttons: tuple[NotificationButton, ...] = tuple(buttons)
        self._dismissed = False
        self._dismiss_callbacks: list[Callable[[], None]] = []

    def __repr__(self) -> str:
        return f"Notification({self.severity.value}, {self.title!r}, buttons={self.button_labels})"

    @property
    def dismissed(self) -> bool:
        return self._dismissed

    @property
    def button_labels(self) -> list[str]:
        return [button.text for button in self.buttons]

    def on_dismiss(self, callback: Callable[[], None]) -> None:
        if self._dismissed:
            _invoke(callback, "dismiss callback")
            return
        self._dismiss_callbacks.append(callback)

    def dismiss(self) -> None:
        if self._dismissed:
            return
        self._dismissed = True
        callbacks, self._dismiss_callbacks = self._dismiss_callbacks, []
        for callback in callbacks:
            _invoke(callback, "dismiss callback")

    def click(self, text: str) -> None:
        """Simulate a click on the button labelled ``text``."""

        for button in self.buttons:
            if button.text == text:
                _invoke(button.on_click, f"button {text!r}")
                return
        raise KeyError(f"{self!r} has no button labelled {text!r}")


class Notifier(Protocol):
    def show_error(
        self,
        title: str,
        *,
        description: str = "",
        dismissable: bool = True,
        buttons: Sequence[NotificationButton] = (),
        icon: str | None = None,
    ) -> Notification:  # pragma: no cover - protocol stub
        ...

    def show_warning(
        self,
        title: str,
        *,
        description: str = "",
        icon: str | None = None,
        dismissable: bool = True,
        buttons: Sequence[NotificationButton] = (),
    ) -> Notification:  # pragma: no cover - protocol stub
        ...


class NotificationCenter:
    """Headless notifier that can also render into a Qt container.

    Without Qt (or before :meth:`install`) notifications are only tracked in
    :attr:`active` and :attr:`history`, which is what tests and the CLI use.
    """

    def __init__(self) -> None:
        self.history: list[Notification] = []
        self._active: list[Notification] = []
        self._layout: Any = None
        self._widgets: dict[int, Any] = {}

    @property
    def active(self) -> list[Notification]:
        return list(self._active)

    def actionable(self) -> list[Notification]:
        return [notification for notification in self._active if notification.buttons]

    def install(self, container: Any | None) -> None:
        """Render subsequent notifications inside ``container`` (a QWidget)."""

        if container is None or QVBoxLayout is None:
            return
        try:
            layout = container.layout() or QVBoxLayout(container)
        except Exception:
            LOGGER.debug("NotificationCenter.install: container has no usable layout", exc_info=True)
            return
        self._layout = layout

    def show_error(
        self,
        title: str,
        *,
        description: str = "",
        dismissable: bool = True,
        buttons: Sequence[NotificationButton] = (),
        icon: str | None = None,
    ) -> Notification:
        return self._present(
            Notification(
                title,
                severity=Severity.ERROR,
                description=description,
                icon=icon,
                dismissable=dismissable,
                buttons=buttons,
            )
        )

    def show_warning(
        self,
        title: str,
        *,
        description: str = "",
        icon: str | None = None,
        dismissable: bool = True,
        buttons: Sequence[NotificationButton] = (),
    ) -> Notification:
        return self._present(
            Notification(
                title,
                severity=Severity.WARNING,
                description=description,
                icon=icon,
                dismissable=dismissable,
                buttons=buttons,
            )
        )

    def dismiss_all(self) -> None:
        for notification in self.active:
            notification.dismiss()

    def _present(self, notification: Notification) -> Notification:
        LOGGER.debug("Presenting %r", notification)
        self.history.append(notification)
        self._active.append(notification)
        notification.on_dismiss(lambda: self._forget(notification))
        self._render(notification)
        return notification

    def _forget(self, notification: Notification) -> None:
        if notification in self._active:
            self._active.remove(notification)
        widget = self._widgets.pop(id(notification), None)
        if widget is not None:
            try:
                widget.deleteLater()
            except Exception:  # pragma: no cover - widget already destroyed
                LOGGER.debug("Failed to remove notification widget", exc_info=True)

    def _render(self, notification: Notification) -> None:
        if self._layout is None or QFrame is None or QLabel is None or QPushButton is None:
            return
        try:
            frame = QFrame()
            frame.setObjectName(f"kr-notification-{notification.severity.value}")
            body = QVBoxLayout(frame)
            title = QLabel(notification.title)
            title.setObjectName("kr-notification-title")
            title.setWordWrap(True)
            body.addWidget(title)
            if notification.description:
                detail = QLabel(notification.description)
                detail.setWordWrap(True)
                body.addWidget(detail)
            row = QHBoxLayout()
            for button in notification.buttons:
                push = QPushButton(button.text)
                push.clicked.connect(lambda _checked=False, b=button: notification.click(b.text))  # type: ignore[attr-defined]
                row.addWidget(push)
            if notification.dismissable:
                close = QPushButton("Dismiss")
                close.clicked.connect(lambda _checked=False: notification.dismiss())  # type: ignore[attr-defined]
                row.addWidget(close)
            body.addLayout(row)
            self._layout.addWidget(frame)
        except Exception:
            LOGGER.debug("Failed to render notification %r", notification, exc_info=True)
            return
        self._widgets[id(notification)] = frame


def _invoke(callback: Callable[[], None], label: str) -> None:
    try:
        callback()
    except Exception:
        LOGGER.exception("Notification %s raised", label)
