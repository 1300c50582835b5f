"""Tests for :mod:`kiteready.ui.notifications`."""

from __future__ import annotations

import pytest

from kiteready.ui.notifications import NotificationButton, NotificationCenter, Severity


def test_show_warning_tracks_active_and_history() -> None:
    center = NotificationCenter()

    notification = center.show_warning("Heads up", description="details", icon="circle-slash")

    assert notification.severity is Severity.WARNING
    assert notification.icon == "circle-slash"
    assert center.active == [notification]
    assert center.history == [notification]


def test_dismiss_removes_from_active_but_keeps_history() -> None:
    center = NotificationCenter()
    notification = center.show_error("Broken")

    notification.dismiss()

    assert notification.dismissed
    assert center.active == []
    assert center.history == [notification]


def test_dismiss_callbacks_fire_exactly_once() -> None:
    center = NotificationCenter()
    notification = center.show_error("Broken")
    calls: list[str] = []
    notification.on_dismiss(lambda: calls.append("first"))
    notification.on_dismiss(lambda: calls.append("second"))

    notification.dismiss()
    notification.dismiss()

    assert calls == ["first", "second"]


def test_late_dismiss_callback_runs_immediately() -> None:
    notification = NotificationCenter().show_warning("Late")
    notification.dismiss()
    calls: list[int] = []

    notification.on_dismiss(lambda: calls.append(1))

    assert calls == [1]


def test_click_invokes_button_without_dismissing() -> None:
    clicks: list[str] = []
    center = NotificationCenter()
    notification = center.show_warning(
        "Choose", buttons=[NotificationButton("Go", lambda: clicks.append("go"))]
    )

    notification.click("Go")

    assert clicks == ["go"]
    assert not notification.dismissed
    assert center.actionable() == [notification]


def test_click_unknown_button_raises_key_error() -> None:
    notification = NotificationCenter().show_warning("Choose")

    with pytest.raises(KeyError):
        notification.click("Nope")


def test_failing_callbacks_are_contained(caplog: pytest.LogCaptureFixture) -> None:
    def explode() -> None:
        raise RuntimeError("handler bug")

    notification = NotificationCenter().show_error("Oops", buttons=[NotificationButton("Retry", explode)])
    notification.on_dismiss(explode)

    notification.click("Retry")
    notification.dismiss()

    assert notification.dismissed
    assert "handler bug" in caplog.text


def test_dismiss_all_clears_active() -> None:
    center = NotificationCenter()
    center.show_warning("one")
    center.show_error("two")

    center.dismiss_all()

    assert center.active == []
    assert len(center.history) == 2


def test_install_without_container_stays_headless() -> None:
    center = NotificationCenter()
    center.install(None)

    notification = center.show_warning("Headless")

    assert center.active == [notification]
