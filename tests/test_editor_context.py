"""Tests for resolving the active editor file."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable

from kiteready.editor.context import StaticEditorContext, WorkspaceEditorContext, active_file_path


class _Workspace:
    def __init__(self, tab: Any | None = None) -> None:
        self.active_tab = tab
        self._listeners: list[Callable[[Any], None]] = []

    def add_active_listener(self, listener: Callable[[Any], None]) -> None:
        self._listeners.append(listener)

    def activate(self, tab: Any | None) -> None:
        self.active_tab = tab
        for listener in self._listeners:
            listener(tab)


def test_static_context_returns_string_path(tmp_path: Path) -> None:
    context = StaticEditorContext(tmp_path / "main.py")

    assert context.get_active_file_path() == str(tmp_path / "main.py")


def test_static_context_without_file() -> None:
    assert StaticEditorContext().get_active_file_path() is None


def test_active_file_path_handles_unsaved_items() -> None:
    assert active_file_path(None) is None
    assert active_file_path(SimpleNamespace(path=None)) is None
    assert active_file_path(SimpleNamespace()) is None
    assert active_file_path(SimpleNamespace(path=Path("/src/app.py"))) == str(Path("/src/app.py"))


def test_workspace_context_reads_active_tab() -> None:
    workspace = _Workspace(SimpleNamespace(path="/src/app.py"))
    context = WorkspaceEditorContext(workspace)

    assert context.get_active_file_path() == "/src/app.py"

    workspace.active_tab = None
    assert context.get_active_file_path() is None


def test_workspace_context_watch_reports_tab_switches() -> None:
    workspace = _Workspace()
    context = WorkspaceEditorContext(workspace)
    seen: list[str | None] = []

    assert context.watch(seen.append) is True
    workspace.activate(SimpleNamespace(path="/src/a.py"))
    workspace.activate(SimpleNamespace(path=None))

    assert seen == ["/src/a.py", None]


def test_watch_without_listener_hook() -> None:
    context = WorkspaceEditorContext(SimpleNamespace(active_tab=None))

    assert context.watch(lambda path: None) is False
