"""Resolution of the file the user is currently editing."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Protocol

__all__ = [
    "EditorContext",
    "StaticEditorContext",
    "WorkspaceEditorContext",
    "active_file_path",
]


class EditorContext(Protocol):
    def get_active_file_path(self) -> str | None:  # pragma: no cover - protocol stub
        ...


class StaticEditorContext:
    """Editor context with an explicitly set file; used by the CLI and tests."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = path

    def get_active_file_path(self) -> str | None:
        if self.path is None:
            return None
        return str(Path(self.path).expanduser())


class WorkspaceEditorContext:
    """Reads the active tab of a document workspace.

    ``workspace`` is duck-typed: anything exposing ``active_tab`` (whose
    ``path`` may be ``None`` for unsaved documents) works, and an optional
    ``add_active_listener`` hook lets the host re-run checks on tab switches.
    """

    def __init__(self, workspace: Any) -> None:
        self._workspace = workspace

    def get_active_file_path(self) -> str | None:
        return active_file_path(getattr(self._workspace, "active_tab", None))

    def watch(self, callback: Callable[[str | None], None]) -> bool:
        """Call ``callback`` with the new active path on every tab switch."""

        add_listener = getattr(self._workspace, "add_active_listener", None)
        if add_listener is None:
            return False
        add_listener(lambda tab: callback(active_file_path(tab)))
        return True


def active_file_path(item: Any | None) -> str | None:
    """Return the backing file of an editor item, or ``None`` if it has none."""

    if item is None:
        return None
    path = getattr(item, "path", None)
    if path is None:
        return None
    return str(path)
