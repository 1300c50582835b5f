"""User-facing copy for readiness notifications."""

from __future__ import annotations

from dataclasses import dataclass

from .remediation import RemediationKind

__all__ = [
    "NoticeCopy",
    "NOT_SUPPORTED",
    "NOT_INSTALLED",
    "NOT_RUNNING",
    "NOT_REACHABLE",
    "NOT_AUTHENTICATED",
    "RETRY_LABEL",
    "not_whitelisted",
    "failure_title",
]

RETRY_LABEL = "Retry"
_WARNING_ICON = "circle-slash"


@dataclass(slots=True, frozen=True)
class NoticeCopy:
    title: str
    description: str
    icon: str | None = _WARNING_ICON
    button: str | None = None


NOT_SUPPORTED = NoticeCopy(
    title="The Kite autocomplete daemon is not supported on this platform",
    description="Kite is currently only supported on macOS.",
)

NOT_INSTALLED = NoticeCopy(
    title="The Kite autocomplete daemon is not installed",
    description="In order to provide completions the Kite daemon needs to be installed.",
    button="Install Kite",
)

NOT_RUNNING = NoticeCopy(
    title="The Kite autocomplete daemon is not running",
    description="In order to provide completions the Kite daemon needs to be running.",
    button="Start Kite",
)

NOT_REACHABLE = NoticeCopy(
    title="The Kite autocomplete daemon is running but not reachable",
    description="Try killing Kite from Activity Monitor.",
    icon=None,
)

NOT_AUTHENTICATED = NoticeCopy(
    title="You need to log in to the Kite autocomplete daemon",
    description=(
        "In order to provide completions the Kite daemon needs to be authenticated "
        "(so that it can access the index of your code stored on the cloud)."
    ),
    button="Login",
)


def not_whitelisted(filepath: str, directory: str) -> NoticeCopy:
    return NoticeCopy(
        title=f"Kite completions are not enabled for {filepath}",
        description=(
            "Kite only processes files in enabled directories. If you enable Kite then "
            "files in this directory will be synced to the Kite backend, where they will "
            "be analyzed and indexed."
        ),
        button=f"Enable Kite for {directory}",
    )


_FAILURE_TITLES = {
    RemediationKind.INSTALL: "Unable to install Kite",
    RemediationKind.LAUNCH: "Unable to start Kite autocomplete daemon",
    RemediationKind.AUTHENTICATE: "Unable to login",
}


def failure_title(kind: RemediationKind, directory: str | None = None) -> str:
    if kind is RemediationKind.WHITELIST:
        return f"Unable to enable Kite for {directory}"
    return _FAILURE_TITLES[kind]
