"""Command-line entry point that runs the readiness check outside an editor."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import importlib
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Sequence, TextIO, get_args, get_origin, get_type_hints

from .editor.context import StaticEditorContext
from .readiness.controller import ReadinessController
from .readiness.oracle import StatusOracle
from .readiness.remediation import Credentials
from .readiness.states import LifecycleState
from .services.settings import Settings, SettingsStore
from .ui.notifications import Notification, NotificationCenter
from .utils import logging as logging_utils
from .utils.telemetry import TelemetryClient, telemetry_enabled

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_SKIP = "skip"

Prompt = Callable[[str], str]


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    logging_utils.setup_logging(debug, force=force)
    _LOGGER.debug("Logging configured (debug=%s)", debug)


def load_settings(
    path: Path | None = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def load_oracle(spec: str) -> StatusOracle:
    """Import ``module:attribute`` and return the oracle it names.

    A class or factory function is called without arguments; anything else is
    used as-is.
    """

    module_name, sep, attribute = spec.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Oracle '{spec}' must use module:attribute syntax.")
    target = getattr(importlib.import_module(module_name), attribute)
    if isinstance(target, type) or (callable(target) and not isinstance(target, StatusOracle)):
        oracle = target()
    else:
        oracle = target
    if not isinstance(oracle, StatusOracle):
        raise TypeError(f"{spec} does not provide a status oracle")
    return oracle


async def run_check(
    controller: ReadinessController,
    center: NotificationCenter,
    *,
    interactive: bool = False,
    prompt: Prompt = input,
    stream: TextIO | None = None,
) -> LifecycleState | None:
    """Run one check, then keep offering buttons until nothing is actionable."""

    destination = stream or sys.stdout
    echoed = 0
    await controller.ensure()
    while True:
        await controller.wait_idle()
        for notification in center.history[echoed:]:
            _echo(notification, destination)
        echoed = len(center.history)
        if not interactive:
            break
        actionable = center.actionable()
        if not actionable:
            break
        notification = actionable[-1]
        labels = notification.button_labels
        question = f"{notification.title} [{' / '.join([*labels, _SKIP])}]: "
        choice = (await asyncio.to_thread(prompt, question)).strip()
        if choice not in labels:
            notification.dismiss()
            continue
        notification.click(choice)
    return controller.last_state


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the ``kiteready`` console script."""

    args = _parse_cli_args(argv)
    debug = _env_flag("KITEREADY_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("KITEREADY_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    settings = load_settings(resolved_path, store=store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, store, overrides=cli_overrides)
        return

    if settings.debug_logging and not debug:
        logging_utils.set_debug(True)

    oracle_spec = args.oracle or settings.oracle
    if not oracle_spec:
        print("No status oracle configured; pass --oracle module:attribute.", file=sys.stderr)
        raise SystemExit(2)
    try:
        oracle = load_oracle(oracle_spec)
    except (ImportError, AttributeError, TypeError, ValueError) as exc:
        print(f"Unable to load oracle {oracle_spec!r}: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    telemetry = TelemetryClient(enabled=telemetry_enabled(settings), storage_dir=settings.telemetry_dir)
    center = NotificationCenter()
    controller = ReadinessController.from_settings(
        settings,
        oracle=oracle,
        notifier=center,
        telemetry=telemetry,
        editor=StaticEditorContext(args.file),
        credentials_provider=_prompt_credentials if args.interactive else None,
    )
    try:
        state = asyncio.run(run_check(controller, center, interactive=args.interactive))
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Check interrupted by user.")
        state = None
    finally:
        telemetry.flush()
    raise SystemExit(0 if state is LifecycleState.WHITELISTED else 1)


async def _prompt_credentials() -> Credentials | None:
    email = (await asyncio.to_thread(input, "Kite email: ")).strip()
    if not email:
        return None
    password = await asyncio.to_thread(getpass.getpass, "Kite password: ")
    return Credentials(email=email, password=password)


def _echo(notification: Notification, stream: TextIO) -> None:
    stream.write(f"[{notification.severity.value}] {notification.title}\n")
    if notification.description:
        stream.write(f"    {notification.description}\n")


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="kiteready",
        description="Check whether the Kite daemon is ready and walk through fixes.",
    )
    parser.add_argument("--file", metavar="PATH", help="Treat PATH as the file open in the editor.")
    parser.add_argument("--oracle", metavar="MODULE:ATTR", help="Status oracle to query.")
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Offer notification buttons on the terminal and prompt for login details.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.kiteready/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(type_hints.get(key, fields[key].type), raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    if raw_value.lower() in {"none", "null"} and type(None) in get_args(annotation):
        return None
    target = _resolve_annotation(annotation)
    if target is bool:
        return _parse_bool(raw_value)
    if target is float:
        return float(raw_value)
    if target is int:
        return int(raw_value, 10)
    return raw_value


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return _resolve_annotation(args[0])


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    output = {
        "settings": asdict(settings),
        "meta": {
            "path": str(store.path),
            "cli_overrides": sorted(overrides.keys()),
            "environment_variables": sorted(name for name in os.environ if name.startswith("KITEREADY_")),
        },
    }
    json.dump(output, destination, indent=2)
    destination.write("\n")
