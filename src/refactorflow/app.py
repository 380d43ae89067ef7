"""Bootstrap helpers that wire a refactor coordinator to a document workspace."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .editor.workspace import DocumentWorkspace
from .events import EventBus
from .refactor.coordinator import RefactorCoordinator
from .refactor.edit_applier import ApplyReport, FileEditStatus
from .refactor.providers import ProviderRegistry
from .services.settings import Settings, SettingsStore
from .utils import logging as logging_utils

__all__ = ["RefactorApp", "load_settings", "configure_logging", "build_app", "main"]

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


@dataclass(slots=True)
class RefactorApp:
    """Container returned by :func:`build_app`."""

    settings: Settings
    workspace: DocumentWorkspace
    registry: ProviderRegistry
    event_bus: EventBus
    coordinator: RefactorCoordinator

    async def aclose(self) -> None:
        await self.coordinator.aclose()
        self.event_bus.clear()


def configure_logging(settings: Settings, *, force: bool = False) -> Path:
    """Configure logging for the process from ``settings``."""

    log_path = logging_utils.setup_logging(settings, force=force)
    _LOGGER.debug("Logging configured (debug=%s, path=%s)", settings.debug_logging, log_path)
    return log_path


def load_settings(
    path: Optional[Path] = None,
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


def build_app(
    settings: Settings | None = None,
    *,
    workspace: DocumentWorkspace | None = None,
    registry: ProviderRegistry | None = None,
    event_bus: EventBus | None = None,
) -> RefactorApp:
    """Create a coordinator bound to a workspace and a provider registry.

    When ``settings.save_after_apply`` is set, every file whose edits applied
    cleanly is written back to disk after the refactoring finishes.
    """

    settings = settings or Settings()
    workspace = workspace or DocumentWorkspace(load_unopened_files=settings.load_unopened_files)
    registry = registry or ProviderRegistry()
    bus = event_bus or EventBus()

    after_apply = None
    if settings.save_after_apply:

        def after_apply(report: ApplyReport) -> None:
            paths = report.paths_with_status(FileEditStatus.APPLIED)
            if not paths:
                return
            saved = workspace.save_paths(paths)
            _LOGGER.info("Saved %d of %d refactored file(s)", sum(saved.values()), len(paths))

    coordinator = RefactorCoordinator(
        registry=registry,
        editor_source=workspace.editor_context,
        buffer=workspace,
        event_bus=bus,
        after_apply=after_apply,
    )
    return RefactorApp(
        settings=settings,
        workspace=workspace,
        registry=registry,
        event_bus=bus,
        coordinator=coordinator,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``refactorflow`` console script.

    The library has no interactive surface of its own; the command inspects
    the effective configuration hosts will see.
    """

    args = _parse_cli_args(argv)
    settings_path = args.settings_path or os.environ.get("REFACTORFLOW_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=store, overrides=cli_overrides or None)
    if args.save:
        store.save(settings)
    _dump_settings(settings, store, overrides=cli_overrides)
    return 0


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="refactorflow",
        description="Inspect the effective refactorflow configuration.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.refactorflow/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings (repeatable).",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Persist the effective settings, overrides included.",
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
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    if target is bool:
        return _parse_bool(raw_value)
    if raw_value.lower() in {"none", "null"}:
        return None
    if target is dict:
        try:
            payload = json.loads(raw_value or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return payload
    return raw_value


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin is dict:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    return args[0] if args else origin


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
            "environment_variables": sorted(
                name for name in os.environ if name.startswith("REFACTORFLOW_")
            ),
        },
    }
    json.dump(output, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
