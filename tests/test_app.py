"""Tests for the application wiring helpers."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import pytest

from refactorflow import app
from refactorflow.core.ranges import Point
from refactorflow.refactor.actions import display_rename, execute
from refactorflow.refactor.types import RenameRequest, TextEdit
from refactorflow.services.settings import Settings, SettingsStore
from refactorflow.utils import logging as logging_utils
from tests.helpers import StubProvider, drain


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_build_app_wires_workspace_into_coordinator(sample_file: Path) -> None:
    refactor_app = app.build_app(Settings(load_unopened_files=False))
    refactor_app.workspace.open_document(sample_file)

    editor = refactor_app.coordinator._editor_source()

    assert editor is not None and editor.path == str(sample_file.resolve())
    assert len(refactor_app.registry) == 0


@pytest.mark.asyncio
async def test_save_after_apply_writes_refactored_files(sample_file: Path) -> None:
    refactor_app = app.build_app(Settings(save_after_apply=True))
    workspace = refactor_app.workspace
    workspace.open_document(sample_file)
    editor = workspace.editor_context()
    edits = {editor.path: [TextEdit(((0, 0), (0, 3)), "foo", "baz")]}
    provider = StubProvider(rename=lambda editor, position, new_name: edits)
    refactor_app.registry.add_provider(provider)

    refactor_app.coordinator.dispatch(display_rename(editor, provider, "foo", Point(0, 0), Point(0, 0)))
    refactor_app.coordinator.dispatch(execute(provider, RenameRequest(editor, Point(0, 0), "baz")))
    await drain(refactor_app.coordinator)
    await refactor_app.aclose()

    assert sample_file.read_text(encoding="utf-8") == "baz\nbar\nfoo\n"
    assert not workspace.active_document.dirty


@pytest.mark.asyncio
async def test_edits_stay_in_memory_by_default(sample_file: Path) -> None:
    refactor_app = app.build_app()
    workspace = refactor_app.workspace
    workspace.open_document(sample_file)
    editor = workspace.editor_context()
    provider = StubProvider(
        rename=lambda editor, position, new_name: {editor.path: [TextEdit(((0, 0), (0, 3)), "foo", "baz")]}
    )

    refactor_app.coordinator.dispatch(display_rename(editor, provider, "foo", Point(0, 0), Point(0, 0)))
    refactor_app.coordinator.dispatch(execute(provider, RenameRequest(editor, Point(0, 0), "baz")))
    await drain(refactor_app.coordinator)

    assert workspace.active_document.text == "baz\nbar\nfoo\n"
    assert sample_file.read_text(encoding="utf-8") == "foo\nbar\nfoo\n"


def test_configure_logging_uses_settings(tmp_path: Path, restore_logging) -> None:
    settings = Settings(debug_logging=True, console_logging=False, log_dir=str(tmp_path / "logs"))

    log_path = app.configure_logging(settings, force=True)

    assert log_path == tmp_path / "logs" / "refactorflow.log"
    assert logging_utils.get_log_path() == log_path
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("asyncio").level == logging.WARNING


def test_load_settings_applies_overrides(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    settings = app.load_settings(store=store, overrides={"save_after_apply": True})
    assert settings.save_after_apply is True


class TestCli:
    def test_dump_reports_effective_settings(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "settings.json"

        code = app.main(["--settings-path", str(path), "--set", "debug_logging=on", "--set", "log_dir=/var/log/rf"])

        output = json.loads(capsys.readouterr().out)
        assert code == 0
        assert output["settings"]["debug_logging"] is True
        assert output["settings"]["log_dir"] == "/var/log/rf"
        assert output["meta"]["path"] == str(path)
        assert output["meta"]["cli_overrides"] == ["debug_logging", "log_dir"]
        assert not path.exists()

    def test_save_persists_overrides(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "settings.json"

        app.main(["--settings-path", str(path), "--set", "metadata={\"team\": \"editor\"}", "--save"])

        capsys.readouterr()
        assert SettingsStore(path).load().metadata == {"team": "editor"}

    @pytest.mark.parametrize("override", ["nonsense", "unknown=1", "debug_logging=maybe", "=1"])
    def test_invalid_override_exits_with_usage_error(
        self, tmp_path: Path, override: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = app.main(["--settings-path", str(tmp_path / "s.json"), "--set", override])

        assert code == 2
        assert "Invalid --set override" in capsys.readouterr().err

    def test_dump_to_custom_stream(self, tmp_path: Path) -> None:
        stream = io.StringIO()
        store = SettingsStore(tmp_path / "settings.json")

        app._dump_settings(Settings(), store, overrides={}, stream=stream)

        assert json.loads(stream.getvalue())["settings"]["save_after_apply"] is False
