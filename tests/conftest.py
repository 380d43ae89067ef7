"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from refactorflow.editor.workspace import DocumentWorkspace
from tests.helpers import SAMPLE_TEXT


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "test.txt"
    path.write_text(SAMPLE_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def workspace(sample_file: Path) -> DocumentWorkspace:
    workspace = DocumentWorkspace()
    workspace.open_document(sample_file)
    return workspace


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "REFACTORFLOW_LOG_DIR",
        "REFACTORFLOW_DEBUG_LOGGING",
        "REFACTORFLOW_CONSOLE_LOGGING",
        "REFACTORFLOW_LOAD_UNOPENED_FILES",
        "REFACTORFLOW_SAVE_AFTER_APPLY",
        "REFACTORFLOW_SETTINGS_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
