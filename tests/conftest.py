from __future__ import annotations

from pathlib import Path

import pytest

from skillsyoga.settings import SettingsDocument


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A throwaway HOME with the data, log and trash locations pointed inside tmp_path."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("SKILLSYOGA_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "data" / "logs" / "test.log"))
    monkeypatch.delenv("TRASH_DIR", raising=False)
    return home_dir


@pytest.fixture
def settings() -> SettingsDocument:
    return SettingsDocument()


@pytest.fixture
def claude_root(home: Path) -> Path:
    root = home / ".claude" / "skills"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def cursor_root(home: Path) -> Path:
    root = home / ".cursor" / "skills"
    root.mkdir(parents=True)
    return root


def write_skill(directory: Path, name: str, description: str = "A test skill.") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "SKILL.md").write_text(
        f"---\nname: {name}\ndescription: {description}\n---\n\n# {name}\n\nBody.\n",
        encoding="utf-8",
    )
    return directory
