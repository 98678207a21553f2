from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import write_skill

from skillsyoga.errors import InvalidPathError, NotFoundError, ValidationError
from skillsyoga.fileops import (
    OPS_LOG_FILE_NAME,
    copy_skill_to_tool,
    create_skill_dir,
    delete_skill,
    delete_skill_empty_dir,
    delete_skill_entry,
    list_skill_files,
    read_skill_entry,
    read_skill_file,
    rename_skill_entry,
    resolve_trash_dir,
    save_skill_entry,
    save_skill_file,
)
from skillsyoga.settings import SettingsDocument


def _ops_log(tmp_path: Path) -> list[dict]:
    log_path = tmp_path / "data" / "logs" / OPS_LOG_FILE_NAME
    return [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]


def test_read_skill_file(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    assert "name: pdf" in read_skill_file(settings, str(skill))

    (skill / "SKILL.md").unlink()
    with pytest.raises(NotFoundError):
        read_skill_file(settings, str(skill))


def test_paths_outside_roots_are_rejected(
    tmp_path: Path, claude_root: Path, settings: SettingsDocument
) -> None:
    outside = write_skill(tmp_path / "elsewhere", "evil")
    with pytest.raises(InvalidPathError):
        read_skill_file(settings, str(outside))
    with pytest.raises(InvalidPathError):
        list_skill_files(settings, str(outside))
    with pytest.raises(InvalidPathError):
        delete_skill(settings, str(outside))
    assert outside.exists()


def test_relative_paths_cannot_escape_bundle(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    write_skill(claude_root / "other", "other")

    with pytest.raises(InvalidPathError):
        read_skill_entry(settings, str(skill), "../other/SKILL.md")
    with pytest.raises(InvalidPathError):
        save_skill_entry(settings, str(skill), "/etc/passwd", "x")
    with pytest.raises(ValidationError):
        save_skill_entry(settings, str(skill), "", "x")


def test_save_then_read_entry_is_byte_identical(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    content = "#!/usr/bin/env python\nprint('héllo')\n\n\ttabbed\r\n"

    save_skill_entry(settings, str(skill), "scripts/extract.py", content)
    assert (skill / "scripts" / "extract.py").read_bytes() == content.encode("utf-8")
    assert read_skill_entry(settings, str(skill), "scripts/extract.py") == content

    with pytest.raises(ValidationError):
        save_skill_entry(settings, str(skill), "scripts", "x")
    with pytest.raises(ValidationError):
        read_skill_entry(settings, str(skill), "scripts")
    with pytest.raises(NotFoundError):
        read_skill_entry(settings, str(skill), "missing.md")


def test_list_skill_files_sorted_and_hidden_skipped(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    (skill / "scripts").mkdir()
    (skill / "scripts" / "run.sh").write_text("echo", encoding="utf-8")
    (skill / ".git").mkdir()
    (skill / ".git" / "HEAD").write_text("ref", encoding="utf-8")
    (skill / ".env").write_text("SECRET=1", encoding="utf-8")
    (skill / "reference.md").write_text("ref", encoding="utf-8")

    entries = [(e.relative_path, e.is_dir) for e in list_skill_files(settings, str(skill))]
    assert entries == [
        ("SKILL.md", False),
        ("reference.md", False),
        ("scripts", True),
        ("scripts/run.sh", False),
    ]

    with pytest.raises(ValidationError):
        list_skill_files(settings, str(skill / "SKILL.md"))


def test_create_dir_and_rename(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    create_skill_dir(settings, str(skill), "assets/images")
    assert (skill / "assets" / "images").is_dir()
    create_skill_dir(settings, str(skill), "assets/images")

    with pytest.raises(ValidationError):
        create_skill_dir(settings, str(skill), "SKILL.md")

    save_skill_entry(settings, str(skill), "notes.md", "n")
    rename_skill_entry(settings, str(skill), "notes.md", "docs/notes.md")
    assert (skill / "docs" / "notes.md").read_text(encoding="utf-8") == "n"
    assert not (skill / "notes.md").exists()

    with pytest.raises(NotFoundError):
        rename_skill_entry(settings, str(skill), "notes.md", "again.md")
    with pytest.raises(ValidationError):
        rename_skill_entry(settings, str(skill), "docs/notes.md", "SKILL.md")
    with pytest.raises(InvalidPathError):
        rename_skill_entry(settings, str(skill), "docs/notes.md", "../escaped.md")


def test_delete_entry_moves_to_trash_and_logs(
    tmp_path: Path, claude_root: Path, settings: SettingsDocument
) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    save_skill_entry(settings, str(skill), "old.md", "old content")

    trashed = delete_skill_entry(settings, str(skill), "old.md")
    assert not (skill / "old.md").exists()
    assert trashed.parent == resolve_trash_dir()
    assert trashed.name.endswith("__old.md")
    assert trashed.read_text(encoding="utf-8") == "old content"

    [entry] = _ops_log(tmp_path)
    assert entry["op"] == "trash"
    assert entry["trash_path"] == str(trashed)

    with pytest.raises(NotFoundError):
        delete_skill_entry(settings, str(skill), "old.md")
    create_skill_dir(settings, str(skill), "dir")
    with pytest.raises(ValidationError):
        delete_skill_entry(settings, str(skill), "dir")


def test_trash_dir_env_override(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, claude_root: Path, settings: SettingsDocument
) -> None:
    monkeypatch.setenv("TRASH_DIR", str(tmp_path / "custom-trash"))
    skill = write_skill(claude_root / "pdf", "pdf")
    trashed = delete_skill_entry(settings, str(skill), "SKILL.md")
    assert trashed.parent == (tmp_path / "custom-trash").resolve()


def test_delete_empty_dir_requires_empty(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    save_skill_entry(settings, str(skill), "full/file.md", "x")
    create_skill_dir(settings, str(skill), "empty")

    with pytest.raises(ValidationError):
        delete_skill_empty_dir(settings, str(skill), "full")
    with pytest.raises(ValidationError):
        delete_skill_empty_dir(settings, str(skill), "full/file.md")
    with pytest.raises(NotFoundError):
        delete_skill_empty_dir(settings, str(skill), "nope")

    delete_skill_empty_dir(settings, str(skill), "empty")
    assert not (skill / "empty").exists()
    assert (skill / "full" / "file.md").exists()


def test_delete_skill_trashes_bundle_but_not_root(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")

    with pytest.raises(ValidationError):
        delete_skill(settings, str(claude_root))

    trashed = delete_skill(settings, str(skill))
    assert not skill.exists()
    assert (trashed / "SKILL.md").is_file()
    assert claude_root.is_dir()


def test_save_skill_file_creates_unique_bundle(claude_root: Path, settings: SettingsDocument) -> None:
    write_skill(claude_root / "my-skill", "existing")
    content = "---\nname: My Skill\ndescription: Fresh.\n---\n\n# My Skill\n"

    record = save_skill_file(settings, content, "claude-code")
    assert Path(record.path) == (claude_root / "my-skill-1").resolve()
    assert record.id == "claude-code:my-skill-1"
    assert record.name == "My Skill"
    assert record.description == "Fresh."
    assert record.enabled_for == ["claude-code"]
    assert (Path(record.path) / "SKILL.md").read_text(encoding="utf-8") == content


def test_save_skill_file_overwrites_existing(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    record = save_skill_file(settings, "---\nname: pdf\ndescription: New.\n---\n", "claude-code", str(skill))
    assert Path(record.path) == skill.resolve()
    assert record.description == "New."
    assert "New." in (skill / "SKILL.md").read_text(encoding="utf-8")


def test_save_skill_file_creates_missing_tool_root(home: Path, settings: SettingsDocument) -> None:
    record = save_skill_file(settings, "# Fresh\n\nHello.\n", "codex")
    assert Path(record.path) == (home / ".codex" / "skills" / "fresh").resolve()
    assert record.source == "codex"

    with pytest.raises(NotFoundError):
        save_skill_file(settings, "# x\n", "no-such-tool")


def test_copy_skill_to_tool(
    tmp_path: Path, claude_root: Path, cursor_root: Path, settings: SettingsDocument
) -> None:
    skill = write_skill(claude_root / "pdf", "pdf", description="Copy me.")
    (skill / "scripts").mkdir()
    (skill / "scripts" / "run.sh").write_text("echo", encoding="utf-8")
    write_skill(cursor_root / "pdf", "other-pdf")

    record = copy_skill_to_tool(settings, str(skill), "cursor")
    copied = Path(record.path)
    assert copied == (cursor_root / "pdf-1").resolve()
    assert (copied / "scripts" / "run.sh").read_text(encoding="utf-8") == "echo"
    assert record.description == "Copy me."
    assert record.source == "cursor"
    assert skill.is_dir()

    entries = _ops_log(tmp_path)
    assert entries[-1]["op"] == "copy_to_tool"


def test_copy_skill_to_same_tool_rejected(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    with pytest.raises(ValidationError):
        copy_skill_to_tool(settings, str(skill), "claude-code")

    (skill / "SKILL.md").unlink()
    with pytest.raises(NotFoundError):
        copy_skill_to_tool(settings, str(skill), "cursor")


def test_line_endings_survive_save_and_read(claude_root: Path, settings: SettingsDocument) -> None:
    skill = write_skill(claude_root / "pdf", "pdf")
    save_skill_entry(settings, str(skill), "notes.md", "line1\r\nline2\rline3\n")
    assert read_skill_entry(settings, str(skill), "notes.md") == "line1\r\nline2\rline3\n"

    content = "---\r\nname: Foo\r\ndescription: Crlf.\r\n---\r\nBody\r\n"
    record = save_skill_file(settings, content, "claude-code")
    assert record.name == "Foo"
    assert record.description == "Crlf."
    assert (Path(record.path) / "SKILL.md").read_bytes() == content.encode("utf-8")
    assert read_skill_file(settings, record.path) == content
