"""
skillsyoga.fileops

Filesystem operations on skill bundles.

Every function here takes the current settings document and re-authorizes the
bundle path against the live skills roots on each call. Child paths are always
built with ``resolve_child_path``; nothing touches a user-supplied path before
that check. Deletions move entries into a trash directory instead of removing
them, and each destructive action is appended to the operations log.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from skillsyoga.errors import NotFoundError, ValidationError, io_errors
from skillsyoga.metadata import SKILL_FILE, parse_skill_metadata
from skillsyoga.paths import (
    authorize,
    dir_display_name,
    now_epoch,
    relative_posix,
    resolve_child_path,
    slugify,
    unique_dir,
)
from skillsyoga.scanner import SkillRecord, copy_dir_recursive
from skillsyoga.settings import SettingsDocument, resolve_data_dir
from skillsyoga.tools import find_tool_by_id, skills_roots


logger = logging.getLogger(__name__)

OPS_LOG_FILE_NAME = "skillsyoga_operations.log"


@dataclass
class SkillFileEntry:
    relative_path: str
    is_dir: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# --- Trash & operation log ---
def resolve_trash_dir() -> Path:
    """
    function_purpose: Resolve the trash directory where deleted entries are moved.

    Uses TRASH_DIR when set, otherwise <data dir>/trash. Ensures it exists.
    """
    trash_env = os.environ.get("TRASH_DIR")
    trash_dir = Path(trash_env).expanduser().resolve() if trash_env else resolve_data_dir() / "trash"
    trash_dir.mkdir(parents=True, exist_ok=True)
    return trash_dir


def log_operation(op: str, payload: dict[str, Any]) -> None:
    """
    function_purpose: Append a single JSON line describing a destructive operation.

    Failure to write the log never breaks the operation itself.
    """
    ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    record = {"ts": ts, "op": op}
    record.update(payload)

    try:
        log_dir = resolve_data_dir() / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        with open(log_dir / OPS_LOG_FILE_NAME, "a", encoding="utf-8") as f:
            _ = f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except Exception:
        logger.warning("Failed to write operation log entry", exc_info=True)


def move_to_trash(target: Path) -> Path:
    """Move ``target`` under the trash directory with a timestamped name."""
    trash_dir = resolve_trash_dir()
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    trash_target = unique_dir(trash_dir, f"{ts}__{target.name}")
    with io_errors():
        shutil.move(str(target), str(trash_target))
    log_operation("trash", {"path": str(target), "trash_path": str(trash_target)})
    logger.info("Moved %s to trash at %s", target, trash_target)
    return trash_target


# --- Guarded access ---
def authorize_skill_path(settings: SettingsDocument, path: str) -> Path:
    """Authorize ``path`` against the skills roots resolved right now."""
    return authorize(path, skills_roots(settings))


def _authorized_child(settings: SettingsDocument, path: str, relative_path: str) -> tuple[Path, Path]:
    skill_root = authorize_skill_path(settings, path)
    return skill_root, resolve_child_path(skill_root, relative_path)


def _read_exact(path: Path) -> str:
    # newline="" keeps \r\n and lone \r exactly as stored
    with io_errors(), open(path, encoding="utf-8", newline="") as f:
        return f.read()


def read_skill_file(settings: SettingsDocument, path: str) -> str:
    skill_dir = authorize_skill_path(settings, path)
    skill_file = resolve_child_path(skill_dir, SKILL_FILE)
    if not skill_file.is_file():
        raise NotFoundError(f"File does not exist: {skill_file}")
    return _read_exact(skill_file)


def list_skill_files(settings: SettingsDocument, path: str) -> list[SkillFileEntry]:
    """
    function_purpose: List every non-hidden file and directory inside a bundle.

    Paths are relative to the bundle, '/'-separated, sorted; a directory sorts
    before a file with the same path.
    """
    skill_root = authorize_skill_path(settings, path)
    if not skill_root.is_dir():
        raise ValidationError(f"Path is not a directory: {path}")

    entries: list[SkillFileEntry] = []
    stack = [skill_root]
    with io_errors():
        while stack:
            directory = stack.pop()
            for child in directory.iterdir():
                if child.name.startswith("."):
                    continue
                relative = relative_posix(skill_root, child)
                if not relative:
                    continue
                is_dir = child.is_dir() and not child.is_symlink()
                entries.append(SkillFileEntry(relative_path=relative, is_dir=is_dir))
                if is_dir:
                    stack.append(child)

    entries.sort(key=lambda e: (e.relative_path, not e.is_dir))
    return entries


def read_skill_entry(settings: SettingsDocument, path: str, relative_path: str) -> str:
    _, target = _authorized_child(settings, path, relative_path)
    if not os.path.lexists(target):
        raise NotFoundError(f"File does not exist: {target}")
    if not target.is_file():
        raise ValidationError(f"Path is not a file: {relative_path}")
    return _read_exact(target)


def save_skill_entry(settings: SettingsDocument, path: str, relative_path: str, content: str) -> None:
    """Overwrite (or create) one file inside a bundle, creating parents on demand."""
    _, target = _authorized_child(settings, path, relative_path)
    if target.is_dir():
        raise ValidationError(f"Path is a directory: {relative_path}")
    with io_errors():
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8", newline="")


def create_skill_dir(settings: SettingsDocument, path: str, relative_path: str) -> None:
    _, target = _authorized_child(settings, path, relative_path)
    if target.exists() and not target.is_dir():
        raise ValidationError(f"Path exists and is not a directory: {relative_path}")
    with io_errors():
        target.mkdir(parents=True, exist_ok=True)


def rename_skill_entry(
    settings: SettingsDocument, path: str, old_relative_path: str, new_relative_path: str
) -> None:
    """
    function_purpose: Rename or move an entry within a bundle.

    Fails if the source is missing or the destination already exists.
    """
    skill_root = authorize_skill_path(settings, path)
    old_target = resolve_child_path(skill_root, old_relative_path)
    new_target = resolve_child_path(skill_root, new_relative_path)

    if not os.path.lexists(old_target):
        raise NotFoundError(f"Path does not exist: {old_relative_path}")
    if os.path.lexists(new_target):
        raise ValidationError(f"Target path already exists: {new_relative_path}")
    with io_errors():
        new_target.parent.mkdir(parents=True, exist_ok=True)
        old_target.rename(new_target)


def delete_skill_entry(settings: SettingsDocument, path: str, relative_path: str) -> Path:
    """Move one file of a bundle to the trash. Returns its trash location."""
    _, target = _authorized_child(settings, path, relative_path)
    if not os.path.lexists(target):
        raise NotFoundError(f"Path does not exist: {relative_path}")
    if not target.is_file():
        raise ValidationError(f"Path is not a file: {relative_path}")
    return move_to_trash(target)


def delete_skill_empty_dir(settings: SettingsDocument, path: str, relative_path: str) -> Path:
    """Move an empty directory of a bundle to the trash."""
    _, target = _authorized_child(settings, path, relative_path)
    if not target.exists():
        raise NotFoundError(f"Path does not exist: {relative_path}")
    if not target.is_dir():
        raise ValidationError(f"Path is not a directory: {relative_path}")
    with io_errors():
        has_entries = any(True for _ in target.iterdir())
    if has_entries:
        raise ValidationError(f"Directory is not empty: {relative_path}")
    return move_to_trash(target)


def delete_skill(settings: SettingsDocument, path: str) -> Path:
    """
    function_purpose: Move a whole bundle directory to the trash.

    The skills root of a tool cannot be trashed through this call.
    """
    skill_dir = authorize_skill_path(settings, path)
    for root in skills_roots(settings):
        if root.exists() and root.resolve() == skill_dir:
            raise ValidationError(f"Refusing to delete a tool skills root: {path}")
    return move_to_trash(skill_dir)


def save_skill_file(
    settings: SettingsDocument,
    content: str,
    target_tool_id: str,
    existing_path: str | None = None,
) -> SkillRecord:
    """
    function_purpose: Write a bundle's SKILL.md, creating the bundle if needed.

    - existing_path given: it must authorize; its SKILL.md is overwritten.
    - otherwise a new directory named after the slugified skill name is created
      under the target tool's skills root (suffixed if taken).
    """
    tool = find_tool_by_id(settings, target_tool_id)
    skills_root = Path(tool.skills_path)
    with io_errors():
        skills_root.mkdir(parents=True, exist_ok=True)

    meta = parse_skill_metadata(content, "skill")

    if existing_path:
        target_dir = authorize_skill_path(settings, existing_path)
    else:
        target_dir = unique_dir(authorize_skill_path(settings, str(skills_root)), slugify(meta.name))
        with io_errors():
            target_dir.mkdir(parents=True, exist_ok=True)

    skill_file = resolve_child_path(target_dir, SKILL_FILE)
    with io_errors():
        skill_file.write_text(content, encoding="utf-8", newline="")

    dir_name = dir_display_name(target_dir)
    return SkillRecord(
        id=f"{tool.id}:{dir_name}",
        name=meta.name,
        description=meta.description,
        path=str(target_dir),
        source=tool.id,
        enabled_for=[tool.id],
        updated_at=now_epoch(),
    )


def copy_skill_to_tool(settings: SettingsDocument, source_path: str, target_tool_id: str) -> SkillRecord:
    """
    function_purpose: Copy an installed bundle into another tool's skills root.

    The copy lands in a unique directory named after the source directory.
    """
    source_dir = authorize_skill_path(settings, source_path)
    if not (source_dir / SKILL_FILE).is_file():
        raise NotFoundError(f"Skill folder invalid: {source_path}")

    tool = find_tool_by_id(settings, target_tool_id)
    skills_root = Path(tool.skills_path)
    with io_errors():
        skills_root.mkdir(parents=True, exist_ok=True)

    target_root = authorize_skill_path(settings, str(skills_root))
    if source_dir == target_root or source_dir.parent == target_root:
        raise ValidationError(f"Skill is already installed for tool '{tool.id}'")

    default_name = dir_display_name(source_dir)
    target = unique_dir(target_root, slugify(default_name))
    copy_dir_recursive(source_dir, target)

    with io_errors():
        content = (target / SKILL_FILE).read_text(encoding="utf-8", errors="replace")
    meta = parse_skill_metadata(content, default_name)
    log_operation("copy_to_tool", {"source": str(source_dir), "target": str(target)})

    return SkillRecord(
        id=f"{tool.id}:{dir_display_name(target)}",
        name=meta.name,
        description=meta.description,
        path=str(target),
        source=tool.id,
        enabled_for=[tool.id],
        updated_at=now_epoch(),
    )
