"""
skillsyoga.scanner

Skill discovery: the per-tool two-level scan, the cross-tool merge, and the
bounded deep searches used when importing an arbitrary cloned repository.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from skillsyoga.errors import io_errors
from skillsyoga.metadata import SKILL_FILE, parse_skill_metadata
from skillsyoga.paths import dir_display_name, now_epoch
from skillsyoga.tools import ToolDescriptor


logger = logging.getLogger(__name__)

ROOTS_MAX_DEPTH = 6
BY_NAME_MAX_DEPTH = 4
SKIPPED_DIR_NAMES = frozenset({"node_modules", "target", "dist", "build"})


@dataclass
class SkillRecord:
    id: str
    name: str
    description: str
    path: str
    source: str
    enabled_for: list[str] = field(default_factory=list)
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DiscoveredRoot:
    path: str
    skill_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _is_hidden(path: Path) -> bool:
    return path.name.startswith(".")


def _child_dirs(directory: Path) -> list[Path]:
    """Immediate subdirectories in name order; unreadable directories yield nothing."""
    try:
        return sorted(p for p in directory.iterdir() if p.is_dir())
    except OSError:
        return []


def _modified_epoch(path: Path) -> int:
    try:
        return int(path.stat().st_mtime)
    except OSError:
        return now_epoch()


def read_skill_record(skill_dir: Path, tool: ToolDescriptor) -> SkillRecord:
    """
    function_purpose: Build a SkillRecord for one bundle directory owned by ``tool``.
    """
    skill_file = skill_dir / SKILL_FILE
    with io_errors():
        content = skill_file.read_text(encoding="utf-8", errors="replace")
    dir_name = dir_display_name(skill_dir)
    meta = parse_skill_metadata(content, dir_name)
    return SkillRecord(
        id=f"{tool.id}:{dir_name}",
        name=meta.name,
        description=meta.description,
        path=str(skill_dir),
        source=tool.id,
        enabled_for=[tool.id],
        updated_at=_modified_epoch(skill_file),
    )


def scan_tool_skills(tool: ToolDescriptor) -> list[SkillRecord]:
    """
    function_purpose: List the skill bundles installed under one tool's skills root.

    Only depth 0 (the root itself is a bundle) and depth 1 (immediate
    subdirectories) are inspected. Missing or non-directory roots yield [].
    """
    root = Path(tool.skills_path)
    if not root.is_dir():
        return []

    skills: list[SkillRecord] = []
    if (root / SKILL_FILE).is_file():
        skills.append(read_skill_record(root, tool))

    for child in _child_dirs(root):
        if (child / SKILL_FILE).is_file():
            skills.append(read_skill_record(child, tool))

    logger.debug("Scanned %s: %d skill(s)", root, len(skills))
    return skills


def merge_skills(records: list[SkillRecord]) -> list[SkillRecord]:
    """
    function_purpose: Collapse records from all tools into one catalog entry per name.

    Names compare case-insensitively. The first record seen for a name supplies
    every field except ``enabled_for``, which accumulates the tool ids of later
    duplicates in order without repeats. Output is sorted by name.
    """
    merged: dict[str, SkillRecord] = {}
    for record in records:
        key = record.name.lower()
        existing = merged.get(key)
        if existing is None:
            merged[key] = SkillRecord(**{**asdict(record), "enabled_for": list(record.enabled_for)})
            continue
        for tool_id in record.enabled_for:
            if tool_id not in existing.enabled_for:
                existing.enabled_for.append(tool_id)

    return sorted(merged.values(), key=lambda s: s.name)


def discover_skills_roots(start: Path) -> list[DiscoveredRoot]:
    """
    function_purpose: Find directories that look like skills roots inside an unknown tree.

    Depth-first, at most ROOTS_MAX_DEPTH levels. A directory qualifies if it holds
    SKILL.md itself or has child directories that do; its score is the number of
    such children (1 when only the directory itself qualifies). Hidden children
    are ignored entirely; build/dependency directories are counted but never
    entered. Sorted by score desc, then shorter path, then path.
    """
    if not start.is_dir():
        return []

    stack: list[tuple[Path, int]] = [(start, 0)]
    discovered: dict[str, int] = {}

    while stack:
        directory, depth = stack.pop()
        has_skill_file = (directory / SKILL_FILE).is_file()

        child_skill_count = 0
        for child in _child_dirs(directory):
            if _is_hidden(child):
                continue
            if (child / SKILL_FILE).is_file():
                child_skill_count += 1
            if depth < ROOTS_MAX_DEPTH and child.name.lower() not in SKIPPED_DIR_NAMES:
                stack.append((child, depth + 1))

        if has_skill_file or child_skill_count > 0:
            count = child_skill_count if child_skill_count > 0 else 1
            key = str(directory)
            discovered[key] = max(discovered.get(key, 0), count)

    out = [DiscoveredRoot(path=p, skill_count=c) for p, c in discovered.items()]
    out.sort(key=lambda r: (-r.skill_count, len(r.path), r.path))
    return out


def discover_skill_dir(start: Path, depth: int = 0) -> Path | None:
    """First directory (depth-first, hidden pruned) that contains SKILL.md."""
    if depth > BY_NAME_MAX_DEPTH:
        return None
    if (start / SKILL_FILE).is_file():
        return start
    for child in _child_dirs(start):
        if _is_hidden(child):
            continue
        found = discover_skill_dir(child, depth + 1)
        if found is not None:
            return found
    return None


def discover_skill_dir_by_name(start: Path, name: str, depth: int = 0) -> Path | None:
    """
    function_purpose: Depth-first search for a bundle directory named exactly ``name``.

    Searches at most BY_NAME_MAX_DEPTH levels, pruning hidden directories, and
    returns the first match or None.
    """
    if depth > BY_NAME_MAX_DEPTH:
        return None
    if start.is_dir() and start.name == name and (start / SKILL_FILE).is_file():
        return start
    for child in _child_dirs(start):
        if _is_hidden(child):
            continue
        found = discover_skill_dir_by_name(child, name, depth + 1)
        if found is not None:
            return found
    return None


def copy_dir_recursive(src: Path, dst: Path) -> None:
    """Copy a bundle directory tree; ``dst`` may already exist."""
    with io_errors():
        shutil.copytree(src, dst, dirs_exist_ok=True, symlinks=True)
