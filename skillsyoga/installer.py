"""
skillsyoga.installer

Importing skill bundles from remote git repositories of unknown layout.

Each install clones into its own fresh temporary directory, locates the bundle,
copies it into a unique directory under the target tool's (authorized) skills
root, and always removes the temporary clone afterwards.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path

from skillsyoga.errors import NotFoundError, ValidationError, io_errors
from skillsyoga.fileops import authorize_skill_path, log_operation
from skillsyoga.metadata import SKILL_FILE, parse_skill_metadata
from skillsyoga.paths import (
    dir_display_name,
    expand_home,
    now_epoch,
    resolve_child_path,
    slugify,
    unique_dir,
)
from skillsyoga.remote import make_clone_dir, remove_tree_quietly, shallow_clone
from skillsyoga.scanner import (
    DiscoveredRoot,
    SkillRecord,
    copy_dir_recursive,
    discover_skill_dir,
    discover_skill_dir_by_name,
    discover_skills_roots,
)
from skillsyoga.settings import SettingsDocument
from skillsyoga.tools import find_tool_by_id


logger = logging.getLogger(__name__)

GITHUB_PREFIX = "https://github.com/"
REGISTRY_SOURCE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*/[A-Za-z0-9._-]+$")

CloneFn = Callable[[str, Path], None]


def _install_from_clone(
    settings: SettingsDocument, clone_root: Path, source_dir: Path, target_tool_id: str, repo_url: str
) -> SkillRecord:
    if not (source_dir / SKILL_FILE).is_file():
        raise NotFoundError(f"Skill folder invalid: {source_dir}")

    tool = find_tool_by_id(settings, target_tool_id)
    skills_root = Path(tool.skills_path)
    with io_errors():
        skills_root.mkdir(parents=True, exist_ok=True)
    skills_root = authorize_skill_path(settings, str(skills_root))

    default_name = dir_display_name(source_dir) if source_dir != clone_root else _repo_name(repo_url)
    target = unique_dir(skills_root, slugify(default_name))
    copy_dir_recursive(source_dir, target)

    with io_errors():
        content = (target / SKILL_FILE).read_text(encoding="utf-8", errors="replace")
    meta = parse_skill_metadata(content, default_name)

    log_operation("install", {"repo_url": repo_url, "target": str(target)})
    logger.info("Installed skill '%s' from %s into %s", meta.name, repo_url, target)
    return SkillRecord(
        id=f"{tool.id}:{slugify(meta.name)}",
        name=meta.name,
        description=meta.description,
        path=str(target),
        source=tool.id,
        enabled_for=[tool.id],
        updated_at=now_epoch(),
    )


def _repo_name(repo_url: str) -> str:
    tail = repo_url.rstrip("/").rsplit("/", 1)[-1]
    return tail[:-4] if tail.endswith(".git") else tail


def install_skill_from_github(
    settings: SettingsDocument,
    repo_url: str,
    target_tool_id: str,
    skill_path: str | None = None,
    clone: CloneFn = shallow_clone,
) -> SkillRecord:
    """
    function_purpose: Install one skill bundle from a GitHub repository.

    - Only https://github.com/ URLs are accepted.
    - skill_path (optional) selects the bundle inside the repository; it is
      confined to the clone. Without it the first bundle found is used.
    """
    repo_url = (repo_url or "").strip()
    if not repo_url.startswith(GITHUB_PREFIX):
        raise ValidationError("Only GitHub repository URLs are supported")
    find_tool_by_id(settings, target_tool_id)

    clone_root = make_clone_dir()
    try:
        clone(repo_url, clone_root)
        if skill_path and skill_path.strip() not in ("", ".", "./"):
            source_dir = resolve_child_path(clone_root, skill_path)
        else:
            source_dir = discover_skill_dir(clone_root)
            if source_dir is None:
                raise NotFoundError(
                    "Unable to determine skill directory automatically; provide `skill_path`"
                )
        return _install_from_clone(settings, clone_root, source_dir, target_tool_id, repo_url)
    finally:
        remove_tree_quietly(clone_root)


def install_from_registry(
    settings: SettingsDocument,
    source: str,
    skill_id: str,
    target_tool_id: str,
    clone: CloneFn = shallow_clone,
) -> SkillRecord:
    """
    function_purpose: Install a registry search hit (``owner/repo`` + skill id).

    The bundle is looked up by exact directory name first, then falls back to
    the first bundle in the repository.
    """
    source = (source or "").strip().strip("/")
    if not REGISTRY_SOURCE_RE.match(source):
        raise ValidationError(f"Registry source must look like 'owner/repo': {source}")
    if not (skill_id or "").strip():
        raise ValidationError("Skill id cannot be empty")
    find_tool_by_id(settings, target_tool_id)

    repo_url = f"{GITHUB_PREFIX}{source}"
    clone_root = make_clone_dir()
    try:
        clone(repo_url, clone_root)
        source_dir = discover_skill_dir_by_name(clone_root, skill_id.strip()) or discover_skill_dir(
            clone_root
        )
        if source_dir is None:
            raise NotFoundError(f"Could not find skill '{skill_id}' in repository")
        return _install_from_clone(settings, clone_root, source_dir, target_tool_id, repo_url)
    finally:
        remove_tree_quietly(clone_root)


def discover_skills_paths(scan_root: str) -> list[DiscoveredRoot]:
    """Candidate skills roots under a local directory, for defining a custom tool."""
    raw = (scan_root or "").strip()
    if not raw:
        raise ValidationError("Scan root cannot be empty")
    root = expand_home(raw)
    if not root.is_dir():
        raise NotFoundError(f"Directory does not exist: {raw}")
    return discover_skills_roots(root)
