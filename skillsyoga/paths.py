"""
skillsyoga.paths

Path confinement for every filesystem access.

Two steps keep reads and writes inside the sanctioned skills roots:
- ``authorize`` checks an existing path against the canonical roots
  (component-wise, never by raw string prefix);
- ``resolve_child_path`` joins an authorized root with a relative path that
  ``normalize_relative_path`` has stripped of absolute and ``..`` components.

Targets that do not exist yet are always reached through the second step.
"""

from __future__ import annotations

import os
import time
from collections.abc import Iterable
from pathlib import Path, PurePath

from skillsyoga.errors import InvalidPathError, NotFoundError, ValidationError


def now_epoch() -> int:
    return int(time.time())


def expand_home(path: str) -> Path:
    """
    function_purpose: Expand a leading ``~`` to the current user's home directory.

    Other paths are returned unchanged.
    """
    if path == "~" or path.startswith("~/"):
        home = os.environ.get("HOME")
        if not home:
            raise NotFoundError("Unable to resolve HOME directory")
        return Path(home) / path[2:] if path != "~" else Path(home)
    return Path(path)


def _canonical(path: Path) -> Path | None:
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError):
        return None


def _is_within(candidate: PurePath, root: PurePath) -> bool:
    # PurePath.parts comparison is component-wise: /a/skills-extra is not under /a/skills.
    return candidate.parts[: len(root.parts)] == root.parts


def authorize(path: str | Path, roots: Iterable[str | Path]) -> Path:
    """
    function_purpose: Authorize an existing path against a set of sanctioned roots.

    Both the candidate and each root are canonicalized (symlinks resolved). The
    candidate is accepted iff some canonical root is a component-wise prefix of it.
    A candidate that cannot be canonicalized (missing) is rejected; roots that
    cannot be canonicalized are skipped.

    Returns the canonical candidate path. Raises InvalidPathError otherwise.
    """
    candidate = _canonical(Path(path))
    if candidate is None:
        raise InvalidPathError(f"Invalid path: {path}")

    for root in roots:
        canonical_root = _canonical(Path(root))
        if canonical_root is not None and _is_within(candidate, canonical_root):
            return candidate

    raise InvalidPathError(f"Path {path} is not under any known skills directory")


def normalize_relative_path(text: str) -> Path:
    """
    function_purpose: Clean a user-supplied relative path so it cannot escape its base.

    - empty input -> ValidationError
    - absolute path -> InvalidPathError
    - any '..' component -> InvalidPathError
    - '.' components are dropped
    """
    raw = (text or "").strip()
    if not raw:
        raise ValidationError("Relative path cannot be empty")

    if raw.startswith(("/", "\\")) or Path(raw).is_absolute() or Path(raw).drive:
        raise InvalidPathError("Relative path must not be absolute")

    parts: list[str] = []
    for part in raw.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise InvalidPathError("Relative path must not contain path traversal")
        parts.append(part)

    if not parts:
        raise ValidationError("Relative path cannot be empty")
    return Path(*parts)


def _nearest_existing(path: Path) -> Path:
    current = path
    while not os.path.lexists(current):
        if current.parent == current:
            break
        current = current.parent
    return current


def resolve_child_path(root: Path, relative: str) -> Path:
    """
    function_purpose: Build a confined path below an already-authorized root.

    The relative part is normalized first. The nearest existing ancestor of the
    result (the result itself when present) must still resolve under the root,
    so a symlink planted inside a bundle cannot redirect reads or writes.
    """
    rel = normalize_relative_path(relative)
    target = root / rel

    canonical_root = _canonical(root)
    if canonical_root is None:
        raise InvalidPathError(f"Invalid path: {root}")
    anchor = _nearest_existing(target).resolve()
    if not _is_within(anchor, canonical_root):
        raise InvalidPathError(f"Path {relative} escapes the skill directory")
    return target


def relative_posix(root: Path, child: Path) -> str | None:
    try:
        return child.relative_to(root).as_posix()
    except ValueError:
        return None


def dir_display_name(path: Path) -> str:
    return path.name or "skill"


def slugify(text: str) -> str:
    out: list[str] = []
    dash = False
    for ch in text:
        if ch.isascii() and ch.isalnum():
            out.append(ch.lower())
            dash = False
        elif not dash:
            out.append("-")
            dash = True
    slug = "".join(out).strip("-")
    return slug or "skill"


def unique_dir(base: Path, preferred: str) -> Path:
    """
    function_purpose: Pick a not-yet-existing directory name below base.

    Tries ``preferred``, then ``preferred-1`` .. ``preferred-999``, then a
    timestamp suffix.
    """
    candidate = base / preferred
    if not candidate.exists():
        return candidate
    for n in range(1, 1000):
        candidate = base / f"{preferred}-{n}"
        if not candidate.exists():
            return candidate
    return base / f"{preferred}-{now_epoch()}"
