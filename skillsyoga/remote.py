"""
skillsyoga.remote

Collaborators outside the local filesystem: the git client used to fetch skill
repositories, and the HTTP APIs for registry search and excerpt publishing.

Each call is self-contained (its own subprocess or HTTP client, its own
timeout) and shares no state with the rest of the package.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import httpx

from skillsyoga.errors import NetworkError, ValidationError, VcsError
from skillsyoga.paths import slugify


logger = logging.getLogger(__name__)

CLONE_TIMEOUT_SEC = 300
HTTP_TIMEOUT_SEC = 20.0
CLONE_DIR_PREFIX = "skillsyoga-"
REGISTRY_SEARCH_URL = "https://skills.sh/api/search"
REGISTRY_SEARCH_LIMIT = 20
GIST_API_URL = "https://api.github.com/gists"
USER_AGENT = "skillsyoga"


@dataclass
class SearchSkillResult:
    id: str
    skill_id: str
    name: str
    installs: int
    source: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchSkillResult:
        return cls(
            id=str(data.get("id") or ""),
            skill_id=str(data.get("skillId") or data.get("skill_id") or ""),
            name=str(data.get("name") or ""),
            installs=int(data.get("installs") or 0),
            source=str(data.get("source") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GistRequest:
    skill_name: str
    skill_description: str
    file_path: str
    selected_text: str


# --- git ---
def shallow_clone(url: str, dest: Path, timeout: float = CLONE_TIMEOUT_SEC) -> None:
    """
    function_purpose: Shallow-clone ``url`` into ``dest`` with the git client.

    Raises VcsError when git cannot be started, times out, or exits non-zero;
    the message carries git's stderr.
    """
    args = ["clone", "--depth", "1", url, str(dest)]
    try:
        res = subprocess.run(
            ["git"] + args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise VcsError(f"Failed to start git: {exc}") from exc
    except subprocess.TimeoutExpired as exc:
        raise VcsError(f"git clone timed out after {timeout}s") from exc

    logger.info("git %s (exit %s)", " ".join(args), res.returncode)
    if res.returncode != 0:
        raise VcsError(f"git clone failed: {res.stderr.strip()}")


def make_clone_dir() -> Path:
    """A fresh, uniquely named temporary directory for one clone."""
    return Path(tempfile.mkdtemp(prefix=CLONE_DIR_PREFIX))


def remove_tree_quietly(path: Path) -> None:
    """Best-effort removal of a temporary tree; failures are only logged."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Failed to remove temporary directory %s", path, exc_info=True)


# --- HTTP ---
def _client(client: httpx.Client | None) -> httpx.Client:
    return client if client is not None else httpx.Client(timeout=HTTP_TIMEOUT_SEC)


def search_registry(query: str, client: httpx.Client | None = None) -> list[SearchSkillResult]:
    """
    function_purpose: Search the public skills registry.

    Returns [] for a blank query. Transport errors, non-2xx responses and
    malformed payloads raise NetworkError.
    """
    q = (query or "").strip()
    if not q:
        return []

    http = _client(client)
    try:
        resp = http.get(REGISTRY_SEARCH_URL, params={"q": q, "limit": REGISTRY_SEARCH_LIMIT})
    except httpx.HTTPError as exc:
        raise NetworkError(f"Failed to reach skills.sh: {exc}") from exc
    finally:
        if client is None:
            http.close()

    if not resp.is_success:
        raise NetworkError(f"skills.sh search failed ({resp.status_code}): {resp.text[:500]}")
    try:
        data = resp.json()
        items = data["skills"]
        if not isinstance(items, list):
            raise TypeError("'skills' is not a list")
        return [SearchSkillResult.from_dict(item) for item in items if isinstance(item, dict)]
    except (ValueError, KeyError, TypeError) as exc:
        raise NetworkError(f"Invalid response from skills.sh: {exc}") from exc


def render_gist_content(request: GistRequest) -> str:
    selected_text = request.selected_text.strip()
    fence = "````" if "```" in selected_text else "```"
    return (
        "# SkillsYoga Excerpt\n\n"
        "## Skill\n"
        f"- Name: {request.skill_name.strip()}\n"
        f"- Description: {request.skill_description.strip()}\n"
        f"- File: {request.file_path.strip()}\n\n"
        "## Selected Text\n"
        f"{fence}\n{selected_text}\n{fence}\n"
    )


def create_gist(token: str | None, request: GistRequest, client: httpx.Client | None = None) -> str:
    """
    function_purpose: Publish a selected excerpt of a skill as a private GitHub gist.

    Returns the gist's html_url.
    """
    token = (token or "").strip()
    if not token:
        raise ValidationError("Please set GitHub Token in Settings.")
    if not request.selected_text.strip():
        raise ValidationError("Please select some text before creating a gist.")

    safe_name = request.skill_name.strip() or "skill"
    body = {
        "description": f"SkillsYoga excerpt from {safe_name}",
        "public": False,
        "files": {f"{slugify(safe_name)}-excerpt.md": {"content": render_gist_content(request)}},
    }
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
        "Authorization": f"Bearer {token}",
    }

    http = _client(client)
    try:
        resp = http.post(GIST_API_URL, json=body, headers=headers)
    except httpx.HTTPError as exc:
        raise NetworkError(f"Failed to create gist: {exc}") from exc
    finally:
        if client is None:
            http.close()

    if not resp.is_success:
        raise NetworkError(f"GitHub Gist API failed ({resp.status_code}): {resp.text[:500]}")
    try:
        url = resp.json().get("html_url")
    except (ValueError, AttributeError) as exc:
        raise NetworkError(f"Invalid GitHub response: {exc}") from exc
    if not isinstance(url, str) or not url:
        raise NetworkError("GitHub response missing gist URL")
    logger.info("Created gist %s", url)
    return url
