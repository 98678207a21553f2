"""
skillsyoga.settings

The persisted settings document and its JSON store.

The document is an explicit value: an operation loads it, mutates it in memory,
and saves it back whole. There is no module-level cached copy, so concurrent
writers simply race and the last save wins.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from skillsyoga.errors import SerializationError, ValidationError, io_errors
from skillsyoga.paths import expand_home


logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "~/.skillsyoga"
STATE_FILE_NAME = "state.json"
EDITOR_MODES = ("view", "edit")


@dataclass
class CustomToolInput:
    id: str
    name: str
    config_path: str
    skills_path: str
    cli: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomToolInput:
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            config_path=str(data.get("configPath") or data.get("config_path") or ""),
            skills_path=str(data.get("skillsPath") or data.get("skills_path") or ""),
            cli=bool(data.get("cli", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "configPath": self.config_path,
            "skillsPath": self.skills_path,
            "cli": self.cli,
        }


def _typed_field(data: dict[str, Any], key: str, expected: type, default: Any) -> Any:
    """A missing or null key yields ``default``; a value of the wrong JSON type is rejected."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, expected):
        raise SerializationError(f"Settings field '{key}' must be a JSON {expected.__name__}")
    return value


@dataclass
class SettingsDocument:
    tool_toggles: dict[str, bool] = field(default_factory=dict)
    custom_tools: list[CustomToolInput] = field(default_factory=list)
    tool_order: list[str] = field(default_factory=list)
    github_token: str | None = None
    skill_editor_default_mode: str = "view"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SettingsDocument:
        if not isinstance(data, dict):
            raise SerializationError("Settings document must be a JSON object")
        toggles = _typed_field(data, "toolToggles", dict, {})
        customs = _typed_field(data, "customTools", list, [])
        order = _typed_field(data, "toolOrder", list, [])
        token = _typed_field(data, "githubToken", str, None)
        mode = _typed_field(data, "skillEditorDefaultMode", str, "view")
        return cls(
            tool_toggles={str(k): bool(v) for k, v in toggles.items()},
            custom_tools=[CustomToolInput.from_dict(c) for c in customs if isinstance(c, dict)],
            tool_order=[str(x) for x in order],
            github_token=token,
            skill_editor_default_mode=mode or "view",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "toolToggles": dict(self.tool_toggles),
            "customTools": [c.to_dict() for c in self.custom_tools],
            "toolOrder": list(self.tool_order),
            "githubToken": self.github_token,
            "skillEditorDefaultMode": self.skill_editor_default_mode,
        }

    @property
    def has_github_token(self) -> bool:
        return bool(self.github_token and self.github_token.strip())

    @property
    def editor_mode(self) -> str:
        return "edit" if self.skill_editor_default_mode == "edit" else "view"


def resolve_data_dir() -> Path:
    """
    function_purpose: Resolve the application data directory.

    Uses SKILLSYOGA_DATA_DIR when set, otherwise ~/.skillsyoga.
    """
    env_dir = os.environ.get("SKILLSYOGA_DATA_DIR")
    return Path(env_dir).expanduser() if env_dir else expand_home(DEFAULT_DATA_DIR)


class SettingsStore:
    """Loads and saves the settings document as one pretty-printed JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def default(cls) -> SettingsStore:
        return cls(resolve_data_dir() / STATE_FILE_NAME)

    def load(self) -> SettingsDocument:
        if not self.path.exists():
            return SettingsDocument()
        with io_errors():
            text = self.path.read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SerializationError(f"{self.path}: {exc}") from exc
        return SettingsDocument.from_dict(data)

    def save(self, doc: SettingsDocument) -> None:
        with io_errors():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(doc.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
            )
        logger.debug("Settings saved to %s", self.path)


def set_github_token(doc: SettingsDocument, token: str) -> None:
    cleaned = (token or "").strip()
    doc.github_token = cleaned or None


def set_skill_editor_default_mode(doc: SettingsDocument, mode: str) -> None:
    clean = (mode or "").strip().lower()
    if clean not in EDITOR_MODES:
        raise ValidationError("Mode must be either 'view' or 'edit'")
    doc.skill_editor_default_mode = clean
