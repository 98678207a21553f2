"""
skillsyoga.tools

Tool registry: the built-in catalog of AI coding tools plus user-defined custom
tools, resolved against the local filesystem on every call.

A tool is one ``ToolDescriptor`` regardless of origin; ``kind`` tells built-ins
and customs apart.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from skillsyoga.errors import NotFoundError, ValidationError
from skillsyoga.paths import expand_home, slugify
from skillsyoga.settings import CustomToolInput, SettingsDocument


logger = logging.getLogger(__name__)

KIND_BUILTIN = "builtin"
KIND_CUSTOM = "custom"


def _builtin(id: str, name: str, config_path: str, skills_path: str, cli: bool) -> CustomToolInput:
    return CustomToolInput(id=id, name=name, config_path=config_path, skills_path=skills_path, cli=cli)


BUILT_IN_TOOLS: tuple[CustomToolInput, ...] = (
    _builtin("cursor", "Cursor", "~/.cursor", "~/.cursor/skills", False),
    _builtin("gemini", "Gemini CLI", "~/.gemini", "~/.gemini/skills", True),
    _builtin("antigravity", "Antigravity", "~/.gemini/antigravity", "~/.gemini/antigravity/skills", False),
    _builtin("trae", "Trae", "~/.trae", "~/.trae/skills", False),
    _builtin("claude-code", "Claude Code", "~/.claude", "~/.claude/skills", True),
    _builtin("codex", "Codex", "~/.codex", "~/.codex/skills", True),
    _builtin("openclaw", "OpenClaw", "~/.openclaw", "~/.openclaw/skills", False),
    _builtin("opencode", "OpenCode", "~/.config/opencode", "~/.config/opencode/skills", True),
    _builtin("goose", "Goose", "~/.config/goose", "~/.config/goose/skills", True),
    _builtin("letta", "Letta", "~/.letta", "~/.letta/skills", True),
    _builtin("amp", "Amp", "~/.config/amp", "~/.config/agents/skills", True),
    _builtin("github-copilot", "GitHub Copilot", "~/.copilot", "~/.copilot/skills", False),
    _builtin("windsurf", "Windsurf", "~/.codeium/windsurf", "~/.codeium/windsurf/skills", False),
    _builtin("cline", "Cline", "~/.cline", "~/.cline/skills", False),
    _builtin("roo-code", "Roo Code", "~/.roo", "~/.roo/skills", False),
    _builtin("marscode", "MarsCode", "~/.marscode", "~/.marscode/skills", False),
    _builtin("tongyi-lingma", "Tongyi Lingma", "~/.lingma", "~/.lingma/skills", False),
    _builtin("baidu-comate", "Baidu Comate", "~/.comate", "~/.comate/skills", False),
)

BUILT_IN_IDS = frozenset(t.id for t in BUILT_IN_TOOLS)


@dataclass
class ToolDescriptor:
    id: str
    name: str
    kind: str
    config_path: str
    skills_path: str
    detected: bool
    enabled: bool
    cli: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SourceInfo:
    id: str
    name: str
    repo_url: str
    description: str
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def curated_sources() -> list[SourceInfo]:
    """Curated marketplace repositories, sorted by name."""
    sources = [
        SourceInfo(
            "cc-plugins",
            "Claude Code Plugins + Skills",
            "https://github.com/jeremylongshore/claude-code-plugins-plus-skills",
            "Mixed plugin and skill examples for Claude-style workflows.",
            ["claude", "skills"],
        ),
        SourceInfo(
            "composio",
            "Awesome Claude Skills (Composio)",
            "https://github.com/ComposioHQ/awesome-claude-skills",
            "Curated list of reusable Claude skills.",
            ["claude", "awesome-list"],
        ),
        SourceInfo(
            "antigravity-awesome",
            "Antigravity Awesome Skills",
            "https://github.com/sickn33/antigravity-awesome-skills",
            "Skills tailored for Antigravity environments.",
            ["antigravity", "skills"],
        ),
        SourceInfo(
            "openclaw-awesome",
            "Awesome OpenClaw Skills",
            "https://github.com/VoltAgent/awesome-openclaw-skills",
            "Community source for OpenClaw skill packs.",
            ["openclaw", "skills"],
        ),
        SourceInfo(
            "superpowers",
            "Obra Superpowers",
            "https://github.com/obra/superpowers",
            "Collection of workflow superpowers compatible with agent tools.",
            ["automation", "productivity"],
        ),
    ]
    sources.sort(key=lambda s: s.name)
    return sources


def tool_input_to_descriptor(
    tool: CustomToolInput, settings: SettingsDocument, kind: str
) -> ToolDescriptor:
    """
    function_purpose: Resolve a tool definition against the filesystem and settings.

    - detected: config path or skills path exists
    - enabled: stored toggle if any, else detected
    """
    config = expand_home(tool.config_path)
    skills = expand_home(tool.skills_path)
    detected = config.exists() or skills.exists()
    enabled = settings.tool_toggles.get(tool.id, detected)
    return ToolDescriptor(
        id=tool.id,
        name=tool.name,
        kind=kind,
        config_path=str(config),
        skills_path=str(skills),
        detected=detected,
        enabled=enabled,
        cli=tool.cli,
    )


def _display_key(order: list[str]):
    positions = {tool_id: idx for idx, tool_id in enumerate(order)}

    def key(tool: ToolDescriptor) -> tuple[int, int, str]:
        if tool.id in positions:
            return (0, positions[tool.id], "")
        return (1, 0, tool.name)

    return key


def resolve_tools(settings: SettingsDocument, display_order: bool = False) -> list[ToolDescriptor]:
    """
    function_purpose: Build the live tool list (built-ins + customs) without scanning skills.

    With display_order=True the persisted tool order is applied first and the
    remaining tools follow alphabetically; otherwise tools are sorted by name.
    """
    tools = [tool_input_to_descriptor(t, settings, KIND_BUILTIN) for t in BUILT_IN_TOOLS]
    for custom in settings.custom_tools:
        if custom.id in BUILT_IN_IDS:
            logger.warning("Ignoring custom tool '%s': id conflicts with a built-in tool", custom.id)
            continue
        tools.append(tool_input_to_descriptor(custom, settings, KIND_CUSTOM))

    if display_order:
        tools.sort(key=_display_key(settings.tool_order))
    else:
        tools.sort(key=lambda t: t.name)
    return tools


def find_tool_by_id(settings: SettingsDocument, tool_id: str) -> ToolDescriptor:
    for tool in resolve_tools(settings):
        if tool.id == tool_id:
            return tool
    raise NotFoundError(f"Tool not found: {tool_id}")


def skills_roots(settings: SettingsDocument) -> list[Path]:
    """The sanctioned roots for path authorization: every known tool's skills path."""
    return [Path(t.skills_path) for t in resolve_tools(settings)]


def _check_tool_path(label: str, value: str) -> None:
    if not (value == "~" or value.startswith("~/") or Path(value).is_absolute()):
        raise ValidationError(f"{label} must be absolute or start with '~/': {value}")


def upsert_custom_tool(settings: SettingsDocument, tool: CustomToolInput) -> CustomToolInput:
    """
    function_purpose: Insert or replace a custom tool keyed by its slugified id.

    Rejects ids that collide with a built-in tool. Returns the stored entry.
    """
    next_id = slugify(tool.id or tool.name)
    if next_id in BUILT_IN_IDS:
        raise ValidationError("Custom tool id conflicts with a built-in integration")

    name = tool.name.strip()
    skills_path = tool.skills_path.strip()
    config_path = tool.config_path.strip() or skills_path
    if not name:
        raise ValidationError("Custom tool name cannot be empty")
    if not skills_path:
        raise ValidationError("Custom tool skills path cannot be empty")
    _check_tool_path("Skills path", skills_path)
    _check_tool_path("Config path", config_path)

    clean = CustomToolInput(
        id=next_id,
        name=name,
        config_path=config_path,
        skills_path=skills_path,
        cli=tool.cli,
    )
    for idx, existing in enumerate(settings.custom_tools):
        if existing.id == clean.id:
            settings.custom_tools[idx] = clean
            break
    else:
        settings.custom_tools.append(clean)
    return clean


def delete_custom_tool(settings: SettingsDocument, tool_id: str) -> None:
    settings.custom_tools = [t for t in settings.custom_tools if t.id != tool_id]
    settings.tool_toggles.pop(tool_id, None)


def set_tool_enabled(settings: SettingsDocument, tool_id: str, enabled: bool) -> None:
    settings.tool_toggles[tool_id] = enabled


def reorder_tools(settings: SettingsDocument, tool_order: list[str]) -> None:
    settings.tool_order = list(tool_order)
