"""
skillsyoga.dashboard

The catalog view: tools in display order, the merged skill list across every
enabled tool, curated sources and summary counts. Recomputed from disk on every
call; nothing here is cached.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from skillsyoga.scanner import SkillRecord, merge_skills, scan_tool_skills
from skillsyoga.settings import SettingsDocument
from skillsyoga.tools import ToolDescriptor, curated_sources, resolve_tools


def collect_skills(tools: list[ToolDescriptor]) -> list[SkillRecord]:
    """Scan every enabled tool in the given order and merge the results."""
    raw: list[SkillRecord] = []
    for tool in tools:
        if not tool.enabled:
            continue
        raw.extend(scan_tool_skills(tool))
    return merge_skills(raw)


def build_dashboard(settings: SettingsDocument, data_dir: Path) -> dict[str, Any]:
    """
    function_purpose: Assemble the full dashboard payload.

    Returns:
    - tools: list[dict]           display-ordered tool descriptors
    - skills: list[dict]          merged skill records
    - sources: list[dict]         curated marketplace sources
    - stats: dict                 installed_skills, detected_tools, enabled_tools
    - app_data_dir: str
    - has_github_token: bool
    - skill_editor_default_mode: "view" | "edit"
    """
    tools = resolve_tools(settings, display_order=True)
    skills = collect_skills(tools)
    return {
        "tools": [t.to_dict() for t in tools],
        "skills": [s.to_dict() for s in skills],
        "sources": [s.to_dict() for s in curated_sources()],
        "stats": {
            "installed_skills": len(skills),
            "detected_tools": sum(1 for t in tools if t.detected),
            "enabled_tools": sum(1 for t in tools if t.enabled),
        },
        "app_data_dir": str(data_dir),
        "has_github_token": settings.has_github_token,
        "skill_editor_default_mode": settings.editor_mode,
    }
