from __future__ import annotations

import json
from pathlib import Path

import pytest

from skillsyoga.errors import NotFoundError, SerializationError, ValidationError
from skillsyoga.settings import (
    CustomToolInput,
    SettingsDocument,
    SettingsStore,
    set_github_token,
    set_skill_editor_default_mode,
)
from skillsyoga.tools import (
    BUILT_IN_TOOLS,
    curated_sources,
    delete_custom_tool,
    find_tool_by_id,
    resolve_tools,
    skills_roots,
    upsert_custom_tool,
)


def test_resolve_tools_detection_and_enable_defaults(home: Path, settings: SettingsDocument) -> None:
    (home / ".claude").mkdir()
    (home / ".cursor" / "skills").mkdir(parents=True)

    tools = {t.id: t for t in resolve_tools(settings)}
    assert len(tools) == len(BUILT_IN_TOOLS)
    assert tools["claude-code"].detected and tools["claude-code"].enabled
    assert tools["cursor"].detected
    assert not tools["codex"].detected and not tools["codex"].enabled
    assert tools["claude-code"].skills_path == str(home / ".claude" / "skills")
    assert tools["claude-code"].kind == "builtin"


def test_stored_toggle_overrides_detection(home: Path, settings: SettingsDocument) -> None:
    (home / ".claude").mkdir()
    settings.tool_toggles = {"claude-code": False, "codex": True}

    tools = {t.id: t for t in resolve_tools(settings)}
    assert tools["claude-code"].detected and not tools["claude-code"].enabled
    assert tools["codex"].enabled


def test_alphabetical_and_display_order(home: Path, settings: SettingsDocument) -> None:
    names = [t.name for t in resolve_tools(settings)]
    assert names == sorted(names)

    settings.tool_order = ["codex", "cursor"]
    ordered = resolve_tools(settings, display_order=True)
    assert [t.id for t in ordered[:2]] == ["codex", "cursor"]
    rest = [t.name for t in ordered[2:]]
    assert rest == sorted(rest)


def test_upsert_custom_tool_is_idempotent_by_id(home: Path, settings: SettingsDocument) -> None:
    tool = CustomToolInput(id="My Tool", name="My Tool", config_path="", skills_path="~/.mytool/skills")
    stored = upsert_custom_tool(settings, tool)
    assert stored.id == "my-tool"
    assert stored.config_path == "~/.mytool/skills"

    upsert_custom_tool(settings, CustomToolInput("my-tool", "Renamed", "~/.mytool", "~/.mytool/skills"))
    assert len(settings.custom_tools) == 1
    assert settings.custom_tools[0].name == "Renamed"

    found = find_tool_by_id(settings, "my-tool")
    assert found.kind == "custom"
    assert found.skills_path == str(home / ".mytool" / "skills")


def test_upsert_rejects_builtin_collision_and_bad_input(home: Path, settings: SettingsDocument) -> None:
    with pytest.raises(ValidationError):
        upsert_custom_tool(settings, CustomToolInput("Claude Code", "Mine", "", "~/.x/skills"))
    with pytest.raises(ValidationError):
        upsert_custom_tool(settings, CustomToolInput("x", "", "", "~/.x/skills"))
    with pytest.raises(ValidationError):
        upsert_custom_tool(settings, CustomToolInput("x", "X", "", ""))
    with pytest.raises(ValidationError):
        upsert_custom_tool(settings, CustomToolInput("x", "X", "", "relative/skills"))
    assert settings.custom_tools == []


def test_persisted_custom_with_builtin_id_is_ignored(home: Path, settings: SettingsDocument) -> None:
    settings.custom_tools.append(CustomToolInput("cursor", "Fake", "/tmp/fake", "/tmp/fake/skills"))
    cursors = [t for t in resolve_tools(settings) if t.id == "cursor"]
    assert len(cursors) == 1
    assert cursors[0].kind == "builtin"


def test_delete_custom_tool_removes_toggle(home: Path, settings: SettingsDocument) -> None:
    upsert_custom_tool(settings, CustomToolInput("mine", "Mine", "", "~/.mine/skills"))
    settings.tool_toggles["mine"] = True
    delete_custom_tool(settings, "mine")
    assert settings.custom_tools == []
    assert "mine" not in settings.tool_toggles
    with pytest.raises(NotFoundError):
        find_tool_by_id(settings, "mine")


def test_skills_roots_cover_every_tool(home: Path, settings: SettingsDocument) -> None:
    upsert_custom_tool(settings, CustomToolInput("mine", "Mine", "", "~/.mine/skills"))
    roots = skills_roots(settings)
    assert home / ".mine" / "skills" in roots
    assert home / ".claude" / "skills" in roots


def test_curated_sources_sorted() -> None:
    names = [s.name for s in curated_sources()]
    assert names == sorted(names)
    assert len(names) == 5


def test_settings_store_round_trip(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "nested" / "state.json")
    assert store.load() == SettingsDocument()

    doc = SettingsDocument(
        tool_toggles={"cursor": False},
        custom_tools=[CustomToolInput("mine", "Mine", "~/.mine", "~/.mine/skills", True)],
        tool_order=["mine", "cursor"],
        github_token="ghp_x",
        skill_editor_default_mode="edit",
    )
    store.save(doc)
    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert raw["customTools"][0]["skillsPath"] == "~/.mine/skills"
    assert raw["toolOrder"] == ["mine", "cursor"]
    assert store.load() == doc


def test_settings_store_defaults_missing_keys(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"toolToggles": {"codex": True}, "customTools": []}), encoding="utf-8")
    doc = SettingsStore(path).load()
    assert doc.tool_toggles == {"codex": True}
    assert doc.tool_order == []
    assert doc.github_token is None
    assert doc.skill_editor_default_mode == "view"


def test_settings_store_rejects_malformed_json(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SerializationError):
        SettingsStore(path).load()


def test_token_and_editor_mode(settings: SettingsDocument) -> None:
    set_github_token(settings, "  ghp_abc  ")
    assert settings.github_token == "ghp_abc"
    assert settings.has_github_token
    set_github_token(settings, "   ")
    assert settings.github_token is None

    set_skill_editor_default_mode(settings, " EDIT ")
    assert settings.editor_mode == "edit"
    with pytest.raises(ValidationError):
        set_skill_editor_default_mode(settings, "preview")


@pytest.mark.parametrize(
    "raw",
    [
        {"toolToggles": ["x"]},
        {"customTools": {"id": "x"}},
        {"toolOrder": "abc"},
        {"githubToken": 123},
        {"skillEditorDefaultMode": ["edit"]},
    ],
)
def test_settings_store_rejects_wrong_field_types(tmp_path: Path, raw: dict) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    with pytest.raises(SerializationError):
        SettingsStore(path).load()


def test_settings_null_fields_use_defaults() -> None:
    doc = SettingsDocument.from_dict({"toolToggles": None, "githubToken": None, "toolOrder": None})
    assert doc == SettingsDocument()
