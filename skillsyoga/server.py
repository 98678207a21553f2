"""
skillsyoga.server

FastMCP stdio server exposing the SkillsYoga core: a catalog of skill bundles
installed for many AI coding tools on this machine.

Server-level documentation:
- Purpose: Browse, edit, import and relocate skill bundles (directories with a
  SKILL.md descriptor) across every tool's skills root from one place.
- Why use it:
  * One merged catalog of skills across Cursor, Claude Code, Codex, Gemini CLI, ...
  * Read and edit files inside a bundle with path confinement
  * Install skills from GitHub or the skills.sh registry
  * Copy a bundle from one tool to another
- Transport: STDIO by default
- Safety: every path is re-authorized against the live skills roots; relative
  paths reject traversal; deletions move to a trash directory
- Logging: Console + rotating file logs

Environment (optional):
- SKILLSYOGA_DATA_DIR: application data directory (default: ~/.skillsyoga)
- LOG_FILE: override log file path (default: <data dir>/logs/skillsyoga.log)
- TRASH_DIR: override trash directory (default: <data dir>/trash)

Usage:
  python -m skillsyoga            # starts stdio server
  python -m skillsyoga --help     # CLI for inspection without starting server
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from skillsyoga import fileops, installer, remote, settings as settings_mod, tools as tools_mod
from skillsyoga.dashboard import build_dashboard, collect_skills
from skillsyoga.metadata import render_skill_md
from skillsyoga.settings import CustomToolInput, SettingsStore, resolve_data_dir


SERVER_NAME = "SkillsYoga"
LOGGER_NAME = "skillsyoga"
LOG_FILE_NAME = "skillsyoga.log"


# --- Logging setup ---
def configure_logging() -> logging.Logger:
    """
    function_purpose: Configure package-wide logging to both console and rotating file.

    - Creates the logs directory if needed.
    - Idempotent: handlers are attached once per process.
    - Returns the configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger

    log_file_env = os.environ.get("LOG_FILE")
    log_file = Path(log_file_env) if log_file_env else resolve_data_dir() / "logs" / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"
    )

    # Console handler; stderr keeps stdout free for the stdio transport
    sh = logging.StreamHandler()
    sh.setLevel(logging.INFO)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    # Rotating file handler (5 files, 5MB each)
    fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
    fh.setLevel(logging.INFO)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    logger.info("Logging initialized. File: %s", str(log_file))
    return logger


def _store() -> SettingsStore:
    return SettingsStore.default()


mcp = FastMCP(
    SERVER_NAME,
    instructions=(
        "SkillsYoga MCP Server\n"
        "\n"
        "Purpose:\n"
        "- Manage skill bundles (folders with a SKILL.md descriptor) installed for AI coding tools\n"
        "  such as Claude Code, Cursor, Codex and Gemini CLI.\n"
        "\n"
        "Catalog:\n"
        "- dashboard_get(): tools, merged skills (one entry per name, enabled_for lists the tools), stats\n"
        "- tool_list(), tool_set_enabled(), tool_upsert_custom(), tool_delete_custom(), tool_reorder()\n"
        "- tool_discover_skill_roots(scan_root): candidate skills roots for a custom tool\n"
        "\n"
        "Editing (path = a skill directory from the catalog, relative_path inside it):\n"
        "- skill_read, skill_list_files, skill_read_entry, skill_save_entry, skill_create_dir,\n"
        "  skill_rename_entry, skill_delete_entry, skill_delete_empty_dir, skill_delete,\n"
        "  skill_save, skill_create, skill_copy_to_tool\n"
        "\n"
        "Importing:\n"
        "- skill_install_from_github(repo_url, target_tool_id, skill_path?)\n"
        "- skill_search_registry(query), skill_install_from_registry(source, skill_id, target_tool_id)\n"
        "\n"
        "Safety:\n"
        "- Paths outside every tool's skills directory are rejected; relative paths may not be absolute\n"
        "  or contain '..'. Deleted files and directories are moved to a trash directory.\n"
    ),
)


@mcp.tool
def skill_server_info() -> dict[str, Any]:
    """
    function_purpose: Return server name, transport and where state is stored.
    """
    data_dir = resolve_data_dir()
    return {
        "name": SERVER_NAME,
        "data_dir": str(data_dir),
        "settings_path": str(_store().path),
        "trash_dir": str(fileops.resolve_trash_dir()),
        "transport": "stdio",
    }


@mcp.tool
def dashboard_get() -> dict[str, Any]:
    """
    function_purpose: Full catalog view: display-ordered tools, merged skills, sources and stats.

    Returns:
    - tools, skills, sources, stats, app_data_dir, has_github_token, skill_editor_default_mode
    """
    return build_dashboard(_store().load(), resolve_data_dir())


@mcp.tool
def tool_list() -> list[dict[str, Any]]:
    """List every known tool (built-in and custom) in display order."""
    doc = _store().load()
    return [t.to_dict() for t in tools_mod.resolve_tools(doc, display_order=True)]


@mcp.tool
def tool_set_enabled(tool_id: str, enabled: bool) -> dict[str, Any]:
    """Override whether a tool's skills show up in the catalog."""
    store = _store()
    doc = store.load()
    tools_mod.set_tool_enabled(doc, tool_id, enabled)
    store.save(doc)
    return {"tool_id": tool_id, "enabled": enabled}


@mcp.tool
def tool_upsert_custom(
    id: str, name: str, skills_path: str, config_path: str = "", cli: bool = False
) -> dict[str, Any]:
    """
    function_purpose: Add or replace a user-defined tool, keyed by its slugified id.

    Args:
    - id: str            Tool id (slugified; must not collide with a built-in id)
    - name: str          Display name
    - skills_path: str   Absolute or '~/'-relative skills directory
    - config_path: str   Config directory used for detection (defaults to skills_path)
    - cli: bool          Whether the tool is a CLI

    Returns the refreshed dashboard.
    """
    store = _store()
    doc = store.load()
    tools_mod.upsert_custom_tool(
        doc,
        CustomToolInput(id=id, name=name, config_path=config_path, skills_path=skills_path, cli=cli),
    )
    store.save(doc)
    return build_dashboard(doc, resolve_data_dir())


@mcp.tool
def tool_delete_custom(tool_id: str) -> dict[str, Any]:
    """Remove a custom tool and its enable override; returns the refreshed dashboard."""
    store = _store()
    doc = store.load()
    tools_mod.delete_custom_tool(doc, tool_id)
    store.save(doc)
    return build_dashboard(doc, resolve_data_dir())


@mcp.tool
def tool_reorder(tool_order: list[str]) -> dict[str, Any]:
    """Persist the display order of tools (ids not listed follow alphabetically)."""
    store = _store()
    doc = store.load()
    tools_mod.reorder_tools(doc, tool_order)
    store.save(doc)
    return {"tool_order": doc.tool_order}


@mcp.tool
def tool_discover_skill_roots(scan_root: str) -> list[dict[str, Any]]:
    """
    function_purpose: Find directories under scan_root that look like skills roots.

    Results are ranked by the number of bundles they hold, shallowest first on ties.
    """
    return [r.to_dict() for r in installer.discover_skills_paths(scan_root)]


@mcp.tool
def skill_read(path: str) -> str:
    """Read the SKILL.md of the bundle at path."""
    return fileops.read_skill_file(_store().load(), path)


@mcp.tool
def skill_list_files(path: str) -> list[dict[str, Any]]:
    """List non-hidden files and directories inside a bundle (relative paths)."""
    return [e.to_dict() for e in fileops.list_skill_files(_store().load(), path)]


@mcp.tool
def skill_read_entry(path: str, relative_path: str) -> str:
    """Read one text file inside a bundle."""
    return fileops.read_skill_entry(_store().load(), path, relative_path)


@mcp.tool
def skill_save_entry(path: str, relative_path: str, content: str) -> dict[str, Any]:
    """Overwrite or create one file inside a bundle (parent directories are created)."""
    fileops.save_skill_entry(_store().load(), path, relative_path, content)
    return {"path": path, "relative_path": relative_path, "written": True}


@mcp.tool
def skill_create_dir(path: str, relative_path: str) -> dict[str, Any]:
    """Create a directory (recursively) inside a bundle."""
    fileops.create_skill_dir(_store().load(), path, relative_path)
    return {"path": path, "relative_path": relative_path, "created": True}


@mcp.tool
def skill_rename_entry(path: str, old_relative_path: str, new_relative_path: str) -> dict[str, Any]:
    """Rename or move an entry inside a bundle; the destination must not exist."""
    fileops.rename_skill_entry(_store().load(), path, old_relative_path, new_relative_path)
    return {"path": path, "relative_path": new_relative_path, "renamed": True}


@mcp.tool
def skill_delete_entry(path: str, relative_path: str) -> dict[str, Any]:
    """Move one file of a bundle to the trash."""
    trash_path = fileops.delete_skill_entry(_store().load(), path, relative_path)
    return {"trashed": True, "trash_path": str(trash_path)}


@mcp.tool
def skill_delete_empty_dir(path: str, relative_path: str) -> dict[str, Any]:
    """Move an empty directory of a bundle to the trash."""
    trash_path = fileops.delete_skill_empty_dir(_store().load(), path, relative_path)
    return {"trashed": True, "trash_path": str(trash_path)}


@mcp.tool
def skill_delete(path: str) -> dict[str, Any]:
    """Move a whole bundle to the trash."""
    trash_path = fileops.delete_skill(_store().load(), path)
    return {"trashed": True, "trash_path": str(trash_path)}


@mcp.tool
def skill_save(content: str, target_tool_id: str, existing_path: str | None = None) -> dict[str, Any]:
    """
    function_purpose: Save SKILL.md content as a new bundle or over an existing one.

    Args:
    - content: str               Full SKILL.md text
    - target_tool_id: str        Tool whose skills root receives a new bundle
    - existing_path: str | None  Bundle directory to overwrite instead

    Returns the saved skill record.
    """
    return fileops.save_skill_file(_store().load(), content, target_tool_id, existing_path).to_dict()


@mcp.tool
def skill_create(name: str, description: str, target_tool_id: str, body: str = "") -> dict[str, Any]:
    """
    function_purpose: Create a new bundle from a name, description and markdown body.

    The SKILL.md header is generated; the bundle directory is the slugified name.
    """
    content = render_skill_md(name, description, body)
    return fileops.save_skill_file(_store().load(), content, target_tool_id).to_dict()


@mcp.tool
def skill_copy_to_tool(source_path: str, target_tool_id: str) -> dict[str, Any]:
    """Copy an installed bundle into another tool's skills root."""
    return fileops.copy_skill_to_tool(_store().load(), source_path, target_tool_id).to_dict()


@mcp.tool
def skill_install_from_github(
    repo_url: str, target_tool_id: str, skill_path: str | None = None
) -> dict[str, Any]:
    """
    function_purpose: Install a skill from a GitHub repository into a tool.

    Args:
    - repo_url: str           https://github.com/<owner>/<repo>
    - target_tool_id: str     Destination tool
    - skill_path: str | None  Bundle directory inside the repository (auto-detected when omitted)
    """
    return installer.install_skill_from_github(
        _store().load(), repo_url, target_tool_id, skill_path
    ).to_dict()


@mcp.tool
def skill_search_registry(query: str) -> list[dict[str, Any]]:
    """Search the skills.sh registry; results feed skill_install_from_registry."""
    return [r.to_dict() for r in remote.search_registry(query)]


@mcp.tool
def skill_install_from_registry(source: str, skill_id: str, target_tool_id: str) -> dict[str, Any]:
    """Install a registry hit (source 'owner/repo', skill_id) into a tool."""
    return installer.install_from_registry(_store().load(), source, skill_id, target_tool_id).to_dict()


@mcp.tool
def settings_set_github_token(token: str) -> dict[str, Any]:
    """Store (or clear, when blank) the GitHub token used for publishing gists."""
    store = _store()
    doc = store.load()
    settings_mod.set_github_token(doc, token)
    store.save(doc)
    return {"has_github_token": doc.has_github_token}


@mcp.tool
def settings_set_editor_mode(mode: str) -> dict[str, Any]:
    """Set the default skill editor mode: 'view' or 'edit'."""
    store = _store()
    doc = store.load()
    settings_mod.set_skill_editor_default_mode(doc, mode)
    store.save(doc)
    return {"skill_editor_default_mode": doc.skill_editor_default_mode}


@mcp.tool
def gist_create(
    skill_name: str, skill_description: str, file_path: str, selected_text: str
) -> dict[str, Any]:
    """
    function_purpose: Publish a selected excerpt of a skill file as a private GitHub gist.

    Requires a GitHub token (settings_set_github_token). Returns {"url": ...}.
    """
    doc = _store().load()
    request = remote.GistRequest(
        skill_name=skill_name,
        skill_description=skill_description,
        file_path=file_path,
        selected_text=selected_text,
    )
    return {"url": remote.create_gist(doc.github_token, request)}


# --- Entry points ---
def run() -> None:
    """
    function_purpose: Entry point to start the MCP stdio server.
    """
    logger = configure_logging()
    logger.info("Server starting with data_dir=%s", str(resolve_data_dir()))
    mcp.run()  # stdio transport by default


def cli_main(argv: list[str] | None = None) -> None:
    """
    function_purpose: CLI for inspecting the catalog without starting the MCP server.

    Usage:
      python -m skillsyoga --list
      python -m skillsyoga --tools
      python -m skillsyoga --discover <PATH>
    """
    import argparse
    import json

    parser = argparse.ArgumentParser(
        prog="skillsyoga",
        description="Inspect installed skills across AI coding tools or start the stdio MCP server.",
    )
    parser.add_argument(
        "--list", action="store_true", help="List the merged skill catalog and exit"
    )
    parser.add_argument(
        "--tools", action="store_true", help="List known tools with detection state and exit"
    )
    parser.add_argument(
        "--discover", metavar="PATH", help="Find candidate skills roots under PATH and exit"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start MCP stdio server (default when no flags used)",
    )

    args = parser.parse_args(argv)
    logger = configure_logging()

    if args.list:
        logger.info("Listing skills...")
        doc = _store().load()
        skills = collect_skills(tools_mod.resolve_tools(doc, display_order=True))
        print(json.dumps([s.to_dict() for s in skills], indent=2, ensure_ascii=False))
        return

    if args.tools:
        logger.info("Listing tools...")
        doc = _store().load()
        result = [t.to_dict() for t in tools_mod.resolve_tools(doc, display_order=True)]
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return

    if args.discover:
        logger.info("Discovering skills roots under: %s", args.discover)
        roots = installer.discover_skills_paths(args.discover)
        print(json.dumps([r.to_dict() for r in roots], indent=2, ensure_ascii=False))
        return

    # Default: start server
    run()


if __name__ == "__main__":
    cli_main()
