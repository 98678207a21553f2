"""
skillsyoga: catalog, edit and import skill bundles for AI coding tools.

This package discovers SKILL.md bundles under each tool's skills root, merges
them into one catalog, and exposes guarded file operations and GitHub/registry
imports through a FastMCP stdio server.
"""

__version__: str = "0.1.0"


def version() -> str:
    return __version__


__all__: list[str] = ["__version__", "version"]
