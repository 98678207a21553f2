"""
Entry point for ``python -m skillsyoga`` and the ``skillsyoga`` console script.

Without flags the stdio MCP server starts; ``--list``, ``--tools`` and
``--discover PATH`` print JSON and exit (see skillsyoga.server.cli_main).
"""

from skillsyoga.server import cli_main


def main() -> None:
    cli_main()


if __name__ == "__main__":
    main()
