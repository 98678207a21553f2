"""
skillsyoga.metadata

Lenient extraction of ``name`` and ``description`` from a SKILL.md descriptor.

Descriptors in the wild are frequently hand written: missing frontmatter,
unterminated headers, values that are not valid YAML. Parsing here is line
based and never raises; every gap falls through to a fallback chain.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass

import yaml


SKILL_FILE = "SKILL.md"
NO_DESCRIPTION = "No description"
HEADER_DELIMITER = "---"
BLOCK_SCALAR_MARKERS = {">", "|", ">-", ">+", "|-", "|+"}
RULE_CHARS = set("-=*_")


@dataclass
class SkillMeta:
    name: str
    description: str


def split_frontmatter(content: str) -> tuple[list[str] | None, str]:
    """
    function_purpose: Split descriptor text into optional header lines and body text.

    The header exists only when the text (leading whitespace ignored) opens with a
    standalone '---' line and a later standalone '---' line closes it.
    """
    trimmed = content.lstrip("\ufeff \t\r\n")
    lines = trimmed.splitlines()
    if not lines or lines[0].strip() != HEADER_DELIMITER:
        return None, content

    for idx in range(1, len(lines)):
        if lines[idx].strip() == HEADER_DELIMITER:
            body = "\n".join(lines[idx + 1 :]).lstrip("\r\n")
            return lines[1:idx], body

    return None, content


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def header_value(header: list[str], key: str) -> str | None:
    """
    function_purpose: Read one top-level string field from header lines.

    Handles ``key: value``, quoted values, and folded/literal block scalars whose
    indented continuation lines are joined with single spaces.

    A header block indented as a whole is read as if it started at column 0.
    """
    prefix = f"{key}:"
    header = textwrap.dedent("\n".join(header)).splitlines()
    for idx, line in enumerate(header):
        if not line.startswith(prefix):
            continue
        after_key = line[len(prefix) :].strip()

        if after_key in BLOCK_SCALAR_MARKERS:
            parts: list[str] = []
            for cont in header[idx + 1 :]:
                if not cont.startswith((" ", "\t")):
                    break
                if cont.strip():
                    parts.append(cont.strip())
            joined = " ".join(parts).strip()
            return joined or None

        value = _strip_quotes(after_key).strip()
        return value or None
    return None


def _first_heading(body: str) -> str | None:
    for line in body.splitlines():
        if line.startswith("#"):
            return line.lstrip("#").strip() or None
    return None


def _first_paragraph_line(body: str) -> str | None:
    for line in body.splitlines():
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        if set(text) <= RULE_CHARS:
            continue
        return text
    return None


def parse_skill_metadata(content: str, fallback_name: str) -> SkillMeta:
    """
    function_purpose: Extract SkillMeta from descriptor text; never fails.

    Fallbacks:
    - name: first '#' heading of the body, else ``fallback_name``
    - description: first body line that is neither a heading nor a horizontal
      rule, else "No description"
    """
    header, body = split_frontmatter(content or "")

    name = header_value(header, "name") if header is not None else None
    description = header_value(header, "description") if header is not None else None

    if name is None:
        name = _first_heading(body) or fallback_name
    if description is None:
        description = _first_paragraph_line(body) or NO_DESCRIPTION

    return SkillMeta(name=name, description=description)


def render_skill_md(name: str, description: str, body: str = "") -> str:
    """
    function_purpose: Render a new SKILL.md with a YAML header and markdown body.

    Newlines in the description are flattened so the header stays one line per
    field and reads back through ``parse_skill_metadata`` unchanged.
    """
    fields = {
        "name": name.strip(),
        "description": " ".join(description.split()),
    }
    header = yaml.safe_dump(
        fields,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=1_000_000,
    )
    text = body.strip("\n") or f"# {fields['name']}\n\n{fields['description']}"
    return f"{HEADER_DELIMITER}\n{header}{HEADER_DELIMITER}\n\n{text}\n"
