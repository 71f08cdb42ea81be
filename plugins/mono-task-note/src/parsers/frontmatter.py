"""
YAML frontmatter codec for Markdown notes.

Main API:
    split_frontmatter(text)  → (mapping | None, body)
    render_note(mapping, body)  → text
    read_note(path) / write_note(path, mapping, body)

A frontmatter block is a leading ``---`` line, YAML, and a closing ``---``
line. The loader keeps ``HH:mm`` and ``YYYY-MM-DD`` scalars as strings
(stock YAML 1.1 would turn ``14:30`` into the base-60 integer 870 and dates
into ``date`` objects), so wire formats survive a round trip.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from models.errors import FrontmatterError

_DELIMITER = "---"

# YAML 1.1 int pattern without the sexagesimal (base 60) form
_INT_PATTERN = re.compile(
    r"""^(?:[-+]?0b[0-1_]+
    |[-+]?0[0-7_]+
    |[-+]?(?:0|[1-9][0-9_]*)
    |[-+]?0x[0-9a-fA-F_]+)$""",
    re.X,
)


class _NoteLoader(yaml.SafeLoader):
    """SafeLoader that leaves times and dates as plain strings."""


_NoteLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag not in ("tag:yaml.org,2002:timestamp", "tag:yaml.org,2002:int")
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_NoteLoader.add_implicit_resolver("tag:yaml.org,2002:int", _INT_PATTERN, list("-+0123456789"))


def split_frontmatter(text: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Split note text into (frontmatter mapping, body).

    Returns (None, text) when the note has no frontmatter block. An empty
    block yields an empty mapping.

    Raises:
        FrontmatterError: the block is not valid YAML or not a mapping
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != _DELIMITER:
        return None, text

    for idx in range(1, len(lines)):
        if lines[idx].rstrip("\r\n").rstrip() == _DELIMITER:
            raw = "".join(lines[1:idx])
            body = "".join(lines[idx + 1:])
            break
    else:
        return None, text

    try:
        data = yaml.load(raw, Loader=_NoteLoader)
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Invalid YAML frontmatter: {e}") from e

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise FrontmatterError("Frontmatter is not a mapping")
    return data, body


def render_note(frontmatter: Optional[Dict[str, Any]], body: str) -> str:
    """Serialise a mapping and body back into note text."""
    if frontmatter is None:
        return body
    dumped = yaml.safe_dump(
        frontmatter, sort_keys=False, allow_unicode=True, default_flow_style=False
    )
    if not frontmatter:
        dumped = ""
    return f"{_DELIMITER}\n{dumped}{_DELIMITER}\n{body}"


def read_note(path: Path) -> Tuple[Optional[Dict[str, Any]], str]:
    """Read a note from disk and split its frontmatter."""
    return split_frontmatter(path.read_text(encoding="utf-8"))


def write_note(path: Path, frontmatter: Optional[Dict[str, Any]], body: str) -> None:
    """
    Write a note atomically.

    The text goes to a temporary file in the same directory which then
    replaces the target, so readers see either the old or the new note.
    """
    text = render_note(frontmatter, body)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
