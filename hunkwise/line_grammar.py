"""Line-level grammar for git-style unified diffs.

Every input line maps to exactly one :class:`LineToken`. The productions are
checked in a fixed precedence order so that header lines are never mistaken
for content lines:

1. ``diff --git`` file header
2. ``--- a/``, ``+++ b/`` and ``/dev/null`` path markers (only before a file's
   first content line and outside a hunk body)
3. ``@@`` hunk header
4. ``+`` / ``-`` / `` `` content lines
5. ``\\`` no-newline marker
6. git extended header lines (``rename from``, ``Binary files ...``, ...)
7. anything else
"""

from __future__ import annotations

from dataclasses import dataclass
from re import Match, compile
from typing import Literal

TokenKind = Literal[
    "file_header",
    "old_path",
    "new_path",
    "hunk_header",
    "added",
    "removed",
    "context",
    "no_newline",
    "new_file",
    "deleted_file",
    "rename_from",
    "rename_to",
    "copy_from",
    "copy_to",
    "binary",
    "metadata",
    "other",
]

FILE_HEADER_PREFIX = "diff --git "
DEV_NULL = "/dev/null"

HUNK_HEADER_RE = compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@(?P<section>.*)$"
)
QUOTED_HEADER_PATHS_RE = compile(r'^"((?:[^"\\]|\\.)*)" "((?:[^"\\]|\\.)*)"$')

_PATH_TOKENS: tuple[tuple[str, TokenKind], ...] = (
    ("rename from ", "rename_from"),
    ("rename to ", "rename_to"),
    ("copy from ", "copy_from"),
    ("copy to ", "copy_to"),
)
_METADATA_PREFIXES = (
    "index ",
    "old mode ",
    "new mode ",
    "similarity index ",
    "dissimilarity index ",
)
_C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


@dataclass(slots=True)
class HunkHeader:
    """Parsed ``@@ -a,b +c,d @@ section`` values."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    section: str


@dataclass(slots=True)
class LineToken:
    """A classified diff line."""

    kind: TokenKind
    line: str
    old_path: str | None = None
    new_path: str | None = None
    hunk: HunkHeader | None = None


def tokenize_line(line: str, *, markers_allowed: bool = True) -> LineToken:
    """Classify one diff line.

    ``markers_allowed`` is false once a file has content lines or while the
    current hunk still expects lines; ``---``/``+++`` lines are then content.
    Even when allowed, only ``--- a/``, ``+++ b/`` and ``/dev/null`` forms
    are path markers.
    """
    if line.startswith(FILE_HEADER_PREFIX):
        old_path, new_path = parse_file_header(line)
        return LineToken(kind="file_header", line=line, old_path=old_path, new_path=new_path)

    if markers_allowed:
        if _is_path_marker(line, "--- ", "a/"):
            return LineToken(kind="old_path", line=line, old_path=parse_marker_path(line[4:]))
        if _is_path_marker(line, "+++ ", "b/"):
            return LineToken(kind="new_path", line=line, new_path=parse_marker_path(line[4:]))

    if line.startswith("@@"):
        return LineToken(kind="hunk_header", line=line, hunk=parse_hunk_header(line))

    if line.startswith("+"):
        return LineToken(kind="added", line=line)
    if line.startswith("-"):
        return LineToken(kind="removed", line=line)
    if line.startswith(" "):
        return LineToken(kind="context", line=line)
    if line.startswith("\\"):
        return LineToken(kind="no_newline", line=line)

    return _tokenize_extended(line)


def parse_hunk_header(line: str) -> HunkHeader | None:
    """Parse a hunk header, returning ``None`` when it does not match the grammar.

    A missing count means a one-line range, as in ``@@ -5 +5 @@``.
    """
    match: Match[str] | None = HUNK_HEADER_RE.match(line)
    if match is None:
        return None

    old_count = int(match.group("old_count")) if match.group("old_count") is not None else 1
    new_count = int(match.group("new_count")) if match.group("new_count") is not None else 1
    return HunkHeader(
        old_start=int(match.group("old_start")),
        old_count=old_count,
        new_start=int(match.group("new_start")),
        new_count=new_count,
        section=match.group("section").strip(),
    )


def parse_file_header(line: str) -> tuple[str | None, str | None]:
    """Extract ``(old_path, new_path)`` from a ``diff --git a/<old> b/<new>`` line.

    Unquoted paths are split at the last ``" b/"``; paths containing that
    substring themselves are ambiguous and may misparse. Either element is
    ``None`` when it cannot be recovered.
    """
    if not line.startswith(FILE_HEADER_PREFIX):
        return (None, None)
    rest = line[len(FILE_HEADER_PREFIX) :].rstrip("\r")

    quoted = QUOTED_HEADER_PATHS_RE.match(rest)
    if quoted is not None:
        old_raw = unquote_path(quoted.group(1))
        new_raw = unquote_path(quoted.group(2))
        return (_strip_prefix(old_raw, "a/"), _strip_prefix(new_raw, "b/"))

    if not rest.startswith("a/"):
        return (None, None)
    split_at = rest.rfind(" b/")
    if split_at < 2:
        return (None, None)

    old_path = rest[2:split_at] or None
    new_path = rest[split_at + 3 :] or None
    return (old_path, new_path)


def parse_marker_path(value: str) -> str | None:
    """Parse the path portion of a ``---``/``+++`` line; ``/dev/null`` becomes ``None``."""
    token = value.rstrip("\r").split("\t", 1)[0].rstrip()
    if token.startswith('"') and token.endswith('"') and len(token) >= 2:
        token = unquote_path(token[1:-1])
    if token == DEV_NULL or not token:
        return None
    return _strip_ab_prefix(token)


def unquote_path(value: str) -> str:
    """Decode git's C-style quoting (``\\t``, ``\\"``, octal UTF-8 bytes).

    Escapes are collected as bytes and the result is decoded as UTF-8, so
    literal non-ASCII characters survive next to escapes. An unknown escape or
    a dangling backslash is kept as written.
    """
    if "\\" not in value:
        return value

    out = bytearray()
    index = 0
    while index < len(value):
        char = value[index]
        if char != "\\" or index + 1 == len(value):
            out += char.encode("utf-8")
            index += 1
            continue

        nxt = value[index + 1]
        octal = value[index + 1 : index + 4]
        if len(octal) == 3 and all(digit in "01234567" for digit in octal):
            out.append(int(octal, 8) & 0xFF)
            index += 4
        elif nxt in _C_ESCAPES:
            out.append(_C_ESCAPES[nxt])
            index += 2
        else:
            out += ("\\" + nxt).encode("utf-8")
            index += 2
    return out.decode("utf-8", "replace")


def _is_path_marker(line: str, marker: str, side_prefix: str) -> bool:
    if not line.startswith(marker):
        return False
    value = line[len(marker) :]
    return (
        value.startswith(side_prefix)
        or value.startswith('"' + side_prefix)
        or value.rstrip("\r").split("\t", 1)[0].rstrip() == DEV_NULL
    )


def _tokenize_extended(line: str) -> LineToken:
    if line.startswith("new file mode"):
        return LineToken(kind="new_file", line=line)
    if line.startswith("deleted file mode"):
        return LineToken(kind="deleted_file", line=line)
    if line.startswith("Binary files ") or line.startswith("GIT binary patch"):
        return LineToken(kind="binary", line=line)

    for prefix, kind in _PATH_TOKENS:
        if line.startswith(prefix):
            path = _parse_bare_path(line[len(prefix) :])
            if kind in {"rename_from", "copy_from"}:
                return LineToken(kind=kind, line=line, old_path=path)
            return LineToken(kind=kind, line=line, new_path=path)

    if line.startswith(_METADATA_PREFIXES):
        return LineToken(kind="metadata", line=line)
    return LineToken(kind="other", line=line)


def _parse_bare_path(value: str) -> str | None:
    token = value.rstrip("\r")
    if token.startswith('"') and token.endswith('"') and len(token) >= 2:
        token = unquote_path(token[1:-1])
    return token or None


def _strip_ab_prefix(path: str) -> str:
    if path.startswith("a/") or path.startswith("b/"):
        return path[2:]
    return path


def _strip_prefix(path: str, prefix: str) -> str | None:
    if not path.startswith(prefix):
        return None
    return path[len(prefix) :] or None
