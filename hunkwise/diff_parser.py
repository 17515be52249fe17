"""Unified diff parser primitives."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Literal

from hunkwise.line_grammar import LineToken, TokenKind, tokenize_line

logger = logging.getLogger(__name__)

UNKNOWN_FILE = "Unknown File"

LineKind = Literal["added", "removed", "unchanged"]
FileStatus = Literal["modified", "added", "deleted", "renamed", "copied"]

LINE_MARKERS: dict[str, str] = {"added": "+", "removed": "-", "unchanged": " "}

# Path sources, weakest first. A stronger source always wins.
_FROM_HEADER = 0
_FROM_EXTENDED = 1
_FROM_MARKER = 2


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single added, removed or unchanged line.

    ``content`` holds the payload without its leading marker character.
    """

    kind: LineKind
    content: str
    old_line_number: int | None
    new_line_number: int | None
    missing_newline: bool = False

    @property
    def marker(self) -> str:
        return LINE_MARKERS[self.kind]

    @property
    def raw(self) -> str:
        """The line exactly as it appeared in the diff."""
        return self.marker + self.content


@dataclass(frozen=True, slots=True)
class Hunk:
    """A hunk header seen within a file diff."""

    header: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    section: str
    first_line: int


@dataclass(slots=True)
class FileDiff:
    """A parsed file-level diff."""

    file_name: str
    old_file_name: str | None = None
    added_count: int = 0
    removed_count: int = 0
    lines: list[DiffLine] = field(default_factory=list)
    hunks: list[Hunk] = field(default_factory=list)
    status: FileStatus = "modified"
    is_binary: bool = False
    header: str = ""

    def add_line(self, line: DiffLine) -> None:
        """Append a line, keeping the added/removed counters in step."""
        self.lines.append(line)
        if line.kind == "added":
            self.added_count += 1
        elif line.kind == "removed":
            self.removed_count += 1

    def added_lines(self) -> set[int]:
        """Line numbers (new side) of added lines."""
        return {
            line.new_line_number
            for line in self.lines
            if line.kind == "added" and line.new_line_number is not None
        }

    def removed_lines(self) -> set[int]:
        """Line numbers (old side) of removed lines."""
        return {
            line.old_line_number
            for line in self.lines
            if line.kind == "removed" and line.old_line_number is not None
        }


@dataclass(slots=True)
class DiffStat:
    """Totals across a parsed diff."""

    files_changed: int
    added: int
    removed: int


def summarize(files: Iterable[FileDiff]) -> DiffStat:
    """Aggregate per-file counts into diffstat totals."""
    files_changed = 0
    added = 0
    removed = 0
    for file_diff in files:
        files_changed += 1
        added += file_diff.added_count
        removed += file_diff.removed_count
    return DiffStat(files_changed=files_changed, added=added, removed=removed)


@dataclass(slots=True)
class ParserState:
    """Working state threaded through the per-line fold.

    ``old_remaining``/``new_remaining`` count the lines the current hunk header
    still announces; while either is positive, or once the current file has
    content lines, ``---``/``+++`` lines are content.
    """

    files: list[FileDiff] = field(default_factory=list)
    current: FileDiff | None = None
    old_cursor: int = 0
    new_cursor: int = 0
    old_remaining: int = 0
    new_remaining: int = 0
    old_name_source: int = -1
    new_name_source: int = -1

    @property
    def in_hunk_body(self) -> bool:
        return self.old_remaining > 0 or self.new_remaining > 0

    @property
    def markers_allowed(self) -> bool:
        """``---``/``+++`` path markers only precede a file's first content line."""
        if self.in_hunk_body:
            return False
        return self.current is None or not self.current.lines

    def finish(self) -> list[FileDiff]:
        """Close the open file, if any, and return every file seen."""
        if self.current is not None:
            self.files.append(self.current)
            self.current = None
        return self.files


def parse_git_diff(raw_text: str) -> list[FileDiff]:
    """Parse ``diff --git`` text into file/line models.

    Never raises: fragments that do not fit the grammar are skipped. Lines
    before the first ``diff --git`` header are discarded. Only ``\\n`` is
    treated as a line separator, so a ``\\r`` from CRLF input stays part of
    the line content.
    """
    lines = raw_text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    state = reduce(apply_line, lines, ParserState())
    return state.finish()


def apply_line(state: ParserState, line: str) -> ParserState:
    """Advance the parser state by one raw line."""
    token = tokenize_line(line, markers_allowed=state.markers_allowed)
    _HANDLERS.get(token.kind, _skip)(state, token)
    return state


def _on_file_header(state: ParserState, token: LineToken) -> None:
    if state.current is not None:
        state.files.append(state.current)

    if token.new_path is None:
        logger.debug("Could not extract a path from file header: %r", token.line)
    state.current = FileDiff(
        file_name=token.new_path or UNKNOWN_FILE,
        old_file_name=token.old_path,
        header=token.line,
    )
    state.old_name_source = _FROM_HEADER if token.old_path is not None else -1
    state.new_name_source = _FROM_HEADER if token.new_path is not None else -1
    state.old_remaining = 0
    state.new_remaining = 0


def _on_old_path(state: ParserState, token: LineToken) -> None:
    current = state.current
    if current is None:
        return
    current.old_file_name = token.old_path
    state.old_name_source = _FROM_MARKER
    if token.old_path is None and current.status == "modified":
        current.status = "added"


def _on_new_path(state: ParserState, token: LineToken) -> None:
    current = state.current
    if current is None:
        return
    if token.new_path is None:
        # Deletion: keep the name from the header or the old side.
        if current.status == "modified":
            current.status = "deleted"
        if current.file_name == UNKNOWN_FILE and current.old_file_name is not None:
            current.file_name = current.old_file_name
        return
    current.file_name = token.new_path
    state.new_name_source = _FROM_MARKER


def _on_hunk_header(state: ParserState, token: LineToken) -> None:
    header = token.hunk
    if header is None:
        logger.debug("Malformed hunk header, line numbers carried over: %r", token.line)
        return

    state.old_cursor = header.old_start
    state.new_cursor = header.new_start
    state.old_remaining = header.old_count
    state.new_remaining = header.new_count
    if state.current is not None:
        state.current.hunks.append(
            Hunk(
                header=token.line,
                old_start=header.old_start,
                old_count=header.old_count,
                new_start=header.new_start,
                new_count=header.new_count,
                section=header.section,
                first_line=len(state.current.lines),
            )
        )


def _on_added(state: ParserState, token: LineToken) -> None:
    if state.current is None:
        _log_orphan(token)
        return
    state.current.add_line(
        DiffLine(
            kind="added",
            content=token.line[1:],
            old_line_number=None,
            new_line_number=state.new_cursor,
        )
    )
    state.new_cursor += 1
    state.new_remaining = max(state.new_remaining - 1, 0)


def _on_removed(state: ParserState, token: LineToken) -> None:
    if state.current is None:
        _log_orphan(token)
        return
    state.current.add_line(
        DiffLine(
            kind="removed",
            content=token.line[1:],
            old_line_number=state.old_cursor,
            new_line_number=None,
        )
    )
    state.old_cursor += 1
    state.old_remaining = max(state.old_remaining - 1, 0)


def _on_context(state: ParserState, token: LineToken) -> None:
    if state.current is None:
        _log_orphan(token)
        return
    state.current.add_line(
        DiffLine(
            kind="unchanged",
            content=token.line[1:],
            old_line_number=state.old_cursor,
            new_line_number=state.new_cursor,
        )
    )
    state.old_cursor += 1
    state.new_cursor += 1
    state.old_remaining = max(state.old_remaining - 1, 0)
    state.new_remaining = max(state.new_remaining - 1, 0)


def _on_no_newline(state: ParserState, token: LineToken) -> None:
    if state.current is not None and state.current.lines:
        lines = state.current.lines
        lines[-1] = replace(lines[-1], missing_newline=True)


def _on_file_created(state: ParserState, token: LineToken) -> None:
    if state.current is not None:
        state.current.status = "added"


def _on_file_deleted(state: ParserState, token: LineToken) -> None:
    if state.current is not None:
        state.current.status = "deleted"


def _on_moved_from(state: ParserState, token: LineToken) -> None:
    current = state.current
    if current is None:
        return
    current.status = "renamed" if token.kind == "rename_from" else "copied"
    if token.old_path is not None and state.old_name_source <= _FROM_EXTENDED:
        current.old_file_name = token.old_path
        state.old_name_source = _FROM_EXTENDED


def _on_moved_to(state: ParserState, token: LineToken) -> None:
    current = state.current
    if current is None:
        return
    current.status = "renamed" if token.kind == "rename_to" else "copied"
    if token.new_path is not None and state.new_name_source <= _FROM_EXTENDED:
        current.file_name = token.new_path
        state.new_name_source = _FROM_EXTENDED


def _on_binary(state: ParserState, token: LineToken) -> None:
    if state.current is not None:
        state.current.is_binary = True


def _skip(state: ParserState, token: LineToken) -> None:
    if token.kind == "other" and state.current is not None and token.line:
        logger.debug("Skipping unrecognized line in %s: %r", state.current.file_name, token.line)


def _log_orphan(token: LineToken) -> None:
    logger.debug("Dropping content line outside any file diff: %r", token.line)


_HANDLERS: dict[TokenKind, Callable[[ParserState, LineToken], None]] = {
    "file_header": _on_file_header,
    "old_path": _on_old_path,
    "new_path": _on_new_path,
    "hunk_header": _on_hunk_header,
    "added": _on_added,
    "removed": _on_removed,
    "context": _on_context,
    "no_newline": _on_no_newline,
    "new_file": _on_file_created,
    "deleted_file": _on_file_deleted,
    "rename_from": _on_moved_from,
    "rename_to": _on_moved_to,
    "copy_from": _on_moved_from,
    "copy_to": _on_moved_to,
    "binary": _on_binary,
}
