"""Output rendering."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import click

from hunkwise import __version__
from hunkwise.diff_parser import DiffLine, FileDiff, Hunk, summarize

_LINE_COLORS = {"added": "green", "removed": "red", "unchanged": None}


def render_stat(files: list[FileDiff]) -> str:
    """Render a colorized per-file ``+added -removed`` summary."""
    stat = summarize(files)
    lines: list[str] = []
    for file_diff in files:
        counts = _counts(file_diff.added_count, file_diff.removed_count)
        lines.append(f"{_file_label(file_diff)} {counts}")
    lines.append(
        click.style(
            f"{stat.files_changed} file(s) changed, "
            f"{stat.added} insertion(s)(+), {stat.removed} deletion(s)(-)",
            bold=True,
        )
    )
    return "\n".join(lines)


def render_human(files: list[FileDiff], *, show_lines: bool = True) -> str:
    """Render every file with its numbered lines, followed by the summary."""
    if not files:
        return "No file diffs found."

    lines: list[str] = []
    for file_diff in files:
        lines.append(
            click.style(_file_label(file_diff), bold=True)
            + " "
            + _counts(file_diff.added_count, file_diff.removed_count)
        )
        if file_diff.is_binary:
            lines.append("  (binary file)")
        if show_lines:
            lines.extend(_render_line(line) for line in file_diff.lines)
        lines.append("")

    stat = summarize(files)
    lines.append(
        click.style(
            f"{stat.files_changed} file(s) changed, +{stat.added} -{stat.removed}",
            bold=True,
        )
    )
    return "\n".join(lines)


def render_json(
    files: list[FileDiff],
    *,
    input_source: str,
    show_lines: bool = True,
) -> str:
    """Render stable JSON output for downstream tooling."""
    payload = build_json_payload(files, input_source=input_source, show_lines=show_lines)
    return json.dumps(payload, sort_keys=True)


def build_json_payload(
    files: list[FileDiff],
    *,
    input_source: str,
    show_lines: bool = True,
) -> dict[str, Any]:
    """Build the JSON payload for a parsed diff."""
    stat = summarize(files)
    return {
        "files": [_serialize_file(item, show_lines=show_lines) for item in files],
        "summary": {
            "files_changed": stat.files_changed,
            "added": stat.added,
            "removed": stat.removed,
        },
        "meta": {
            "generated_at": datetime.now(tz=UTC)
            .replace(microsecond=0)
            .isoformat()
            .replace("+00:00", "Z"),
            "input_source": input_source,
            "version": __version__,
        },
    }


def _serialize_file(file_diff: FileDiff, *, show_lines: bool) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "file_name": file_diff.file_name,
        "old_file_name": file_diff.old_file_name,
        "status": file_diff.status,
        "is_binary": file_diff.is_binary,
        "added_count": file_diff.added_count,
        "removed_count": file_diff.removed_count,
        "hunks": [_serialize_hunk(hunk) for hunk in file_diff.hunks],
    }
    if show_lines:
        payload["lines"] = [_serialize_line(line) for line in file_diff.lines]
    return payload


def _serialize_hunk(hunk: Hunk) -> dict[str, Any]:
    return {
        "header": hunk.header,
        "old_start": hunk.old_start,
        "old_count": hunk.old_count,
        "new_start": hunk.new_start,
        "new_count": hunk.new_count,
        "section": hunk.section,
        "first_line": hunk.first_line,
    }


def _serialize_line(line: DiffLine) -> dict[str, Any]:
    return {
        "kind": line.kind,
        "content": line.content,
        "old_line_number": line.old_line_number,
        "new_line_number": line.new_line_number,
        "missing_newline": line.missing_newline,
    }


def _render_line(line: DiffLine) -> str:
    old = "" if line.old_line_number is None else str(line.old_line_number)
    new = "" if line.new_line_number is None else str(line.new_line_number)
    text = f"{old:>5} {new:>5} {line.raw}"
    if line.missing_newline:
        text += "  (no newline at end of file)"
    color = _LINE_COLORS[line.kind]
    return click.style(text, fg=color) if color else text


def _file_label(file_diff: FileDiff) -> str:
    if file_diff.status in {"renamed", "copied"} and file_diff.old_file_name:
        return f"{file_diff.old_file_name} -> {file_diff.file_name}"
    if file_diff.status in {"added", "deleted"}:
        return f"{file_diff.file_name} ({file_diff.status})"
    return file_diff.file_name


def _counts(added: int, removed: int) -> str:
    return click.style(f"+{added}", fg="green") + " " + click.style(f"-{removed}", fg="red")
