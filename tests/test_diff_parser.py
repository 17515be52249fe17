"""Tests for unified diff parsing."""

from __future__ import annotations

import logging
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from hunkwise.diff_parser import UNKNOWN_FILE, DiffLine, parse_git_diff, summarize

FIXTURE_DIR = Path(__file__).parent / "fixtures" / "diffs"


def _load_fixture(name: str) -> str:
    return (FIXTURE_DIR / name).read_text(encoding="utf-8")


def test_single_hunk_file_with_mixed_lines() -> None:
    parsed = parse_git_diff(
        "diff --git a/x.txt b/x.txt\n@@ -1,2 +1,3 @@\n line1\n+line2\n-line3\n"
    )
    assert len(parsed) == 1

    file_diff = parsed[0]
    assert file_diff.file_name == "x.txt"
    assert file_diff.added_count == 1
    assert file_diff.removed_count == 1
    assert file_diff.lines == [
        DiffLine(kind="unchanged", content="line1", old_line_number=1, new_line_number=1),
        DiffLine(kind="added", content="line2", old_line_number=None, new_line_number=2),
        DiffLine(kind="removed", content="line3", old_line_number=2, new_line_number=None),
    ]


def test_raw_keeps_the_source_marker() -> None:
    parsed = parse_git_diff("diff --git a/x b/x\n@@ -1,2 +1,2 @@\n keep \n-gone\n+new\t\n")
    assert [line.raw for line in parsed[0].lines] == [" keep ", "-gone", "+new\t"]
    assert parsed[0].lines[0].content == "keep "


def test_two_file_blocks_keep_header_order() -> None:
    parsed = parse_git_diff(
        "\n".join(
            [
                "diff --git a/b.txt b/b.txt",
                "@@ -1,1 +1,1 @@",
                "-x",
                "+y",
                "diff --git a/a.txt b/a.txt",
                "@@ -1,1 +1,1 @@",
                "-x",
                "+y",
            ]
        )
    )
    assert [file_diff.file_name for file_diff in parsed] == ["b.txt", "a.txt"]


def test_empty_input_returns_no_files() -> None:
    assert parse_git_diff("") == []
    assert parse_git_diff("\n\n") == []


def test_header_without_content_is_still_emitted() -> None:
    parsed = parse_git_diff("diff --git a/empty.txt b/empty.txt\n")
    assert len(parsed) == 1
    assert parsed[0].file_name == "empty.txt"
    assert parsed[0].lines == []
    assert parsed[0].added_count == 0
    assert parsed[0].removed_count == 0


def test_consecutive_headers_emit_empty_file() -> None:
    parsed = parse_git_diff(
        "diff --git a/one b/one\ndiff --git a/two b/two\n@@ -1,1 +1,1 @@\n-a\n+b\n"
    )
    assert [file_diff.file_name for file_diff in parsed] == ["one", "two"]
    assert parsed[0].lines == []
    assert parsed[1].added_count == 1


def test_malformed_hunk_header_keeps_previous_cursors() -> None:
    parsed = parse_git_diff(
        "\n".join(
            [
                "diff --git a/f.py b/f.py",
                "@@ -10,2 +20,2 @@",
                " ctx",
                "@@ bogus @@",
                "+added",
            ]
        )
    )
    file_diff = parsed[0]
    assert file_diff.added_count == 1
    added = file_diff.lines[-1]
    assert added.kind == "added"
    assert added.content == "added"
    assert added.new_line_number == 21
    assert len(file_diff.hunks) == 1


def test_malformed_hunk_header_as_first_hunk_uses_initial_cursor() -> None:
    parsed = parse_git_diff("diff --git a/f b/f\n@@ bogus @@\n+added\n")
    assert parsed[0].lines == [
        DiffLine(kind="added", content="added", old_line_number=None, new_line_number=0)
    ]


def test_hunk_header_without_counts_sets_cursors() -> None:
    parsed = parse_git_diff("diff --git a/f b/f\n@@ -5 +7 @@\n-old\n+new\n")
    lines = parsed[0].lines
    assert lines[0].old_line_number == 5
    assert lines[1].new_line_number == 7
    hunk = parsed[0].hunks[0]
    assert (hunk.old_start, hunk.old_count, hunk.new_start, hunk.new_count) == (5, 1, 7, 1)


def test_unparsable_file_header_uses_sentinel_name() -> None:
    parsed = parse_git_diff("diff --git something-odd\n@@ -1,1 +1,1 @@\n-a\n+b\n")
    assert parsed[0].file_name == UNKNOWN_FILE
    assert parsed[0].added_count == 1
    assert parsed[0].removed_count == 1


def test_new_side_marker_wins_over_header_path() -> None:
    diff_text = "\n".join(
        [
            "diff --git a/dir b/x b/dir b/x",
            "--- a/dir b/x",
            "+++ b/dir b/x",
            "@@ -1,1 +1,1 @@",
            "-a",
            "+b",
        ]
    )
    parsed = parse_git_diff(diff_text)
    assert parsed[0].file_name == "dir b/x"
    assert parsed[0].old_file_name == "dir b/x"


def test_header_path_splits_at_last_b_prefix() -> None:
    parsed = parse_git_diff("diff --git a/sub b/file.txt b/sub b/file.txt\n")
    assert parsed[0].file_name == "file.txt"
    assert parsed[0].old_file_name == "sub b/file.txt b/sub"


def test_lines_before_first_header_are_discarded() -> None:
    parsed = parse_git_diff(_load_fixture("multi_hunk.diff"))
    assert len(parsed) == 2
    all_content = [line.content for file_diff in parsed for line in file_diff.lines]
    assert "   Tidy up helpers" not in all_content
    assert "Tidy up helpers" not in " ".join(all_content)


def test_multi_hunk_file_resets_cursors_per_hunk() -> None:
    util, readme = parse_git_diff(_load_fixture("multi_hunk.diff"))
    assert util.file_name == "lib/util.py"
    assert [hunk.section for hunk in util.hunks] == ["def helper():", "def other():"]
    assert [hunk.first_line for hunk in util.hunks] == [0, 5]

    assert [(line.kind, line.old_line_number, line.new_line_number) for line in util.lines] == [
        ("unchanged", 2, 2),
        ("removed", 3, None),
        ("added", None, 3),
        ("unchanged", 4, 4),
        ("unchanged", 5, 5),
        ("unchanged", 20, 20),
        ("added", None, 21),
        ("unchanged", 21, 22),
        ("unchanged", 22, 23),
    ]
    assert (util.added_count, util.removed_count) == (2, 1)
    assert util.added_lines() == {3, 21}
    assert util.removed_lines() == {3}

    assert readme.file_name == "README.md"
    assert (readme.added_count, readme.removed_count) == (1, 1)


def test_parse_simple_fixture() -> None:
    parsed = parse_git_diff(_load_fixture("simple.diff"))
    assert len(parsed) == 1

    file_diff = parsed[0]
    assert file_diff.file_name == "src/app.py"
    assert file_diff.old_file_name == "src/app.py"
    assert file_diff.status == "modified"
    assert file_diff.is_binary is False
    assert [line.kind for line in file_diff.lines] == [
        "unchanged",
        "removed",
        "added",
        "added",
        "unchanged",
    ]
    removed = file_diff.lines[1]
    assert removed.content == 'print("old")'
    assert removed.old_line_number == 2
    assert removed.new_line_number is None


def test_parse_new_and_deleted_files() -> None:
    deleted_file, new_file = parse_git_diff(_load_fixture("new_and_deleted.diff"))

    assert deleted_file.file_name == "tests/legacy.txt"
    assert deleted_file.status == "deleted"
    assert [line.kind for line in deleted_file.lines] == ["removed", "removed"]
    assert [line.old_line_number for line in deleted_file.lines] == [1, 2]
    assert deleted_file.removed_count == 2

    assert new_file.file_name == "docs/new.md"
    assert new_file.old_file_name is None
    assert new_file.status == "added"
    assert [line.new_line_number for line in new_file.lines] == [1, 2]
    assert new_file.added_count == 2


def test_no_newline_marker_flags_previous_line() -> None:
    parsed = parse_git_diff(_load_fixture("no_newline_marker.diff"))
    lines = parsed[0].lines
    assert [line.kind for line in lines] == ["removed", "added"]
    assert lines[0].missing_newline is True
    assert lines[1].missing_newline is False
    assert lines[1].new_line_number == 1


def test_rename_and_binary_files() -> None:
    renamed, binary = parse_git_diff(_load_fixture("rename_and_binary.diff"))

    assert renamed.status == "renamed"
    assert renamed.old_file_name == "src/old_name.py"
    assert renamed.file_name == "src/new_name.py"
    assert (renamed.added_count, renamed.removed_count) == (2, 1)

    assert binary.file_name == "assets/logo.png"
    assert binary.is_binary is True
    assert binary.lines == []


def test_pure_rename_without_markers() -> None:
    parsed = parse_git_diff(
        "\n".join(
            [
                "diff --git a/old.txt b/new.txt",
                "similarity index 100%",
                "rename from old.txt",
                "rename to new.txt",
            ]
        )
    )
    assert parsed[0].status == "renamed"
    assert parsed[0].old_file_name == "old.txt"
    assert parsed[0].file_name == "new.txt"


def test_marker_like_content_inside_hunk_is_content() -> None:
    parsed = parse_git_diff(
        "\n".join(
            [
                "diff --git a/notes.md b/notes.md",
                "--- a/notes.md",
                "+++ b/notes.md",
                "@@ -1,2 +1,2 @@",
                "--- a/horizontal rule",
                "+++ b/emphasis",
                " tail",
            ]
        )
    )
    file_diff = parsed[0]
    assert [line.kind for line in file_diff.lines] == ["removed", "added", "unchanged"]
    assert file_diff.lines[0].content == "-- a/horizontal rule"
    assert file_diff.lines[1].content == "++ b/emphasis"
    assert file_diff.file_name == "notes.md"


def test_dash_lines_after_malformed_hunk_header_are_content() -> None:
    parsed = parse_git_diff(
        "diff --git a/q.sql b/q.sql\n@@ bogus @@\n--- drop this comment\n+++ add counter\n"
    )
    file_diff = parsed[0]
    assert file_diff.file_name == "q.sql"
    assert file_diff.old_file_name == "q.sql"
    assert [(line.kind, line.content) for line in file_diff.lines] == [
        ("removed", "-- drop this comment"),
        ("added", "++ add counter"),
    ]
    assert (file_diff.added_count, file_diff.removed_count) == (1, 1)


def test_prefixed_markers_after_content_are_content() -> None:
    parsed = parse_git_diff(
        "\n".join(
            [
                "diff --git a/f.txt b/f.txt",
                "@@ -1,1 +1,1 @@",
                "-a",
                "+b",
                "--- a/other.txt",
                "+++ b/other.txt",
            ]
        )
    )
    file_diff = parsed[0]
    assert file_diff.file_name == "f.txt"
    assert [line.kind for line in file_diff.lines] == ["removed", "added", "removed", "added"]
    assert file_diff.lines[2].content == "-- a/other.txt"


def test_diff_lines_and_hunks_are_frozen() -> None:
    file_diff = parse_git_diff("diff --git a/f b/f\n@@ -1,1 +1,1 @@\n-a\n+b\n")[0]
    with pytest.raises(FrozenInstanceError):
        file_diff.lines[0].content = "changed"
    with pytest.raises(FrozenInstanceError):
        file_diff.hunks[0].old_start = 9


def test_carriage_returns_stay_in_content() -> None:
    parsed = parse_git_diff("diff --git a/w.txt b/w.txt\r\n@@ -1,1 +1,1 @@\r\n-a\r\n+b\r\n")
    file_diff = parsed[0]
    assert file_diff.file_name == "w.txt"
    assert [line.content for line in file_diff.lines] == ["a\r", "b\r"]


def test_quoted_paths_are_unquoted() -> None:
    parsed = parse_git_diff(
        "\n".join(
            [
                'diff --git "a/caf\\303\\251 menu.txt" "b/caf\\303\\251 menu.txt"',
                '--- "a/caf\\303\\251 menu.txt"',
                '+++ "b/caf\\303\\251 menu.txt"',
            ]
        )
    )
    assert parsed[0].file_name == "café menu.txt"
    assert parsed[0].old_file_name == "café menu.txt"


def test_unrecognized_lines_are_skipped_and_logged(caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="hunkwise.diff_parser"):
        parsed = parse_git_diff("diff --git a/f b/f\n@@ nope @@\nrandom noise\n+x\n")
    assert parsed[0].added_count == 1
    messages = [record.getMessage() for record in caplog.records]
    assert any("Malformed hunk header" in message for message in messages)
    assert any("random noise" in message for message in messages)


def test_summarize_totals() -> None:
    stat = summarize(parse_git_diff(_load_fixture("multi_hunk.diff")))
    assert (stat.files_changed, stat.added, stat.removed) == (2, 3, 2)
