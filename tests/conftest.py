"""Shared fixtures: throwaway git repositories for real-diff tests."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest


class GitRepo:
    """A scratch repository driven through the git CLI."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def run(self, *args: str) -> str:
        completed = subprocess.run(
            ["git", *args],
            cwd=self.root,
            check=True,
            capture_output=True,
            text=True,
        )
        return completed.stdout

    def write(self, rel_path: str, content: str | bytes) -> None:
        target = self.root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")

    def commit_all(self, message: str) -> None:
        self.run("add", "-A")
        self.run("commit", "-q", "-m", message)

    def diff(self, *args: str) -> str:
        return self.run("diff", "--no-color", *args)


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    root = tmp_path / "repo"
    root.mkdir()
    repo = GitRepo(root)
    repo.run("init", "-q")
    repo.run("config", "user.email", "test@example.com")
    repo.run("config", "user.name", "Test")
    repo.run("config", "core.autocrlf", "false")
    return repo
