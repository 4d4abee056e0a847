"""Shared pytest fixtures: throwaway git repositories and a canned build collaborator."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import git  # type: ignore[import-not-found]
import pytest

from build_history.builder import RunnableBuild
from build_history.config import BuildHistoryConfig
from build_history.history_types import Revision

ACTOR = git.Actor("Build History Test", "build-history@example.com")


def commit_file(repo: git.Repo, name: str, content: str, message: str) -> git.Commit:
    root = Path(repo.working_tree_dir)
    (root / name).write_text(content)
    repo.index.add([name])
    return repo.index.commit(message, author=ACTOR, committer=ACTOR)


@pytest.fixture
def empty_repo(tmp_path: Path) -> git.Repo:
    return git.Repo.init(tmp_path / "repo")


@pytest.fixture
def repo3(empty_repo: git.Repo) -> git.Repo:
    """Repository with three commits: c1 (oldest), c2, c3 (newest)."""
    commit_file(empty_repo, ".gitignore", "web/\n", "c1")
    commit_file(empty_repo, "app.txt", "two\n", "c2")
    commit_file(empty_repo, "app.txt", "three\n", "c3")
    return empty_repo


@pytest.fixture
def config(tmp_path: Path) -> BuildHistoryConfig:
    return BuildHistoryConfig(title="Test History", scratch_root=tmp_path / "out")


class StubBuild(RunnableBuild):
    """Canned build collaborator keyed by commit summary.

    results values:
        "ok"    -> exit 0, writes web/index.html, web/pkg/app.wasm, web/favicon.svg
        "pkg"   -> exit 0, writes web/pkg/app.wasm only
        "bare"  -> exit 0, writes web/index.html and web/pkg only (no optional favicon)
        "empty" -> exit 0, writes nothing
        "fail"  -> exit 1

    Like a real build it never removes output left over from an earlier revision.
    """

    def __init__(self, repo: git.Repo, results: Optional[Dict[str, str]] = None):
        self.repo = repo
        self.results = results or {}
        self.calls: List[str] = []
        self.heads_seen: List[str] = []

    def run(self, revision: Revision, log_file: Optional[Path] = None) -> int:
        self.calls.append(revision.summary)
        self.heads_seen.append(self.repo.head.commit.hexsha)
        web = Path(self.repo.working_tree_dir) / "web"
        if log_file is not None:
            log_file.write_text(f"stub build of {revision.short_id}\n")

        result = self.results.get(revision.summary, "ok")
        if result == "fail":
            return 1
        if result in ("ok", "bare", "pkg"):
            (web / "pkg").mkdir(parents=True, exist_ok=True)
            (web / "pkg" / "app.wasm").write_bytes(revision.full_id.encode())
        if result in ("ok", "bare"):
            (web / "index.html").write_text(f"<html>{revision.short_id}</html>")
            if result == "ok":
                (web / "favicon.svg").write_text("<svg/>")
        return 0


@pytest.fixture
def stub_build_factory():
    return StubBuild


@pytest.fixture
def make_commit():
    return commit_file
