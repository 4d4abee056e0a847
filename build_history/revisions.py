# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Revision enumeration (GitPython API only, no subprocess calls to git)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List

import git  # type: ignore[import-not-found]

from .config import DEFAULT_SHORT_ID_LENGTH
from .errors import HistoryUnavailable
from .history_types import Revision

logger = logging.getLogger(__name__)


def open_repo(repo_path: Any) -> git.Repo:
    """Open the repository containing *repo_path* (any subdirectory works) or raise HistoryUnavailable."""
    path = Path(repo_path)
    try:
        return git.Repo(path, search_parent_directories=True)
    except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
        raise HistoryUnavailable(f"Not a git repository: {path}") from e


def head_commit_sha(repo: git.Repo) -> str:
    """Return the full SHA of HEAD, or raise HistoryUnavailable on an unborn HEAD."""
    try:
        return repo.head.commit.hexsha
    except ValueError as e:
        # GitPython raises ValueError when HEAD points at a branch with no commits.
        raise HistoryUnavailable(f"Repository has no commits: {repo.working_tree_dir}") from e


class RevisionLister:
    """Lists the last N commits reachable from HEAD, newest first.

    Example:
        lister = RevisionLister(open_repo("/path/to/repo"))
        for rev in lister.list(10):
            print(rev.short_id, rev.summary)
    """

    def __init__(self, repo: git.Repo, short_id_length: int = DEFAULT_SHORT_ID_LENGTH):
        self.repo = repo
        self.short_id_length = int(short_id_length)

    def to_revision(self, commit: Any) -> Revision:
        sha = commit.hexsha
        return Revision(full_id=sha, short_id=sha[: self.short_id_length], summary=str(commit.summary))

    def list(self, n: int) -> List[Revision]:
        """Return up to *n* revisions, newest first.

        Short-id prefix collisions are not detected.
        """
        if n < 0:
            raise ValueError(f"number of revisions must be >= 0, got {n}")
        head_commit_sha(self.repo)
        if n == 0:
            return []
        try:
            commits = list(self.repo.iter_commits("HEAD", max_count=n))
        except git.GitCommandError as e:
            raise HistoryUnavailable(f"Failed to read history: {e}") from e
        revisions = [self.to_revision(c) for c in commits]
        logger.debug("Listed %d revision(s) (requested %d)", len(revisions), n)
        return revisions
