# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Ownership of the single shared git checkout.

Every revision is built in the same working tree, so the tree is treated as a
single-writer resource:

    with controller.guard() as state:   # capture original branch/commit
        controller.checkout(rev)        # mutate
        ...
    # restored here exactly once, on normal exit, exception, SIGINT or SIGTERM

`restore()` prefers the original branch (so the user ends up on their branch, not a
detached HEAD) but only if that branch still points at the captured commit.
"""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import git  # type: ignore[import-not-found]

from .errors import CheckoutFailed, RestoreFailed, RunInterrupted
from .history_types import Revision, WorkspaceState
from .revisions import head_commit_sha

logger = logging.getLogger(__name__)

_GUARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class WorkspaceController:
    def __init__(self, repo: git.Repo):
        self.repo = repo
        self._state: Optional[WorkspaceState] = None

    @property
    def state(self) -> Optional[WorkspaceState]:
        return self._state

    def capture(self) -> WorkspaceState:
        """Record the current branch (or "HEAD" when detached) and commit."""
        if self._state is not None:
            return self._state
        commit = head_commit_sha(self.repo)
        ref = "HEAD" if self.repo.head.is_detached else self.repo.active_branch.name
        self._state = WorkspaceState(original_ref=ref, original_commit=commit)
        logger.debug("Captured workspace: ref=%s commit=%s", ref, commit)
        return self._state

    def checkout(self, revision: Revision) -> None:
        if self._state is None:
            raise RuntimeError("capture() must run before checkout()")
        try:
            self.repo.git.checkout("-q", "--detach", revision.full_id)
        except git.GitCommandError as e:
            raise CheckoutFailed(revision.short_id, str(e.stderr or e).strip()) from e
        logger.debug("Checked out %s", revision.full_id)

    def _branch_still_at(self, branch: str, commit: str) -> bool:
        try:
            return self.repo.heads[branch].commit.hexsha == commit
        except (IndexError, ValueError):
            return False

    def restore(self, state: WorkspaceState) -> None:
        """Return the checkout to *state*; raise RestoreFailed if HEAD ends up elsewhere."""
        if not state.is_detached and self._branch_still_at(state.original_ref, state.original_commit):
            target = state.original_ref
        else:
            if not state.is_detached:
                logger.warning(
                    "Branch %s no longer points at %s, restoring detached commit instead",
                    state.original_ref,
                    state.original_commit[:9],
                )
            target = state.original_commit
        try:
            self.repo.git.checkout("-q", target)
        except git.GitCommandError as e:
            raise RestoreFailed(state.original_ref, state.original_commit, str(e.stderr or e).strip()) from e

        current = self.repo.head.commit.hexsha
        if current != state.original_commit:
            raise RestoreFailed(state.original_ref, state.original_commit, f"HEAD is at {current}")
        logger.debug("Restored workspace to %s (%s)", target, state.original_commit)

    # ------------------------------------------------------------------
    # Scoped acquisition
    # ------------------------------------------------------------------

    @staticmethod
    def _raise_interrupted(signum: int, frame: Any) -> None:
        raise RunInterrupted(signum)

    @staticmethod
    def _ignore_while_restoring(signum: int, frame: Any) -> None:
        logger.warning("Signal %d received while restoring the workspace, ignoring", signum)

    @staticmethod
    def _set_handlers(handler: Any) -> Dict[int, Any]:
        """Install *handler* for SIGINT/SIGTERM; return the previous handlers."""
        if threading.current_thread() is not threading.main_thread():
            return {}
        previous = {}
        for sig in _GUARDED_SIGNALS:
            previous[sig] = signal.signal(sig, handler)
        return previous

    @contextmanager
    def guard(self) -> Iterator[WorkspaceState]:
        state = self.capture()
        previous = self._set_handlers(self._raise_interrupted)
        try:
            yield state
        finally:
            self._set_handlers(self._ignore_while_restoring)
            try:
                target = state.original_commit[:9] if state.is_detached else state.original_ref
                logger.info("Restoring workspace to %s", target)
                self.restore(state)
            finally:
                for sig, handler in previous.items():
                    signal.signal(sig, handler)
