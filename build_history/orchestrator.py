# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Top-level run: rebuild the last N revisions and write an index over the results.

State machine:
    INIT -> LISTING -> PROCESSING[i] -> RESTORING -> REPORTING -> DONE

    PROCESSING[i] = checkout -> build -> [collect] -> append entry

Only fatal errors (HistoryUnavailable, CheckoutFailed, RestoreFailed, RunInterrupted)
leave PROCESSING early; they go through RESTORING to ABORTED and no index is written.
Revisions are processed strictly one at a time because they share one working tree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import git  # type: ignore[import-not-found]

from .builder import BuildExecutor, CommandBuild, RunnableBuild
from .collector import ArtifactCollector, prepare_scratch_root
from .config import BuildHistoryConfig
from .history_types import ReportEntry, Revision, RunState
from .report import ReportGenerator
from .revisions import RevisionLister, open_repo
from .workspace import WorkspaceController

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    state: RunState
    entries: List[ReportEntry] = field(default_factory=list)
    index_path: Optional[Path] = None

    @property
    def built(self) -> int:
        return sum(1 for e in self.entries if e.is_linked)

    @property
    def failed(self) -> int:
        return len(self.entries) - self.built


class HistoryBuilder:
    """Wires lister, workspace, executor, collector and report together.

    Example:
        cfg = load_config()
        result = HistoryBuilder(Path("."), cfg).run(10)
        print(result.index_path)
    """

    def __init__(
        self,
        repo_path: Path,
        config: BuildHistoryConfig,
        build: Optional[RunnableBuild] = None,
        repo: Optional[git.Repo] = None,
    ):
        self.config = config
        self.repo = repo if repo is not None else open_repo(repo_path)
        self.repo_path = Path(self.repo.working_tree_dir or repo_path)
        self.scratch_root = Path(config.scratch_root)
        output_dir = self.repo_path / config.build_output_dir

        self.lister = RevisionLister(self.repo, short_id_length=config.short_id_length)
        self.workspace = WorkspaceController(self.repo)
        self.executor = BuildExecutor(
            build if build is not None else CommandBuild(config.build_command, cwd=self.repo_path),
            output_dir=output_dir,
            expected_artifacts=list(config.required_artifacts) + list(config.optional_artifacts),
            log_dir=self.scratch_root if config.keep_build_logs else None,
            repo=self.repo,
        )
        self.collector = ArtifactCollector(
            self.scratch_root,
            output_dir=output_dir,
            required=config.required_artifacts,
            optional=config.optional_artifacts,
        )
        self.report = ReportGenerator(title=config.title)
        self.state = RunState.INIT

    def _transition(self, new_state: RunState) -> None:
        logger.debug("State %s -> %s", self.state.name, new_state.name)
        self.state = new_state

    def _log_link(self, log_file: Optional[Path]) -> Optional[str]:
        if log_file is None:
            return None
        try:
            return log_file.relative_to(self.scratch_root).as_posix()
        except ValueError:
            return None

    def process(self, index: int, total: int, revision: Revision) -> ReportEntry:
        """Checkout, build and collect one revision. Raises only on fatal errors."""
        logger.info("[%d/%d] Building %s: %s", index, total, revision.short_id, revision.summary)
        self.workspace.checkout(revision)

        outcome = self.executor.build(revision)
        log_link = self._log_link(outcome.log_file)
        if not outcome.success:
            logger.info("  ✗ Failed (exit %s)", outcome.exit_code)
            return ReportEntry.failed_note(revision, log_link=log_link)

        collected = self.collector.collect(revision, outcome)
        if not collected.ok:
            logger.info("  ✗ Failed (%s)", collected.status.value)
            return ReportEntry.failed_note(revision, log_link=log_link)

        duration = f" in {outcome.duration_s:.1f}s" if outcome.duration_s is not None else ""
        logger.info("  ✓ Success%s", duration)
        return ReportEntry.linked(revision, log_link=log_link)

    def run(self, num_revisions: int) -> RunResult:
        prepare_scratch_root(self.scratch_root, protected=self.repo_path)
        try:
            with self.workspace.guard():
                self._transition(RunState.LISTING)
                revisions = self.lister.list(num_revisions)
                logger.info("Building %d revision(s)...", len(revisions))

                self._transition(RunState.PROCESSING)
                for i, revision in enumerate(revisions, start=1):
                    self.report.append(self.process(i, len(revisions), revision))

                self._transition(RunState.RESTORING)
        except BaseException:
            if self.state != RunState.RESTORING:
                self._transition(RunState.RESTORING)
            self._transition(RunState.ABORTED)
            raise

        self._transition(RunState.REPORTING)
        index_path = self.report.write(self.scratch_root)
        self._transition(RunState.DONE)
        return RunResult(state=self.state, entries=self.report.entries, index_path=index_path)
