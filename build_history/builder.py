# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Build execution against whatever revision is currently checked out.

Architecture:
    - RunnableBuild: abstract build collaborator (returns an exit code)
    - CommandBuild: runs the external build command (e.g. ./build.sh --wasm --release)
    - BuildExecutor: turns an exit code into a BuildOutcome, never raises on failure

The executor does not check which revision is checked out; call ordering in the
orchestrator guarantees that.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set

import git  # type: ignore[import-not-found]

from .history_types import BuildOutcome, Revision

logger = logging.getLogger(__name__)


class RunnableBuild(ABC):
    """The opaque build collaborator."""

    @abstractmethod
    def run(self, revision: Revision, log_file: Optional[Path] = None) -> int:
        """Build the current checkout. Returns the exit code (0 for success)."""


class CommandBuild(RunnableBuild):
    """Runs a fixed command in the repository root.

    Combined stdout/stderr is streamed to *log_file* when given, else discarded.
    No timeout is enforced: a hung build blocks the run. If the run is interrupted
    while the build is running, the build process is terminated before returning.
    """

    # Grace period between SIGTERM and SIGKILL for an interrupted build.
    TERMINATE_TIMEOUT_S = 10.0

    def __init__(self, command: Sequence[str], cwd: Path):
        self.command: List[str] = [str(c) for c in command]
        self.cwd = Path(cwd)
        self.process: Optional[subprocess.Popen] = None  # last started build

    def _stop(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        logger.warning("  Terminating build process %d", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self.TERMINATE_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    def run(self, revision: Revision, log_file: Optional[Path] = None) -> int:
        cmd_str = " ".join(shlex.quote(c) for c in self.command)
        logger.debug("+ %s (cwd=%s)", cmd_str, self.cwd)
        if log_file is None:
            self.process = subprocess.Popen(
                self.command,
                cwd=self.cwd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            try:
                return self.process.wait()
            finally:
                self._stop(self.process)

        with open(log_file, "w") as log_fh:
            log_fh.write(f"{'=' * 80}\n")
            log_fh.write(f"Revision: {revision.full_id} {revision.summary}\n")
            log_fh.write(f"Executing: {cmd_str}\n")
            log_fh.write(f"{'=' * 80}\n\n")
            log_fh.flush()

            self.process = process = subprocess.Popen(
                self.command,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
            )
            try:
                if process.stdout is None:
                    raise ValueError("process.stdout is None")
                for line in process.stdout:
                    log_fh.write(line)
                process.wait()
            finally:
                self._stop(process)
                if process.stdout is not None:
                    process.stdout.close()
            log_fh.write(f"\nExit code: {process.returncode}\n")
            return process.returncode


def _newest_mtime(path: Path) -> float:
    newest = path.stat().st_mtime
    if path.is_dir():
        for p in path.rglob("*"):
            try:
                newest = max(newest, p.lstat().st_mtime)
            except OSError:
                continue
    return newest


class BuildExecutor:
    """Invokes a RunnableBuild and reports which expected artifacts it produced.

    With a *repo*, untracked and ignored copies of the expected artifacts are
    removed before each build (`git clean -fdx -- <artifacts>`), so output left
    behind by a previous revision is never attributed to the current one. After
    the build an artifact counts as produced when it is untracked, or when it is
    tracked and its mtime changed while the build ran.
    """

    def __init__(
        self,
        build: RunnableBuild,
        output_dir: Path,
        expected_artifacts: Iterable[str],
        log_dir: Optional[Path] = None,
        repo: Optional[git.Repo] = None,
    ):
        self.build_runner = build
        self.output_dir = Path(output_dir)
        self.expected_artifacts = list(expected_artifacts)
        self.log_dir = Path(log_dir) if log_dir is not None else None
        self.repo = repo

    def log_path_for(self, revision: Revision) -> Optional[Path]:
        if self.log_dir is None:
            return None
        return self.log_dir / f"{revision.short_id}.build.log"

    def _artifact_pathspecs(self) -> List[str]:
        root = Path(self.repo.working_tree_dir).resolve()
        out = self.output_dir.resolve()
        return [(out / name).relative_to(root).as_posix() for name in self.expected_artifacts]

    def clean_stale_output(self) -> None:
        """Remove untracked/ignored expected artifacts; tracked files are kept."""
        if self.repo is None or not self.expected_artifacts:
            return
        self.repo.git.clean("-f", "-d", "-x", "-q", "--", *self._artifact_pathspecs())

    def _tracked(self) -> Set[str]:
        if self.repo is None or not self.expected_artifacts:
            return set()
        output = self.repo.git.ls_files("--", *self._artifact_pathspecs())
        return set(output.splitlines())

    def _is_tracked(self, path: Path, tracked: Set[str]) -> bool:
        if self.repo is None:
            return False
        rel = path.resolve().relative_to(Path(self.repo.working_tree_dir).resolve()).as_posix()
        return rel in tracked or any(t.startswith(rel + "/") for t in tracked)

    def build(self, revision: Revision) -> BuildOutcome:
        log_file = self.log_path_for(revision)
        try:
            self.clean_stale_output()
            tracked = self._tracked()
        except git.GitCommandError as e:
            logger.warning("  Could not clear previous build output for %s: %s", revision.short_id, e)
            return BuildOutcome.failed(exit_code=None, log_file=None)

        before = {
            p: _newest_mtime(p)
            for p in (self.output_dir / name for name in self.expected_artifacts)
            if p.exists() and self._is_tracked(p, tracked)
        }

        start_time = time.time()
        try:
            exit_code = self.build_runner.run(revision, log_file=log_file)
        except OSError as e:
            # Missing executable, permission denied, unwritable log, ...
            duration = time.time() - start_time
            logger.warning("  Build command could not be run for %s: %s", revision.short_id, e)
            if log_file is not None:
                try:
                    with open(log_file, "a") as log_fh:
                        log_fh.write(f"\nBuild command could not be run: {e}\n")
                except OSError:
                    log_file = None
            return BuildOutcome.failed(exit_code=None, duration_s=duration, log_file=log_file)

        duration = time.time() - start_time
        if log_file is not None and not log_file.exists():
            log_file = None
        if exit_code != 0:
            logger.debug("Build for %s exited with %s after %.1fs", revision.short_id, exit_code, duration)
            return BuildOutcome.failed(exit_code=exit_code, duration_s=duration, log_file=log_file)

        present = {
            self.output_dir / name
            for name in self.expected_artifacts
            if (self.output_dir / name).exists()
        }
        produced = {
            p for p in present
            if not self._is_tracked(p, tracked) or p not in before or _newest_mtime(p) != before[p]
        }
        logger.debug(
            "Build for %s succeeded in %.1fs (%d artifact(s) present, %d produced)",
            revision.short_id, duration, len(present), len(produced),
        )
        return BuildOutcome.succeeded(present, produced_paths=produced, exit_code=0, duration_s=duration, log_file=log_file)
