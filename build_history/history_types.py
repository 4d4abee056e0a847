# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared value types for a build-history run.

Flow:
    Revision -> BuildOutcome -> CollectResult -> ReportEntry

This module MUST NOT import any other build_history module to avoid cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class Revision:
    """A single commit in history."""

    full_id: str  # 40-char full SHA
    short_id: str  # fixed-width prefix of full_id, used as a directory name
    summary: str  # first line of the commit message


@dataclass(frozen=True)
class WorkspaceState:
    """Where the shared checkout was before the run started."""

    original_ref: str  # branch name, or "HEAD" when detached
    original_commit: str  # 40-char full SHA

    @property
    def is_detached(self) -> bool:
        return self.original_ref == "HEAD"


@dataclass(frozen=True)
class BuildOutcome:
    """Result of invoking the build collaborator for one revision."""

    success: bool
    artifact_paths: FrozenSet[Path] = field(default_factory=frozenset)  # expected artifacts that exist
    produced_paths: FrozenSet[Path] = field(default_factory=frozenset)  # subset written by this build
    exit_code: Optional[int] = None
    duration_s: Optional[float] = None
    log_file: Optional[Path] = None

    @classmethod
    def succeeded(cls, artifact_paths, produced_paths=None, **kwargs) -> "BuildOutcome":
        artifact_paths = frozenset(artifact_paths)
        produced = artifact_paths if produced_paths is None else frozenset(produced_paths)
        return cls(success=True, artifact_paths=artifact_paths, produced_paths=produced, **kwargs)

    @classmethod
    def failed(cls, **kwargs) -> "BuildOutcome":
        return cls(success=False, **kwargs)


class CollectStatus(str, Enum):
    COLLECTED = "collected"
    MISSING_ARTIFACTS = "missing_artifacts"
    COPY_FAILED = "copy_failed"


@dataclass(frozen=True)
class CollectResult:
    status: CollectStatus
    target_dir: Optional[Path] = None
    copied: FrozenSet[str] = field(default_factory=frozenset)
    missing_required: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def ok(self) -> bool:
        return self.status == CollectStatus.COLLECTED


class EntryStatus(str, Enum):
    LINKED = "linked"
    FAILED = "failed"


@dataclass(frozen=True)
class ReportEntry:
    """One line of the index page.

    `link` is the path relative to the scratch root (e.g. "abc1234/") for LINKED
    entries and None otherwise. `log_link` optionally points at the build log.
    """

    revision: Revision
    status: EntryStatus
    link: Optional[str] = None
    log_link: Optional[str] = None

    @classmethod
    def linked(cls, revision: Revision, log_link: Optional[str] = None) -> "ReportEntry":
        return cls(revision=revision, status=EntryStatus.LINKED, link=f"{revision.short_id}/", log_link=log_link)

    @classmethod
    def failed_note(cls, revision: Revision, log_link: Optional[str] = None) -> "ReportEntry":
        return cls(revision=revision, status=EntryStatus.FAILED, log_link=log_link)

    @property
    def is_linked(self) -> bool:
        return self.status == EntryStatus.LINKED


class RunState(str, Enum):
    """States of the top-level run.

    INIT -> LISTING -> PROCESSING -> RESTORING -> REPORTING -> DONE
    Any state may transition to RESTORING on abort, and then to ABORTED.
    """

    INIT = "init"
    LISTING = "listing"
    PROCESSING = "processing"
    RESTORING = "restoring"
    REPORTING = "reporting"
    DONE = "done"
    ABORTED = "aborted"
