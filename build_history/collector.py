# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Copies build output for one revision into `<scratch-root>/<short_id>/`."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import ConfigError
from .history_types import BuildOutcome, CollectResult, CollectStatus, Revision

logger = logging.getLogger(__name__)


def prepare_scratch_root(scratch_root: Path, protected: Optional[Path] = None) -> Path:
    """Destroy and recreate *scratch_root* empty. Prior runs are discarded, not merged.

    Raises ConfigError when *scratch_root* is *protected* or one of its parents.
    """
    root = Path(scratch_root)
    if protected is not None:
        resolved_root = root.expanduser().resolve()
        resolved_protected = Path(protected).expanduser().resolve()
        if resolved_root == resolved_protected or resolved_root in resolved_protected.parents:
            raise ConfigError(
                f"Refusing to use {root} as scratch root: it contains the repository {protected}"
            )
    if root.is_symlink() or root.is_file():
        root.unlink()
    elif root.exists():
        shutil.rmtree(root)
    root.mkdir(parents=True)
    return root


def _copy(src: Path, dst: Path) -> None:
    if src.is_dir():
        shutil.copytree(src, dst, dirs_exist_ok=True)
    else:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)


class ArtifactCollector:
    def __init__(
        self,
        scratch_root: Path,
        output_dir: Path,
        required: Iterable[str],
        optional: Iterable[str] = (),
    ):
        self.scratch_root = Path(scratch_root)
        self.output_dir = Path(output_dir)
        self.required: List[str] = list(required)
        self.optional: List[str] = list(optional)

    def collect(self, revision: Revision, outcome: BuildOutcome) -> CollectResult:
        """Copy the artifacts recorded in *outcome* for *revision*.

        Returns MISSING_ARTIFACTS (and leaves no revision directory behind) when
        the build produced none of the required artifacts. Tracked artifacts the
        build did not touch (e.g. a committed web/index.html) are still copied
        alongside produced ones.
        """
        if not outcome.success:
            raise ValueError(f"collect() called for a failed build of {revision.short_id}")

        present = {Path(p) for p in outcome.artifact_paths}
        produced = {Path(p) for p in outcome.produced_paths}
        present_required = [n for n in self.required if self.output_dir / n in present]
        missing_required = frozenset(n for n in self.required if n not in present_required)

        if not any(self.output_dir / n in produced for n in self.required):
            logger.warning("  Build produced no required artifacts for %s (expected: %s)", revision.short_id, ", ".join(self.required))
            not_produced = frozenset(n for n in self.required if self.output_dir / n not in produced)
            return CollectResult(status=CollectStatus.MISSING_ARTIFACTS, missing_required=not_produced)
        if missing_required:
            logger.warning("  Some required artifacts missing for %s: %s", revision.short_id, ", ".join(sorted(missing_required)))

        target_dir = self.scratch_root / revision.short_id
        target_dir.mkdir(parents=True, exist_ok=True)
        copied = []
        try:
            for name in present_required + [n for n in self.optional if self.output_dir / n in present]:
                src = self.output_dir / name
                if not src.exists():
                    # Optional artifact vanished after the build, nothing to copy.
                    continue
                _copy(src, target_dir / name)
                copied.append(name)
        except OSError as e:
            logger.error("  Failed to copy artifacts for %s: %s", revision.short_id, e)
            shutil.rmtree(target_dir, ignore_errors=True)
            return CollectResult(status=CollectStatus.COPY_FAILED, missing_required=missing_required)

        logger.debug("Collected %s into %s", ", ".join(copied), target_dir)
        return CollectResult(
            status=CollectStatus.COLLECTED,
            target_dir=target_dir,
            copied=frozenset(copied),
            missing_required=missing_required,
        )
