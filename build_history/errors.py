# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Fatal error types for a build-history run.

Per-revision build failures and missing artifacts are *not* exceptions; they are
recorded as values (`BuildOutcome` / `CollectResult`) and the run continues.
Everything here aborts the run.
"""

from __future__ import annotations

from typing import Optional


class BuildHistoryError(Exception):
    """Base class for fatal build-history errors."""

    exit_code = 1


class ConfigError(BuildHistoryError):
    pass


class HistoryUnavailable(BuildHistoryError):
    """The revision history could not be enumerated (no commits, not a repo, git error)."""


class CheckoutFailed(BuildHistoryError):
    def __init__(self, ref: str, message: str):
        super().__init__(f"Failed to checkout {ref}: {message}")
        self.ref = str(ref or "")


class RestoreFailed(BuildHistoryError):
    """The workspace could not be returned to its original ref/commit.

    The shared checkout may be left on an arbitrary historical revision.
    """

    exit_code = 3

    def __init__(self, ref: str, commit: str, message: str):
        super().__init__(
            f"Failed to restore workspace to {ref} ({commit}): {message}. "
            f"Run `git checkout {ref}` manually."
        )
        self.ref = str(ref or "")
        self.commit = str(commit or "")


class RunInterrupted(BuildHistoryError):
    """Raised from the SIGINT/SIGTERM handler installed by the workspace guard."""

    exit_code = 130

    def __init__(self, signum: Optional[int] = None):
        super().__init__(f"Interrupted by signal {signum}" if signum is not None else "Interrupted")
        self.signum = signum
