# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
CLI for build_history.

Usage:
    build-history            # last 10 commits
    build-history 25         # last 25 commits
    build-history 5 --repo-path ~/src/drafftink --config build-history.yaml
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from .config import DEFAULT_NUM_REVISIONS, SCRATCH_ROOT_ENV, load_config
from .errors import BuildHistoryError, RestoreFailed, RunInterrupted
from .orchestrator import HistoryBuilder

logger = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="build-history",
        description="Build the web artifact for each of the last N commits and write an HTML index.",
        epilog=f"The output directory is recreated on every run (override with ${SCRATCH_ROOT_ENV}).",
    )
    parser.add_argument(
        "num_revisions",
        nargs="?",
        type=_non_negative_int,
        default=DEFAULT_NUM_REVISIONS,
        help=f"Number of commits to build, newest first (default: {DEFAULT_NUM_REVISIONS})",
    )
    parser.add_argument(
        "--repo-path",
        type=Path,
        default=Path("."),
        help="Path to the git repository (default: current directory)",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(list(argv) if argv is not None else None)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        builder = HistoryBuilder(args.repo_path.expanduser().resolve(), config)
        result = builder.run(args.num_revisions)
    except RestoreFailed as e:
        logger.critical("%s", e)
        cause = e.__context__
        if cause is not None and not isinstance(cause, RestoreFailed):
            logger.critical("Run was already aborting because of: %s", cause)
        return e.exit_code
    except KeyboardInterrupt:
        # SIGINT outside the workspace guard (nothing had been checked out yet).
        logger.error("Interrupted")
        return RunInterrupted.exit_code
    except BuildHistoryError as e:
        logger.error("%s", e)
        return e.exit_code

    logger.info("")
    logger.info("Done! %d built, %d failed", result.built, result.failed)
    logger.info("Open: %s", result.index_path.resolve().as_uri())
    logger.info("Or serve: cd %s && python3 -m http.server 8080", result.index_path.parent)
    return 0
