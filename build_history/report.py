# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Static HTML index over the scratch root (Jinja2 template: build_history.html.j2).

The page has no timestamps: the same entries always render to the same bytes.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .history_types import ReportEntry

logger = logging.getLogger(__name__)

_THIS_DIR = Path(__file__).resolve().parent
TEMPLATE_NAME = "build_history.html.j2"
INDEX_NAME = "index.html"


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Atomically write text to `path` by writing a temp file in the same directory and os.replace()."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(f".{p.name}.tmp.{os.getpid()}")
    if tmp.exists():
        tmp.unlink()
    tmp.write_text(content, encoding=encoding)
    os.replace(str(tmp), str(p))


class ReportGenerator:
    """Accumulates one entry per revision and renders them in append order."""

    def __init__(self, title: str = "Build History"):
        self.title = title
        self._entries: List[ReportEntry] = []
        self._env = Environment(
            loader=FileSystemLoader(str(_THIS_DIR)),
            autoescape=select_autoescape(["html", "xml", "j2"]),
            keep_trailing_newline=True,
        )

    @property
    def entries(self) -> List[ReportEntry]:
        return list(self._entries)

    def append(self, entry: ReportEntry) -> None:
        self._entries.append(entry)

    def render(self, entries: Optional[Sequence[ReportEntry]] = None) -> str:
        if entries is None:
            entries = self._entries
        template = self._env.get_template(TEMPLATE_NAME)
        return template.render(
            title=self.title,
            entries=list(entries),
            linked_count=sum(1 for e in entries if e.is_linked),
        )

    def write(self, scratch_root: Path) -> Path:
        """Render all entries and write `<scratch_root>/index.html` in one go."""
        index_path = Path(scratch_root) / INDEX_NAME
        atomic_write_text(index_path, self.render())
        logger.debug("Wrote %s (%d entries)", index_path, len(self._entries))
        return index_path
