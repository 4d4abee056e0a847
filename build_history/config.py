# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Run configuration for build-history.

Defaults reproduce the original drafft.ink `build-history.sh` behavior:
    ./build.sh --wasm --release
    web/index.html, web/pkg/ (required), web/favicon.svg (optional)

An optional YAML file overrides any field:

    title: Drafft.ink Build History
    scratch_root: /tmp/drafft-hist
    build_command: ["./build.sh", "--wasm", "--release"]
    build_output_dir: web
    required_artifacts: [index.html, pkg]
    optional_artifacts: [favicon.svg]
    short_id_length: 7
    keep_build_logs: true
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

# Explicit override for the scratch root (wins over the config file).
SCRATCH_ROOT_ENV = "BUILD_HISTORY_SCRATCH_ROOT"

DEFAULT_NUM_REVISIONS: int = 10
DEFAULT_SHORT_ID_LENGTH: int = 7
DEFAULT_SCRATCH_ROOT = Path("/tmp/build-history")


@dataclass(frozen=True)
class BuildHistoryConfig:
    title: str = "Build History"
    scratch_root: Path = DEFAULT_SCRATCH_ROOT
    build_command: List[str] = field(default_factory=lambda: ["./build.sh", "--wasm", "--release"])
    build_output_dir: str = "web"  # relative to the repository root
    required_artifacts: List[str] = field(default_factory=lambda: ["index.html", "pkg"])
    optional_artifacts: List[str] = field(default_factory=lambda: ["favicon.svg"])
    short_id_length: int = DEFAULT_SHORT_ID_LENGTH
    keep_build_logs: bool = True

    def __post_init__(self) -> None:
        if not self.build_command:
            raise ConfigError("build_command must not be empty")
        if not self.required_artifacts:
            raise ConfigError("required_artifacts must name at least one artifact")
        if not (4 <= int(self.short_id_length) <= 40):
            raise ConfigError(f"short_id_length must be between 4 and 40, got {self.short_id_length}")
        out = Path(self.build_output_dir)
        if not self.build_output_dir or out.is_absolute() or ".." in out.parts:
            raise ConfigError(f"build_output_dir must be relative to the repository root: {self.build_output_dir!r}")
        for name in list(self.required_artifacts) + list(self.optional_artifacts):
            p = Path(name)
            if p.is_absolute() or ".." in p.parts:
                raise ConfigError(f"artifact paths must be relative to build_output_dir: {name!r}")


_LIST_FIELDS = {"build_command", "required_artifacts", "optional_artifacts"}


def _coerce(name: str, value: Any) -> Any:
    """Validate and convert one raw YAML value for field *name*."""
    if name in _LIST_FIELDS:
        if isinstance(value, str):
            raise ConfigError(f"{name} must be a list of strings, got a string: {value!r}")
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{name} must be a list of strings")
        return list(value)
    if name == "scratch_root":
        if not isinstance(value, str) or not value:
            raise ConfigError("scratch_root must be a non-empty path string")
        return Path(value).expanduser()
    if name == "short_id_length":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError("short_id_length must be an integer")
        return value
    if name == "keep_build_logs":
        if not isinstance(value, bool):
            raise ConfigError("keep_build_logs must be true or false")
        return value
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string")
    return value


def config_from_dict(data: Dict[str, Any]) -> BuildHistoryConfig:
    known = {f.name for f in fields(BuildHistoryConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")
    kwargs = {k: _coerce(k, v) for k, v in data.items()}
    return BuildHistoryConfig(**kwargs)


def load_config(path: Optional[Path] = None) -> BuildHistoryConfig:
    """Load config from an optional YAML file, then apply environment overrides."""
    if path is None:
        cfg = BuildHistoryConfig()
    else:
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at the top level")
        cfg = config_from_dict(data)
        logger.debug("Loaded config from %s", path)

    override = os.environ.get(SCRATCH_ROOT_ENV, "").strip()
    if override:
        cfg = replace(cfg, scratch_root=Path(override).expanduser())
    return cfg
