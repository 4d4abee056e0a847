"""
Historical build orchestrator.

Rebuilds a packaged web artifact for each of the last N commits of a git
repository, copies each successful build into `<scratch-root>/<short_id>/`, and
writes a single static `index.html` linking to them.

Public API is re-exported from:
- `build_history.orchestrator` for the top-level run
- `build_history.builder` for plugging in a custom build collaborator
- `build_history.config` for configuration loading
"""

from .builder import BuildExecutor, CommandBuild, RunnableBuild  # noqa: F401
from .collector import ArtifactCollector, prepare_scratch_root  # noqa: F401
from .config import BuildHistoryConfig, load_config  # noqa: F401
from .errors import (  # noqa: F401
    BuildHistoryError,
    CheckoutFailed,
    ConfigError,
    HistoryUnavailable,
    RestoreFailed,
    RunInterrupted,
)
from .history_types import (  # noqa: F401
    BuildOutcome,
    CollectResult,
    ReportEntry,
    Revision,
    RunState,
    WorkspaceState,
)
from .orchestrator import HistoryBuilder, RunResult  # noqa: F401
from .report import ReportGenerator  # noqa: F401
from .revisions import RevisionLister, open_repo  # noqa: F401
from .workspace import WorkspaceController  # noqa: F401

__all__ = [
    "ArtifactCollector",
    "BuildExecutor",
    "BuildHistoryConfig",
    "BuildHistoryError",
    "BuildOutcome",
    "CheckoutFailed",
    "CollectResult",
    "CommandBuild",
    "ConfigError",
    "HistoryBuilder",
    "HistoryUnavailable",
    "ReportEntry",
    "ReportGenerator",
    "RestoreFailed",
    "Revision",
    "RevisionLister",
    "RunInterrupted",
    "RunResult",
    "RunState",
    "RunnableBuild",
    "WorkspaceController",
    "load_config",
    "open_repo",
    "prepare_scratch_root",
]
