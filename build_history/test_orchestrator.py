"""
Pytest tests for orchestrator.py (end-to-end runs against real throwaway repos).

Run from the repository root:
    pytest build_history/test_orchestrator.py -v
"""

from pathlib import Path

import pytest

from build_history.config import BuildHistoryConfig
from build_history.errors import CheckoutFailed, ConfigError, HistoryUnavailable, RestoreFailed
from build_history.history_types import EntryStatus, RunState
from build_history.orchestrator import HistoryBuilder
from build_history.revisions import RevisionLister


def _builder(repo, config, build):
    return HistoryBuilder(Path(repo.working_tree_dir), config, build=build, repo=repo)


def test_three_commit_scenario(repo3, config, stub_build_factory):
    revs = RevisionLister(repo3).list(3)
    c3, c2, c1 = revs
    branch = repo3.active_branch.name
    original = repo3.head.commit.hexsha
    build = stub_build_factory(repo3, {"c2": "fail"})

    result = _builder(repo3, config, build).run(3)

    assert result.state == RunState.DONE
    assert [e.revision.summary for e in result.entries] == ["c3", "c2", "c1"]
    assert [e.status for e in result.entries] == [EntryStatus.LINKED, EntryStatus.FAILED, EntryStatus.LINKED]
    assert result.built == 2 and result.failed == 1

    scratch = config.scratch_root
    subdirs = sorted(p.name for p in scratch.iterdir() if p.is_dir())
    assert subdirs == sorted([c3.short_id, c1.short_id])
    assert (scratch / c3.short_id / "index.html").exists()
    assert (scratch / c3.short_id / "pkg" / "app.wasm").read_bytes() == c3.full_id.encode()
    assert (scratch / c1.short_id / "favicon.svg").exists()

    html = result.index_path.read_text()
    assert html.index(c3.short_id) < html.index(c2.short_id) < html.index(c1.short_id)
    assert f'href="{c3.short_id}/"' in html
    assert f'href="{c1.short_id}/"' in html
    assert f'href="{c2.short_id}/"' not in html
    assert "(build failed)" in html

    # Each build ran against its own revision, in listing order.
    assert build.heads_seen == [c3.full_id, c2.full_id, c1.full_id]
    # Workspace back on the original branch.
    assert repo3.active_branch.name == branch
    assert repo3.head.commit.hexsha == original


def test_build_logs_are_linked_for_failures(repo3, config, stub_build_factory):
    c2 = RevisionLister(repo3).list(3)[1]
    result = _builder(repo3, config, stub_build_factory(repo3, {"c2": "fail"})).run(3)

    failed = result.entries[1]
    assert failed.log_link == f"{c2.short_id}.build.log"
    assert (config.scratch_root / failed.log_link).exists()
    assert f'href="{c2.short_id}.build.log"' in result.index_path.read_text()


def test_no_build_logs_when_disabled(repo3, tmp_path, stub_build_factory):
    config = BuildHistoryConfig(scratch_root=tmp_path / "out", keep_build_logs=False)
    result = _builder(repo3, config, stub_build_factory(repo3, {"c2": "fail"})).run(3)

    assert all(e.log_link is None for e in result.entries)
    assert not list(config.scratch_root.glob("*.build.log"))


def test_success_without_artifacts_is_failed_note(repo3, config, stub_build_factory):
    c3 = RevisionLister(repo3).list(1)[0]
    result = _builder(repo3, config, stub_build_factory(repo3, {"c3": "empty"})).run(1)

    assert result.entries[0].status == EntryStatus.FAILED
    assert not (config.scratch_root / c3.short_id).exists()


def test_missing_optional_artifact_still_linked(repo3, config, stub_build_factory):
    c3 = RevisionLister(repo3).list(1)[0]
    result = _builder(repo3, config, stub_build_factory(repo3, {"c3": "bare"})).run(1)

    assert result.entries[0].is_linked
    assert not (config.scratch_root / c3.short_id / "favicon.svg").exists()


def test_rerun_is_idempotent(repo3, config, stub_build_factory):
    first = _builder(repo3, config, stub_build_factory(repo3, {"c2": "fail"})).run(3)
    first_html = first.index_path.read_bytes()
    (config.scratch_root / "leftover.txt").write_text("from an earlier run")

    second = _builder(repo3, config, stub_build_factory(repo3, {"c2": "fail"})).run(3)

    assert second.index_path.read_bytes() == first_html
    assert not (config.scratch_root / "leftover.txt").exists()


def test_zero_revisions_writes_empty_index(repo3, config, stub_build_factory):
    build = stub_build_factory(repo3)
    result = _builder(repo3, config, build).run(0)

    assert result.entries == []
    assert result.index_path.exists()
    assert build.calls == []


def test_empty_history_aborts_without_index(empty_repo, config, stub_build_factory):
    builder = _builder(empty_repo, config, stub_build_factory(empty_repo))
    with pytest.raises(HistoryUnavailable):
        builder.run(3)
    assert not (config.scratch_root / "index.html").exists()


def test_checkout_failure_aborts_and_restores(repo3, config, stub_build_factory, monkeypatch):
    branch = repo3.active_branch.name
    original = repo3.head.commit.hexsha
    build = stub_build_factory(repo3)
    builder = _builder(repo3, config, build)

    real_checkout = builder.workspace.checkout

    def flaky_checkout(revision):
        if revision.summary == "c2":
            raise CheckoutFailed(revision.short_id, "simulated")
        real_checkout(revision)

    monkeypatch.setattr(builder.workspace, "checkout", flaky_checkout)

    with pytest.raises(CheckoutFailed):
        builder.run(3)

    assert builder.state == RunState.ABORTED
    assert build.calls == ["c3"]
    assert not (config.scratch_root / "index.html").exists()
    assert repo3.active_branch.name == branch
    assert repo3.head.commit.hexsha == original


def test_build_exception_still_restores(repo3, config, stub_build_factory, monkeypatch):
    original = repo3.head.commit.hexsha
    build = stub_build_factory(repo3)

    def exploding_run(revision, log_file=None):
        raise RuntimeError("collaborator crashed")

    monkeypatch.setattr(build, "run", exploding_run)
    builder = _builder(repo3, config, build)

    with pytest.raises(RuntimeError):
        builder.run(2)
    assert builder.state == RunState.ABORTED
    assert repo3.head.commit.hexsha == original


def test_restore_failure_is_raised(repo3, config, stub_build_factory, monkeypatch):
    builder = _builder(repo3, config, stub_build_factory(repo3))

    def broken_restore(state):
        raise RestoreFailed(state.original_ref, state.original_commit, "simulated")

    monkeypatch.setattr(builder.workspace, "restore", broken_restore)
    with pytest.raises(RestoreFailed):
        builder.run(1)
    assert builder.state == RunState.ABORTED
    assert not (config.scratch_root / "index.html").exists()


def test_leftover_output_is_not_credited_to_later_revisions(repo3, config, stub_build_factory):
    c3, c2, c1 = RevisionLister(repo3).list(3)
    build = stub_build_factory(repo3, {"c3": "ok", "c2": "empty", "c1": "empty"})

    result = _builder(repo3, config, build).run(3)

    assert [e.status for e in result.entries] == [EntryStatus.LINKED, EntryStatus.FAILED, EntryStatus.FAILED]
    assert sorted(p.name for p in config.scratch_root.iterdir() if p.is_dir()) == [c3.short_id]
    assert (config.scratch_root / c3.short_id / "pkg" / "app.wasm").read_bytes() == c3.full_id.encode()
    assert build.calls == ["c3", "c2", "c1"]


def test_optional_artifact_from_previous_revision_is_not_copied(repo3, config, stub_build_factory):
    c3, c2 = RevisionLister(repo3).list(2)
    result = _builder(repo3, config, stub_build_factory(repo3, {"c3": "ok", "c2": "bare"})).run(2)

    assert [e.is_linked for e in result.entries] == [True, True]
    assert (config.scratch_root / c3.short_id / "favicon.svg").exists()
    assert not (config.scratch_root / c2.short_id / "favicon.svg").exists()
    assert (config.scratch_root / c2.short_id / "pkg" / "app.wasm").read_bytes() == c2.full_id.encode()


def test_tracked_artifact_copied_but_does_not_count_as_built(repo3, config, stub_build_factory):
    web = Path(repo3.working_tree_dir) / "web"
    web.mkdir()
    (web / "index.html").write_text("<html>committed</html>")
    repo3.git.add("-f", "web/index.html")
    repo3.index.commit("c4", author=repo3.head.commit.author, committer=repo3.head.commit.committer)
    c4 = RevisionLister(repo3).list(1)[0]

    result = _builder(repo3, config, stub_build_factory(repo3, {"c4": "pkg"})).run(1)
    assert result.entries[0].is_linked
    assert (config.scratch_root / c4.short_id / "index.html").read_text() == "<html>committed</html>"
    assert (config.scratch_root / c4.short_id / "pkg" / "app.wasm").exists()

    result = _builder(repo3, config, stub_build_factory(repo3, {"c4": "empty"})).run(1)
    assert result.entries[0].status == EntryStatus.FAILED
    assert not (config.scratch_root / c4.short_id).exists()
    assert (web / "index.html").exists()


@pytest.mark.parametrize("where", ["repo", "parent"])
def test_scratch_root_containing_repo_is_refused(repo3, stub_build_factory, where):
    repo_dir = Path(repo3.working_tree_dir)
    scratch = repo_dir if where == "repo" else repo_dir.parent
    config = BuildHistoryConfig(scratch_root=scratch)

    with pytest.raises(ConfigError):
        _builder(repo3, config, stub_build_factory(repo3)).run(1)
    assert (repo_dir / "app.txt").exists()
    assert not repo3.is_dirty()
