from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from gitprocess.actions.combine import NO_CURRENT_BRANCH, Merger, Rebaser, select_combiner
from gitprocess.core.errors import OptionsError
from gitprocess.core.models import CombineKind, ErrorKind, RebaseOutcome, RebaseStatus

if TYPE_CHECKING:
    from gitprocess.core.branch import Branch
    from gitprocess.io.logging import StructuredLogger
    from tests.conftest import World


def _integration(world: World) -> Branch:
    integration = world.repository.integration_branch()
    assert integration is not None
    return integration


@pytest.mark.parametrize(
    ("merge", "rebase", "default_rebase", "expected"),
    [
        (False, False, True, CombineKind.rebase),
        (False, False, False, CombineKind.merge),
        (False, True, False, CombineKind.rebase),
        (True, False, True, CombineKind.merge),
    ],
)
def test_select_combiner(
    merge: bool,  # noqa: FBT001
    rebase: bool,  # noqa: FBT001
    default_rebase: bool,  # noqa: FBT001
    expected: CombineKind,
    logger: StructuredLogger,
) -> None:
    """Explicit flags win over the configured default."""
    combiner = select_combiner(merge=merge, rebase=rebase, default_rebase=default_rebase, logger=logger)

    assert combiner.kind is expected


def test_select_combiner_rejects_both_flags(logger: StructuredLogger) -> None:
    """Rebase and merge cannot both be requested."""
    with pytest.raises(OptionsError, match="mutually exclusive"):
        select_combiner(merge=True, rebase=True, default_rebase=True, logger=logger)


def test_rebase_fast_forwards_behind_branch(world: World, logger: StructuredLogger) -> None:
    """A branch with no own commits is fast-forwarded onto the base."""
    new_master = world.backend.server_commit("origin", "master")
    world.backend.publish("origin", "master", new_master)
    world.backend.refs["refs/heads/feature"] = world.base

    outcome = Rebaser(logger).combine(world.repository, _integration(world)).unwrap()

    assert outcome.status == RebaseStatus.fast_forward.value
    assert outcome.new_head == new_master
    assert outcome.base == "origin/master"


def test_rebase_conflict_is_combine_conflict(world: World, logger: StructuredLogger) -> None:
    """A stopped rebase is a conflict for the caller to resolve."""
    world.backend.conflict_on.add("refs/remotes/origin/master")

    result = Rebaser(logger).combine(world.repository, _integration(world))

    assert result.failure is not None
    assert result.failure.kind is ErrorKind.combine_conflict
    assert result.failure.message == RebaseStatus.stopped.message


def test_rebase_refused_for_uncommitted_changes(
    world: World, logger: StructuredLogger, monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Git refusing to rebase over local edits is a precondition failure."""

    def refuse(onto: str) -> RebaseOutcome:
        del onto
        return RebaseOutcome(status=RebaseStatus.uncommitted_changes)

    monkeypatch.setattr(world.backend, "rebase", refuse)

    result = Rebaser(logger).combine(world.repository, _integration(world))

    assert result.failure is not None
    assert result.failure.kind is ErrorKind.precondition_failed


def test_combine_needs_a_current_branch(world: World, logger: StructuredLogger) -> None:
    """Detached HEAD cannot be combined."""
    world.backend.head = None

    for combiner in (Rebaser(logger), Merger(logger)):
        result = combiner.combine(world.repository, _integration(world))
        assert result.failure is not None
        assert result.failure.message == NO_CURRENT_BRANCH


def test_merge_conflict_is_combine_conflict(world: World, logger: StructuredLogger) -> None:
    """A conflicting merge is reported, not raised."""
    world.backend.conflict_on.add("refs/remotes/origin/master")

    result = Merger(logger).combine(world.repository, _integration(world))

    assert result.failure is not None
    assert result.failure.kind is ErrorKind.combine_conflict
    assert world.backend.calls == [
        ("merge", "refs/remotes/origin/master", "Sync merge from origin/master into feature"),
    ]


def test_merge_with_deleted_base_is_reference_gone(world: World, logger: StructuredLogger) -> None:
    """A base branch deleted after lookup is reported as gone."""
    integration = _integration(world)
    del world.backend.refs["refs/remotes/origin/master"]

    result = Merger(logger).combine(world.repository, integration)

    assert result.failure is not None
    assert result.failure.kind is ErrorKind.reference_gone
    assert world.backend.calls == []
