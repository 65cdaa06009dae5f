from __future__ import annotations

import pytest

from media_compressor.domain.enums import JobState
from media_compressor.domain.state_machine import (
    InvalidTransition,
    JobStateMachine,
    can_transition,
    is_terminal,
)


def test_url_job_happy_path() -> None:
    m = JobStateMachine("t1")
    for state in (JobState.fetching, JobState.acquired, JobState.transforming, JobState.finalized):
        m.advance(state)
    assert m.history == [
        JobState.created,
        JobState.fetching,
        JobState.acquired,
        JobState.transforming,
        JobState.finalized,
    ]


def test_local_job_skips_fetching() -> None:
    m = JobStateMachine("t1")
    m.advance(JobState.acquired)
    m.advance(JobState.transforming)
    assert m.state == JobState.transforming


@pytest.mark.parametrize(
    "state",
    [JobState.created, JobState.fetching, JobState.acquired, JobState.transforming],
)
def test_failed_reachable_from_any_non_terminal(state: JobState) -> None:
    assert can_transition(state, JobState.failed)


def test_no_reentry_and_no_exit_from_terminal() -> None:
    m = JobStateMachine("t1")
    m.advance(JobState.acquired)
    with pytest.raises(InvalidTransition):
        m.advance(JobState.acquired)
    with pytest.raises(InvalidTransition):
        m.advance(JobState.fetching)

    m.advance(JobState.failed)
    assert is_terminal(JobState.failed)
    with pytest.raises(InvalidTransition, match="already failed"):
        m.advance(JobState.transforming)
    assert m.history[-1] == JobState.failed
