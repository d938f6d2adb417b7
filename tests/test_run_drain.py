"""Tests for waiting on sibling integration runs."""

import asyncio

import pytest

from octane_bridge.services.run_drain import is_integration_job_for, wait_for_integration_runs
from octane_bridge.shared.github_models import ActionsEventType, ActionsJob, WorkflowRun

from fakes import FakeGitHubClient


class ShrinkingRunsGitHub(FakeGitHubClient):
    """Reports one in-progress integration run for the first `busy_polls` status listings"""

    def __init__(self, busy_polls):
        super().__init__()
        self.busy_polls = busy_polls
        self.listings = 0

    async def get_workflow_runs_triggered_before_by_status(self, owner, repo, before_time, workflow_id, status):
        if status.value != "in_progress":
            return []
        self.listings += 1
        if self.listings > self.busy_polls:
            return []
        return [WorkflowRun(id=100, workflow_id=workflow_id), WorkflowRun(id=1, workflow_id=workflow_id)]


@pytest.mark.parametrize("job_name,expected", [
    ("OctaneIntegration#in_progress#42", True),
    ("OctaneIntegration#completed#42", False),
    ("OctaneIntegration#in_progress#43", False),
    ("OctaneIntegration#in_progress#abc", False),
    ("build", False),
])
def test_is_integration_job_for(job_name, expected):
    assert is_integration_job_for(job_name, ActionsEventType.WORKFLOW_STARTED, 42) is expected


class TestWaitForIntegrationRuns:
    def test_waits_until_sibling_finishes(self):
        github = ShrinkingRunsGitHub(busy_polls=2)
        github.run_jobs[100] = [ActionsJob(id=5, name="OctaneIntegration#in_progress#42")]
        current_run = WorkflowRun(id=1, workflow_id=9)

        asyncio.run(wait_for_integration_runs(
            github, "owner", "repo", current_run, 42, 0, ActionsEventType.WORKFLOW_STARTED, 0,
        ))

        assert github.listings == 3

    def test_unrelated_runs_do_not_block(self):
        github = ShrinkingRunsGitHub(busy_polls=5)
        github.run_jobs[100] = [ActionsJob(id=5, name="OctaneIntegration#in_progress#7")]
        current_run = WorkflowRun(id=1, workflow_id=9)

        asyncio.run(wait_for_integration_runs(
            github, "owner", "repo", current_run, 42, 0, ActionsEventType.WORKFLOW_STARTED, 0,
        ))

        assert github.listings == 1
