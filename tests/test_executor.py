"""Tests for test runner executors."""

import asyncio

import pytest

from octane_bridge.services.executor import (
    DEFAULT_FRAMEWORK_ID,
    build_executor_ci_id,
    build_executor_name,
    get_framework_id,
    get_or_create_executor,
    send_executor_finish_event,
    send_executor_start_event,
)
from octane_bridge.shared.exceptions import NotFoundError
from octane_bridge.shared.github_models import ActionsEvent
from octane_bridge.shared.models import CiEventType, MultiBranchType, PhaseType, Result

from conftest import workflow_payload
from fakes import FakeOctaneClient


def test_framework_ids():
    assert get_framework_id("cucumber") == "list_node.je.framework.cucumber"
    assert get_framework_id("unknown") == DEFAULT_FRAMEWORK_ID


def test_names():
    assert build_executor_name("${repository_name}-${workflow_name}", "owner", "repo", "CI", "ci.yml") == "repo-CI"
    assert build_executor_ci_id("owner", "repo", "ci.yml") == "owner/repo/ci.yml/executor"
    assert build_executor_ci_id("owner", "repo", "ci.yml", "main") == "owner/repo/ci.yml/executor/main"


class TestGetOrCreateExecutor:
    def setup_method(self):
        self.octane = FakeOctaneClient()
        self.ci_server = self.octane.add_ci_server("GHA-owner")

    def test_creates_for_ci_job(self):
        self.octane.ci_jobs = [{"id": "j1", "ci_id": "owner/repo/ci.yml", "name": "CI", "executor": None}]

        executor = asyncio.run(get_or_create_executor(
            self.octane, "CI", "owner/repo/ci.yml", "junit", self.ci_server,
        ))

        assert executor["subtype"] == "test_runner"
        assert executor["framework"] == {"type": "list_node", "id": "list_node.je.framework.junit"}
        assert executor["ci_job"] == {"type": "ci_job", "id": "j1"}
        assert executor["ci_server"] == {"type": "ci_server", "id": self.ci_server["id"]}

    def test_existing_executor_is_reused(self):
        self.octane.ci_jobs = [{"id": "j1", "ci_id": "owner/repo/ci.yml", "name": "CI", "executor": None}]
        first = asyncio.run(get_or_create_executor(self.octane, "CI", "owner/repo/ci.yml", "junit", self.ci_server))

        second = asyncio.run(get_or_create_executor(self.octane, "CI", "owner/repo/ci.yml", "junit", self.ci_server))

        assert second["id"] == first["id"]
        assert len(self.octane.executors) == 1

    def test_missing_ci_job(self):
        with pytest.raises(NotFoundError):
            asyncio.run(get_or_create_executor(self.octane, "CI", "owner/repo/ci.yml", "junit", self.ci_server))


class TestExecutorEvents:
    def setup_method(self):
        self.octane = FakeOctaneClient()
        self.ci_server = self.octane.add_ci_server("GHA-owner")
        self.kwargs = dict(
            executor_name="CI",
            executor_ci_id="owner/repo/ci.yml/executor/main",
            parent_ci_id="owner/repo/ci.yml/executor",
            build_ci_id="42",
            run_number="7",
            branch_name="main",
            start_time=1714557600000,
            base_url="https://github.com",
            parameters=[],
            causes=[],
            ci_server=self.ci_server,
        )

    def test_start_event_is_internal_child(self):
        event = ActionsEvent.from_payload(workflow_payload("in_progress"))

        asyncio.run(send_executor_start_event(self.octane, event, **self.kwargs))

        sent = self.octane.events[-1]
        assert sent.event_type == CiEventType.STARTED
        assert sent.phase_type == PhaseType.INTERNAL
        assert sent.multi_branch_type == MultiBranchType.CHILD
        assert sent.parent_ci_id == "owner/repo/ci.yml/executor"
        assert sent.skip_validation is True

    def test_finish_event_carries_result(self):
        event = ActionsEvent.from_payload(workflow_payload("completed"))

        asyncio.run(send_executor_finish_event(self.octane, event, **self.kwargs))

        sent = self.octane.events[-1]
        assert sent.event_type == CiEventType.FINISHED
        assert sent.phase_type is None
        assert sent.result == Result.SUCCESS
        assert sent.duration == 300000
