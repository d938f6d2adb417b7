"""Tests for webhook payload validation and action classification."""

import pytest

from octane_bridge.shared.exceptions import MissingRequiredFieldError
from octane_bridge.shared.github_models import ActionsEvent, ActionsEventType

from conftest import workflow_payload


class TestActionsEventType:
    @pytest.mark.parametrize("action,expected", [
        ("requested", ActionsEventType.WORKFLOW_QUEUED),
        ("in_progress", ActionsEventType.WORKFLOW_STARTED),
        ("completed", ActionsEventType.WORKFLOW_FINISHED),
        ("opened", ActionsEventType.PULL_REQUEST_OPENED),
        ("closed", ActionsEventType.PULL_REQUEST_CLOSED),
        ("edited", ActionsEventType.PULL_REQUEST_EDITED),
        ("reopened", ActionsEventType.PULL_REQUEST_REOPENED),
        ("synchronize", ActionsEventType.UNKNOWN_EVENT),
        ("unknown", ActionsEventType.UNKNOWN_EVENT),
        (None, ActionsEventType.UNKNOWN_EVENT),
    ])
    def test_from_action(self, action, expected):
        assert ActionsEventType.from_action(action) == expected

    def test_groups(self):
        assert ActionsEventType.WORKFLOW_STARTED.is_workflow_event
        assert not ActionsEventType.WORKFLOW_STARTED.is_pull_request_event
        assert ActionsEventType.PULL_REQUEST_CLOSED.is_pull_request_event
        assert not ActionsEventType.UNKNOWN_EVENT.is_workflow_event


class TestFromPayload:
    def test_workflow_run_payload(self):
        event = ActionsEvent.from_payload(workflow_payload("in_progress"))

        assert event.event_type == ActionsEventType.WORKFLOW_STARTED
        assert event.repository.owner == "owner"
        assert event.workflow.path == ".github/workflows/ci.yml"
        assert event.workflow_run.id == 42
        assert event.workflow_run.triggering_actor == "octocat"
        assert event.require_branch() == "main"

    def test_missing_repository(self):
        payload = workflow_payload("requested")
        del payload["repository"]["owner"]

        with pytest.raises(MissingRequiredFieldError):
            ActionsEvent.from_payload(payload)

    def test_missing_workflow_run(self):
        payload = workflow_payload("requested")
        del payload["workflow_run"]
        event = ActionsEvent.from_payload(payload)

        with pytest.raises(MissingRequiredFieldError):
            event.require_workflow_run()

    def test_missing_workflow_path(self):
        payload = workflow_payload("requested")
        payload["workflow"] = {"name": "CI"}
        event = ActionsEvent.from_payload(payload)

        with pytest.raises(MissingRequiredFieldError):
            event.require_workflow_path()

    def test_pull_request_payload(self):
        event = ActionsEvent.from_payload({
            "action": "closed",
            "repository": {"name": "repo", "owner": {"login": "owner"}},
            "pull_request": {
                "number": 5,
                "title": "Fix",
                "state": "closed",
                "merged": True,
                "user": {"login": "octocat"},
                "head": {"ref": "fix"},
                "base": {"ref": "main"},
                "merged_at": "2024-05-01T10:00:00Z",
            },
        })

        assert event.pull_request.number == 5
        assert event.pull_request.head_ref == "fix"
        assert event.pull_request.merged_at is not None
        assert event.pull_request.user_email == ""
