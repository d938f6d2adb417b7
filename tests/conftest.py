"""Shared fixtures."""

import pytest

from octane_bridge.shared.config import Config


def make_config(**overrides) -> Config:
    values = dict(
        octane_url="https://octane.example.com",
        octane_shared_space=1001,
        octane_workspace=1002,
        octane_client_id="client",
        octane_client_secret="secret",
        github_token="token",
        server_base_url="https://github.com",
        poll_interval=0,
        drain_interval=0,
        pipeline_retry_interval=0,
    )
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def config() -> Config:
    return make_config()


def workflow_payload(action: str, **run_overrides) -> dict:
    workflow_run = {
        "id": 42,
        "event": "push",
        "conclusion": "success" if action == "completed" else None,
        "run_started_at": "2024-05-01T10:00:00Z",
        "updated_at": "2024-05-01T10:05:00Z",
        "run_number": 7,
        "head_branch": "main",
        "triggering_actor": {"login": "octocat"},
    }
    workflow_run.update(run_overrides)
    return {
        "action": action,
        "repository": {
            "name": "repo",
            "owner": {"login": "owner"},
            "html_url": "https://github.com/owner/repo",
        },
        "workflow": {"name": "CI", "path": ".github/workflows/ci.yml"},
        "workflow_run": workflow_run,
    }
