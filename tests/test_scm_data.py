"""Tests for commit and pull request collection."""

import asyncio
from datetime import timedelta

import pytest

from octane_bridge.services.scm_data import (
    collect_scm_data,
    convert_pull_request_state,
    map_commits,
    map_pull_request,
    resolve_scm_since,
)
from octane_bridge.shared.exceptions import BridgeError, MissingRequiredFieldError
from octane_bridge.shared.github_models import (
    ActionsEvent,
    CommitFile,
    GitHubCommit,
    PullRequestPayload,
)
from octane_bridge.shared.models import PullRequestState, ScmChangeType
from octane_bridge.shared.utils import to_epoch_millis

from conftest import workflow_payload
from fakes import T0, FakeGitHubClient


def commit(sha, authored_at, files=None, has_author=True):
    return GitHubCommit(
        sha=sha,
        message=f"commit {sha}",
        author_name="Octo Cat",
        author_email="octo@example.com",
        author_date=authored_at,
        has_author=has_author,
        files=files or [],
    )


class TestCollectScmData:
    def setup_method(self):
        self.github = FakeGitHubClient()
        self.event = ActionsEvent.from_payload(workflow_payload("in_progress"))

    def test_commits_before_since_are_dropped(self):
        self.github.commit_ids = ["new", "old"]
        self.github.commits = {
            "new": commit("new", T0 + timedelta(seconds=1)),
            "old": commit("old", T0 - timedelta(seconds=1)),
        }

        scm_data = asyncio.run(collect_scm_data(self.github, self.event, "owner", "repo", T0))

        assert [c.rev_id for c in scm_data.commits] == ["new"]
        assert scm_data.repository.branch == "main"
        assert scm_data.repository.url == "https://github.com/owner/repo\\tree\\main"

    def test_no_commits_gives_none(self):
        self.github.commit_ids = ["old"]
        self.github.commits = {"old": commit("old", T0 - timedelta(minutes=5))}

        assert asyncio.run(collect_scm_data(self.github, self.event, "owner", "repo", T0)) is None

    def test_missing_repository_url(self):
        payload = workflow_payload("in_progress")
        del payload["repository"]["html_url"]
        event = ActionsEvent.from_payload(payload)
        self.github.commit_ids = ["new"]
        self.github.commits = {"new": commit("new", T0)}

        with pytest.raises(MissingRequiredFieldError):
            asyncio.run(collect_scm_data(self.github, event, "owner", "repo", T0))


class TestMapCommits:
    def test_change_types(self):
        scm_commits = map_commits([commit("a", T0, files=[
            CommitFile(filename="new.py", status="added"),
            CommitFile(filename="gone.py", status="removed"),
            CommitFile(filename="edit.py", status="modified"),
            CommitFile(filename="after.py", status="renamed", previous_filename="before.py"),
        ])])

        changes = scm_commits[0].changes
        assert [c.type for c in changes] == [
            ScmChangeType.ADD, ScmChangeType.DELETE, ScmChangeType.EDIT, ScmChangeType.EDIT,
        ]
        assert changes[3].file == "before.py"
        assert changes[3].rename_to_file == "after.py"
        assert scm_commits[0].time == to_epoch_millis(T0)
        assert scm_commits[0].user == "Octo Cat"

    def test_commit_without_author(self):
        with pytest.raises(BridgeError, match="Commit has no author!"):
            map_commits([commit("a", T0, has_author=False)])


class TestResolveScmSince:
    builds = [
        {"id": "1", "start_time": to_epoch_millis(T0)},
        {"id": "3", "start_time": to_epoch_millis(T0 + timedelta(hours=2))},
        {"id": "2", "start_time": to_epoch_millis(T0 + timedelta(hours=1))},
    ]

    def test_previous_build_when_current_is_recorded(self):
        assert resolve_scm_since(self.builds, exclude_current=True) == T0 + timedelta(hours=1)

    def test_latest_build(self):
        assert resolve_scm_since(self.builds, exclude_current=False) == T0 + timedelta(hours=2)

    def test_too_few_builds(self):
        assert resolve_scm_since(self.builds[:1], exclude_current=True) is None
        assert resolve_scm_since([], exclude_current=False) is None

    def test_iso_start_times(self):
        builds = [{"start_time": "2024-05-01T10:00:00Z"}, {"start_time": "2024-05-01T11:00:00Z"}]

        assert resolve_scm_since(builds, exclude_current=True) == T0


class TestPullRequests:
    @pytest.mark.parametrize("state,merged,expected", [
        ("open", False, PullRequestState.OPEN),
        ("closed", False, PullRequestState.CLOSED),
        ("closed", True, PullRequestState.MERGED),
        (None, False, PullRequestState.OPEN),
    ])
    def test_state(self, state, merged, expected):
        assert convert_pull_request_state(state, merged) == expected

    def test_merged_pull_request(self):
        github = FakeGitHubClient()
        github.pull_request_commit_ids = ["a"]
        github.commits = {"a": commit("a", T0)}
        pull_request = PullRequestPayload(
            number=5,
            title="Fix",
            state="closed",
            merged=True,
            html_url="https://github.com/owner/repo/pull/5",
            user_login="octocat",
            created_at=T0,
            updated_at=T0 + timedelta(minutes=1),
            merged_at=T0 + timedelta(minutes=2),
            closed_at=T0 + timedelta(minutes=2),
            head_ref="fix",
            base_ref="main",
        )

        data = asyncio.run(map_pull_request(github, "owner", "repo", pull_request, "https://github.com/owner/repo"))

        assert data.id == "5"
        assert data.state == PullRequestState.MERGED
        assert data.merged_time == to_epoch_millis(T0 + timedelta(minutes=2))
        assert data.closed_time == data.merged_time
        assert data.source_repository.branch == "fix"
        assert data.target_repository.url == "https://github.com/owner/repo\\tree\\main"
        assert [c.rev_id for c in data.commits] == ["a"]

    def test_open_pull_request_has_no_close_times(self):
        github = FakeGitHubClient()
        pull_request = PullRequestPayload(number=6, state="open", created_at=T0, head_ref="x", base_ref="main")

        data = asyncio.run(map_pull_request(github, "owner", "repo", pull_request, "https://github.com/owner/repo"))

        assert data.merged_time is None
        assert data.closed_time is None
        assert data.to_dict()["state"] == "open"
