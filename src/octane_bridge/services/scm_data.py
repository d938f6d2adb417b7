"""
SCM data collection
Commits since the previous build and pull request snapshots
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..shared.exceptions import BridgeError, MissingRequiredFieldError
from ..shared.github_client import GitHubClient
from ..shared.github_models import ActionsEvent, GitHubCommit, PullRequestPayload
from ..shared.models import (
    PullRequestData,
    PullRequestState,
    ScmChangeType,
    ScmCommit,
    ScmCommitChange,
    ScmData,
    ScmRepository,
)
from ..shared.octane_client import OctaneClient
from ..shared.utils import from_epoch_millis, parse_timestamp, to_epoch_millis

logger = logging.getLogger(__name__)

CHANGE_TYPES = {
    "added": ScmChangeType.ADD,
    "removed": ScmChangeType.DELETE,
}


def map_change_type(status: str) -> ScmChangeType:
    return CHANGE_TYPES.get(status, ScmChangeType.EDIT)


def branch_url(repo_url: str, branch: str) -> str:
    return f"{repo_url}\\tree\\{branch}"


def map_commits(commits: List[GitHubCommit]) -> List[ScmCommit]:
    scm_commits = []
    for commit in commits:
        if not commit.has_author:
            raise BridgeError("Commit has no author!")

        changes = []
        for file in commit.files:
            change = ScmCommitChange(file=file.filename, type=map_change_type(file.status))
            if file.status == "renamed":
                change.file = file.previous_filename or ""
                change.rename_to_file = file.filename
            changes.append(change)

        scm_commits.append(ScmCommit(
            rev_id=commit.sha,
            user=commit.author_name or "",
            user_email=commit.author_email,
            time=to_epoch_millis(commit.author_date),
            comment=commit.message,
            changes=changes,
        ))
    return scm_commits


def resolve_scm_since(builds: List[Dict[str, Any]], exclude_current: bool) -> Optional[datetime]:
    """
    Start of the commit window, from the builds recorded for the job

    With exclude_current the build being processed is already recorded, so
    the window starts at the most recent other build. Otherwise it starts at
    the most recent build. None when there is no such build.
    """
    ordered = sorted(
        (build for build in builds if build.get("start_time") is not None),
        key=lambda build: from_epoch_millis(build["start_time"]),
        reverse=True,
    )
    index = 1 if exclude_current else 0
    if len(ordered) <= index:
        return None
    return from_epoch_millis(ordered[index]["start_time"])


async def collect_scm_data(
    github: GitHubClient,
    event: ActionsEvent,
    owner: str,
    repo: str,
    since: datetime
) -> Optional[ScmData]:
    """Commits authored on the run's branch at or after since; None when there are none"""
    branch = event.workflow_run.head_branch if event.workflow_run else None
    branch = branch or ""
    since = parse_timestamp(since)

    commit_shas = await github.get_commit_ids(owner, repo, branch, since)

    commits = []
    for commit_sha in commit_shas:
        commit = await github.get_commit(owner, repo, commit_sha)
        authored_at = parse_timestamp(commit.author_date)
        if authored_at is not None and authored_at < since:
            logger.debug(f"Skipping commit '{commit_sha}' authored before '{since.isoformat()}'")
            continue
        commits.append(commit)

    if not commits:
        return None

    repo_url = event.repository.html_url
    if not repo_url:
        raise MissingRequiredFieldError("Repository URL not present in event!")

    return ScmData(
        repository=ScmRepository(url=branch_url(repo_url, branch), branch=branch),
        commits=map_commits(commits),
    )


def convert_pull_request_state(state: Optional[str], merged: bool) -> PullRequestState:
    if state == "closed":
        return PullRequestState.MERGED if merged else PullRequestState.CLOSED
    return PullRequestState.OPEN


async def map_pull_request(
    github: GitHubClient,
    owner: str,
    repo: str,
    pull_request: PullRequestPayload,
    repo_url: str
) -> PullRequestData:
    state = convert_pull_request_state(pull_request.state, pull_request.merged)

    pull_request_data = PullRequestData(
        id=str(pull_request.number),
        author_name=pull_request.user_login,
        author_email=pull_request.user_email,
        title=pull_request.title,
        description=pull_request.body,
        created_time=to_epoch_millis(pull_request.created_at),
        updated_time=to_epoch_millis(pull_request.updated_at),
        merged=pull_request.merged,
        self_url=pull_request.html_url,
        state=state,
        source_repository=ScmRepository(
            url=branch_url(repo_url, pull_request.head_ref), branch=pull_request.head_ref
        ),
        target_repository=ScmRepository(
            url=branch_url(repo_url, pull_request.base_ref), branch=pull_request.base_ref
        ),
    )

    if pull_request.merged and pull_request.merged_at:
        pull_request_data.merged_time = to_epoch_millis(pull_request.merged_at)

    if state in (PullRequestState.MERGED, PullRequestState.CLOSED) and pull_request.closed_at:
        pull_request_data.closed_time = to_epoch_millis(pull_request.closed_at)

    commits = []
    for commit_sha in await github.get_pull_request_commit_ids(owner, repo, pull_request.number):
        commits.append(await github.get_commit(owner, repo, commit_sha))
    pull_request_data.commits = map_commits(commits)

    return pull_request_data


async def send_pull_request_data(
    github: GitHubClient,
    octane: OctaneClient,
    owner: str,
    repo: str,
    pull_request: PullRequestPayload,
    repo_url: str
) -> None:
    pull_request_data = await map_pull_request(github, owner, repo, pull_request, repo_url)
    await octane.send_pull_request_data([pull_request_data])
