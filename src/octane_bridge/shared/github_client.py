"""
GitHub API Client
Reads workflow runs, jobs, commits, artifacts and workflow files through PyGithub

PyGithub and requests block, so every public coroutine runs its API calls
in a worker thread and gathered calls overlap.
"""

import asyncio
import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests
from github import Auth, Github

from .exceptions import NotFoundError
from .github_models import (
    ActionsJob,
    Artifact,
    CommitFile,
    GitHubCommit,
    JobStep,
    WorkflowFile,
    WorkflowRun,
    WorkflowRunStatus,
)
from .utils import parse_timestamp

logger = logging.getLogger(__name__)

WORKFLOWS_DIR = ".github/workflows"
DEFAULT_API_URL = "https://api.github.com"


class GitHubClient:
    """Client for the GitHub Actions and repository APIs"""

    def __init__(self, token: Optional[str] = None, base_url: Optional[str] = None):
        self.token = token or os.getenv("GITHUB_TOKEN")

        if not self.token:
            raise ValueError("GITHUB_TOKEN must be set")

        self.api_url = (base_url or DEFAULT_API_URL).rstrip("/")
        if base_url:
            self.client = Github(auth=Auth.Token(self.token), base_url=self.api_url, per_page=100)
        else:
            self.client = Github(auth=Auth.Token(self.token), per_page=100)

        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        })
        self._repos: Dict[str, object] = {}
        self._runs: Dict[Tuple[str, str, int], object] = {}
        logger.debug(f"GitHub client initialized for '{self.api_url}'")

    def _repo(self, owner: str, repo: str):
        full_name = f"{owner}/{repo}"
        if full_name not in self._repos:
            self._repos[full_name] = self.client.get_repo(full_name)
        return self._repos[full_name]

    def _run_handle(self, owner: str, repo: str, workflow_run_id: int):
        key = (owner, repo, workflow_run_id)
        if key not in self._runs:
            self._runs[key] = self._repo(owner, repo).get_workflow_run(workflow_run_id)
        return self._runs[key]

    async def get_workflow_run(self, owner: str, repo: str, workflow_run_id: int) -> WorkflowRun:
        """Fetch a workflow run (always fresh, used to read its conclusion)"""
        logger.debug(f"Getting workflow run with {{run_id='{workflow_run_id}'}}...")

        def fetch() -> WorkflowRun:
            run = self._repo(owner, repo).get_workflow_run(workflow_run_id)
            self._runs[(owner, repo, workflow_run_id)] = run
            return _to_workflow_run(run)

        return await asyncio.to_thread(fetch)

    async def get_workflow_run_jobs(
        self,
        owner: str,
        repo: str,
        workflow_run_id: int
    ) -> List[ActionsJob]:
        """Fetch all jobs of a workflow run"""
        logger.debug(f"Getting all jobs for workflow run with {{run_id='{workflow_run_id}'}}...")

        def fetch() -> List[ActionsJob]:
            run = self._run_handle(owner, repo, workflow_run_id)
            return [_to_actions_job(job) for job in run.jobs()]

        return await asyncio.to_thread(fetch)

    async def get_job(
        self,
        owner: str,
        repo: str,
        workflow_run_id: int,
        job_id: int
    ) -> ActionsJob:
        """Fetch the current state of one job of a workflow run"""
        logger.debug(f"Getting job with {{job_id='{job_id}', run_id='{workflow_run_id}'}}...")

        def fetch() -> ActionsJob:
            response = self.session.get(
                f"{self.api_url}/repos/{owner}/{repo}/actions/jobs/{job_id}", timeout=60
            )
            if response.status_code == 404:
                raise NotFoundError(f"Job {job_id} not found in workflow run {workflow_run_id}")
            response.raise_for_status()
            return _job_from_json(response.json())

        return await asyncio.to_thread(fetch)

    async def get_workflow_runs_triggered_before_by_status(
        self,
        owner: str,
        repo: str,
        before_time: int,
        workflow_id: int,
        status: WorkflowRunStatus
    ) -> List[WorkflowRun]:
        """Fetch runs of a workflow triggered by workflow_run events that started before before_time (epoch ms)"""
        logger.debug(
            f"Getting workflow runs before '{before_time}' with "
            f"{{workflow_id='{workflow_id}', status='{status.value}'}}..."
        )

        def fetch() -> List[WorkflowRun]:
            workflow = self._repo(owner, repo).get_workflow(workflow_id)
            runs = []
            for run in workflow.get_runs(event="workflow_run", status=status.value):
                converted = _to_workflow_run(run)
                started = converted.run_started_at
                if started and started.timestamp() * 1000 < before_time:
                    runs.append(converted)
            return runs

        return await asyncio.to_thread(fetch)

    async def get_workflow_run_artifacts(
        self,
        owner: str,
        repo: str,
        workflow_run_id: int
    ) -> List[Artifact]:
        logger.debug(f"Getting artifacts for workflow run with {{run_id='{workflow_run_id}'}}...")

        def fetch() -> List[Artifact]:
            run = self._run_handle(owner, repo, workflow_run_id)
            return [
                Artifact(
                    id=artifact.id,
                    name=artifact.name,
                    archive_download_url=artifact.archive_download_url,
                )
                for artifact in run.get_artifacts()
            ]

        return await asyncio.to_thread(fetch)

    async def download_artifact(self, artifact: Artifact) -> bytes:
        """Download an artifact zip archive"""
        logger.info(f"Downloading artifact with {{artifactId='{artifact.id}'}}...")
        return await asyncio.to_thread(self.download, artifact.archive_download_url)

    async def get_commit_ids(
        self,
        owner: str,
        repo: str,
        branch: str,
        since: datetime
    ) -> List[str]:
        """List the SHAs of commits on a branch since a point in time"""
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        logger.debug(f"Getting commits since '{since.isoformat()}' for branch '{branch}'...")

        def fetch() -> List[str]:
            commits = self._repo(owner, repo).get_commits(sha=branch, since=since)
            return [commit.sha for commit in commits]

        return await asyncio.to_thread(fetch)

    async def get_commit(self, owner: str, repo: str, commit_sha: str) -> GitHubCommit:
        logger.debug(f"Getting commit with {{ref='{commit_sha}'}}...")

        def fetch() -> GitHubCommit:
            commit = self._repo(owner, repo).get_commit(commit_sha)
            author = commit.commit.author
            return GitHubCommit(
                sha=commit.sha,
                message=commit.commit.message,
                author_name=author.name if author else None,
                author_email=author.email if author else None,
                author_date=author.date if author else None,
                has_author=author is not None,
                files=[
                    CommitFile(
                        filename=file.filename,
                        status=file.status,
                        previous_filename=file.previous_filename,
                    )
                    for file in (commit.files or [])
                ],
            )

        return await asyncio.to_thread(fetch)

    async def get_pull_request_commit_ids(
        self,
        owner: str,
        repo: str,
        pull_request_number: int
    ) -> List[str]:
        logger.debug(f"Getting commits for pull request with {{pull_number='{pull_request_number}'}}...")

        def fetch() -> List[str]:
            pull_request = self._repo(owner, repo).get_pull(pull_request_number)
            return [commit.sha for commit in pull_request.get_commits()]

        return await asyncio.to_thread(fetch)

    async def get_download_logs_url(
        self,
        owner: str,
        repo: str,
        workflow_run_id: int
    ) -> Optional[str]:
        """Location of the zipped logs of a workflow run"""
        logger.info(f"Downloading logs for workflow with {{run_id='{workflow_run_id}'}}...")
        run = await asyncio.to_thread(self._run_handle, owner, repo, workflow_run_id)
        url = getattr(run, "logs_url", None)
        if not url:
            logger.warning(
                f"Couldn't get the location of the logs files for workflow with {{run_id='{workflow_run_id}'}}..."
            )
        return url

    async def get_workflow_file(
        self,
        owner: str,
        repo: str,
        workflow_file_name: str,
        branch_name: Optional[str] = None
    ) -> WorkflowFile:
        """Fetch the (base64 encoded) configuration file of a workflow"""
        logger.info(
            f"Getting the configuration file for workflow with {{workflowFileName='{workflow_file_name}'}}..."
        )
        path = f"{WORKFLOWS_DIR}/{workflow_file_name}"

        def fetch() -> WorkflowFile:
            repository = self._repo(owner, repo)
            if branch_name:
                content = repository.get_contents(path, ref=branch_name)
            else:
                content = repository.get_contents(path)
            return WorkflowFile(content=content.content or "", encoding=content.encoding)

        return await asyncio.to_thread(fetch)

    def download(self, url: str) -> bytes:
        """Download a binary resource, following GitHub's redirect to storage"""
        response = self.session.get(url, timeout=120, allow_redirects=True)
        response.raise_for_status()
        return response.content

def _to_workflow_run(run) -> WorkflowRun:
    return WorkflowRun(
        id=run.id,
        workflow_id=run.workflow_id,
        status=run.status,
        conclusion=run.conclusion,
        run_number=run.run_number,
        head_branch=run.head_branch,
        event=run.event,
        run_started_at=getattr(run, "run_started_at", None),
        updated_at=run.updated_at,
    )


def _to_actions_job(job) -> ActionsJob:
    return ActionsJob(
        id=job.id,
        name=job.name,
        run_id=job.run_id,
        status=job.status,
        conclusion=job.conclusion,
        started_at=job.started_at,
        completed_at=job.completed_at,
        steps=[
            JobStep(
                name=step.name,
                number=step.number,
                status=step.status,
                conclusion=step.conclusion,
                started_at=step.started_at,
                completed_at=step.completed_at,
            )
            for step in (job.steps or [])
        ],
    )


def _job_from_json(job: Dict[str, Any]) -> ActionsJob:
    return ActionsJob(
        id=job["id"],
        name=job["name"],
        run_id=job.get("run_id"),
        status=job.get("status"),
        conclusion=job.get("conclusion"),
        started_at=parse_timestamp(job.get("started_at")),
        completed_at=parse_timestamp(job.get("completed_at")),
        steps=[
            JobStep(
                name=step["name"],
                number=step.get("number"),
                status=step.get("status"),
                conclusion=step.get("conclusion"),
                started_at=parse_timestamp(step.get("started_at")),
                completed_at=parse_timestamp(step.get("completed_at")),
            )
            for step in (job.get("steps") or [])
        ],
    )
