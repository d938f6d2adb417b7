"""
GitHub side data models
Webhook payload input plus the workflow/job/commit shapes returned by the GitHub client
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import MissingRequiredFieldError
from .utils import parse_timestamp


class ActionsEventType(str, Enum):
    """Webhook action, valued by the action string GitHub sends"""
    WORKFLOW_QUEUED = "requested"
    WORKFLOW_STARTED = "in_progress"
    WORKFLOW_FINISHED = "completed"
    PULL_REQUEST_OPENED = "opened"
    PULL_REQUEST_CLOSED = "closed"
    PULL_REQUEST_EDITED = "edited"
    PULL_REQUEST_REOPENED = "reopened"
    UNKNOWN_EVENT = "unknown"

    @classmethod
    def from_action(cls, action: Optional[str]) -> "ActionsEventType":
        for event_type in cls:
            if event_type.value == action and event_type is not cls.UNKNOWN_EVENT:
                return event_type
        return cls.UNKNOWN_EVENT

    @property
    def is_workflow_event(self) -> bool:
        return self in (
            ActionsEventType.WORKFLOW_QUEUED,
            ActionsEventType.WORKFLOW_STARTED,
            ActionsEventType.WORKFLOW_FINISHED,
        )

    @property
    def is_pull_request_event(self) -> bool:
        return self in (
            ActionsEventType.PULL_REQUEST_OPENED,
            ActionsEventType.PULL_REQUEST_CLOSED,
            ActionsEventType.PULL_REQUEST_EDITED,
            ActionsEventType.PULL_REQUEST_REOPENED,
        )


class WorkflowRunStatus(str, Enum):
    REQUESTED = "requested"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    QUEUED = "queued"
    PENDING = "pending"
    WAITING = "waiting"
    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"


@dataclass
class JobStep:
    name: str
    number: int
    status: Optional[str] = None
    conclusion: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass
class ActionsJob:
    id: int
    name: str
    run_id: Optional[int] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    steps: List[JobStep] = field(default_factory=list)


@dataclass
class WorkflowRun:
    id: int
    workflow_id: Optional[int] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    run_number: Optional[int] = None
    head_branch: Optional[str] = None
    event: Optional[str] = None
    run_started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Artifact:
    id: int
    name: str
    archive_download_url: Optional[str] = None


@dataclass
class CommitFile:
    filename: str
    status: str
    previous_filename: Optional[str] = None


@dataclass
class GitHubCommit:
    sha: str
    message: str
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    author_date: Optional[datetime] = None
    has_author: bool = True
    files: List[CommitFile] = field(default_factory=list)


@dataclass
class WorkflowFile:
    content: str
    encoding: Optional[str]


@dataclass
class Repository:
    owner: str
    name: str
    html_url: Optional[str] = None


@dataclass
class Workflow:
    name: Optional[str] = None
    path: Optional[str] = None


@dataclass
class WorkflowRunPayload:
    id: int
    event: Optional[str] = None
    conclusion: Optional[str] = None
    run_started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    run_number: Optional[int] = None
    head_branch: Optional[str] = None
    triggering_actor: Optional[str] = None


@dataclass
class PullRequestPayload:
    number: int
    title: str = ""
    body: str = ""
    state: Optional[str] = None
    merged: bool = False
    html_url: str = ""
    user_login: str = ""
    user_email: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    head_ref: str = ""
    base_ref: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PullRequestPayload":
        if data.get("number") is None:
            raise MissingRequiredFieldError("Pull request data should contain a number!")
        user = data.get("user") or {}
        return cls(
            number=int(data["number"]),
            title=data.get("title") or "",
            body=data.get("body") or "",
            state=data.get("state"),
            merged=bool(data.get("merged")),
            html_url=data.get("html_url") or "",
            user_login=user.get("login") or "",
            user_email=user.get("email") or "",
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            merged_at=parse_timestamp(data.get("merged_at")),
            closed_at=parse_timestamp(data.get("closed_at")),
            head_ref=(data.get("head") or {}).get("ref") or "",
            base_ref=(data.get("base") or {}).get("ref") or "",
        )


@dataclass
class ActionsEvent:
    """Validated webhook payload, built once at the entry point"""
    action: Optional[str]
    repository: Repository
    workflow: Optional[Workflow] = None
    workflow_run: Optional[WorkflowRunPayload] = None
    pull_request: Optional[PullRequestPayload] = None

    @property
    def event_type(self) -> ActionsEventType:
        return ActionsEventType.from_action(self.action)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ActionsEvent":
        repository = payload.get("repository") or {}
        owner = (repository.get("owner") or {}).get("login")
        name = repository.get("name")
        if not owner or not name:
            raise MissingRequiredFieldError("Event should contain repository data!")

        workflow = None
        if payload.get("workflow"):
            workflow = Workflow(
                name=payload["workflow"].get("name"),
                path=payload["workflow"].get("path"),
            )

        workflow_run = None
        run = payload.get("workflow_run")
        if run and run.get("id") is not None:
            workflow_run = WorkflowRunPayload(
                id=int(run["id"]),
                event=run.get("event"),
                conclusion=run.get("conclusion"),
                run_started_at=parse_timestamp(run.get("run_started_at")),
                updated_at=parse_timestamp(run.get("updated_at")),
                run_number=run.get("run_number"),
                head_branch=run.get("head_branch"),
                triggering_actor=(run.get("triggering_actor") or {}).get("login"),
            )

        pull_request = None
        if payload.get("pull_request"):
            pull_request = PullRequestPayload.from_dict(payload["pull_request"])

        return cls(
            action=payload.get("action"),
            repository=Repository(owner=owner, name=name, html_url=repository.get("html_url")),
            workflow=workflow,
            workflow_run=workflow_run,
            pull_request=pull_request,
        )

    def require_workflow_run(self) -> WorkflowRunPayload:
        if not self.workflow_run:
            raise MissingRequiredFieldError("Event should contain workflow run id!")
        return self.workflow_run

    def require_workflow_path(self) -> str:
        if not self.workflow or not self.workflow.path:
            raise MissingRequiredFieldError("Event should contain workflow file path!")
        return self.workflow.path

    def require_branch(self) -> str:
        if not self.workflow_run or not self.workflow_run.head_branch:
            raise MissingRequiredFieldError("Event should contain workflow data!")
        return self.workflow_run.head_branch
