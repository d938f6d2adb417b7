"""
Data models for CI events sent to ALM Octane
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CiEventType(str, Enum):
    UNDEFINED = "undefined"
    QUEUED = "queued"
    STARTED = "started"
    FINISHED = "finished"
    SCM = "scm"
    DELETED = "deleted"


class CiCausesType(str, Enum):
    TIMER = "timer"
    USER = "user"
    SCM = "scm"
    UPSTREAM = "upstream"
    UNDEFINED = "undefined"


class PhaseType(str, Enum):
    POST = "post"
    INTERNAL = "internal"


class Result(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ABORTED = "aborted"
    UNSTABLE = "unstable"
    UNAVAILABLE = "unavailable"


class MultiBranchType(str, Enum):
    PARENT = "parent"
    CHILD = "child"


class ScmChangeType(str, Enum):
    ADD = "add"
    DELETE = "delete"
    EDIT = "edit"


class PullRequestState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset keys and unwrap enums"""
    result = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        result[key] = value
    return result


@dataclass
class CiEventCause:
    """Why a build happened, chained through upstream jobs"""
    type: CiCausesType
    project: str
    build_ci_id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    causes: List["CiEventCause"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "project": self.project,
            "buildCiId": self.build_ci_id,
            "userId": self.user_id,
            "userName": self.user_name,
            "causes": [cause.to_dict() for cause in self.causes] if self.causes else None,
        })


@dataclass
class CiParameter:
    name: str
    value: Optional[str] = None
    default_value: Optional[str] = None
    choices: Optional[List[str]] = None
    description: Optional[str] = None
    type: str = "string"

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "name": self.name,
            "value": self.value,
            "defaultValue": self.default_value,
            "choices": self.choices,
            "description": self.description,
            "type": self.type,
        })


@dataclass
class ScmRepository:
    url: str
    branch: str
    type: str = "git"

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "branch": self.branch, "type": self.type}


@dataclass
class ScmCommitChange:
    file: str
    type: ScmChangeType
    rename_to_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "file": self.file,
            "type": self.type,
            "renameToFile": self.rename_to_file,
        })


@dataclass
class ScmCommit:
    rev_id: str
    user: str
    user_email: Optional[str]
    time: int
    comment: str
    changes: List[ScmCommitChange] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "revId": self.rev_id,
            "user": self.user,
            "userEmail": self.user_email,
            "time": self.time,
            "comment": self.comment,
            "changes": [change.to_dict() for change in self.changes],
        })


@dataclass
class ScmData:
    repository: ScmRepository
    commits: List[ScmCommit]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository.to_dict(),
            "commits": [commit.to_dict() for commit in self.commits],
        }


@dataclass
class CiEvent:
    """
    A single CI event as understood by the Octane events endpoint

    duration and result are only set on FINISHED events, scm_data only on SCM events.
    """
    build_ci_id: str
    event_type: CiEventType
    number: str
    project: str
    project_display_name: str
    start_time: int
    causes: List[CiEventCause] = field(default_factory=list)
    duration: Optional[int] = None
    result: Optional[Result] = None
    scm_data: Optional[ScmData] = None
    parameters: Optional[List[CiParameter]] = None
    multi_branch_type: Optional[MultiBranchType] = None
    parent_ci_id: Optional[str] = None
    branch: Optional[str] = None
    phase_type: Optional[PhaseType] = None
    skip_validation: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "buildCiId": self.build_ci_id,
            "eventType": self.event_type,
            "number": self.number,
            "project": self.project,
            "projectDisplayName": self.project_display_name,
            "startTime": self.start_time,
            "duration": self.duration,
            "result": self.result,
            "causes": [cause.to_dict() for cause in self.causes],
            "scmData": self.scm_data.to_dict() if self.scm_data else None,
            "parameters": (
                [parameter.to_dict() for parameter in self.parameters]
                if self.parameters is not None else None
            ),
            "multiBranchType": self.multi_branch_type,
            "parentCiId": self.parent_ci_id,
            "branch": self.branch,
            "phaseType": self.phase_type,
            "skipValidation": self.skip_validation,
        })


@dataclass
class CauseJobData:
    """Node of the caused-by chain: either the root workflow or a job under a parent"""
    job_name: str
    is_root: bool
    cause_type: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    parent_job_data: Optional["CauseJobData"] = None


@dataclass(frozen=True)
class PipelineEventData:
    """Resolved Octane identity of one workflow run"""
    pipeline_id: str
    instance_id: str
    build_ci_id: str
    base_url: str
    root_job_name: str


@dataclass
class PullRequestData:
    """Pull request snapshot in the shape of the Octane pull-requests endpoint"""
    id: str
    author_name: str
    author_email: str
    title: str
    description: str
    created_time: Optional[int]
    updated_time: Optional[int]
    merged: bool
    self_url: str
    state: PullRequestState
    source_repository: ScmRepository
    target_repository: ScmRepository
    commits: List[ScmCommit] = field(default_factory=list)
    merged_time: Optional[int] = None
    closed_time: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "authorName": self.author_name,
            "authorEmail": self.author_email,
            "title": self.title,
            "description": self.description,
            "createdTime": self.created_time,
            "updatedTime": self.updated_time,
            "mergedTime": self.merged_time,
            "closedTime": self.closed_time,
            "merged": self.merged,
            "selfUrl": self.self_url,
            "state": self.state,
            "sourceRepository": self.source_repository.to_dict(),
            "targetRepository": self.target_repository.to_dict(),
            "commits": [commit.to_dict() for commit in self.commits],
        })
