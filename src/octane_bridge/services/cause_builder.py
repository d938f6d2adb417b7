"""
Builds the caused-by chain of a CI event
"""

from typing import List, Optional

from ..shared.exceptions import MissingCauseTypeError, MissingParentDataError
from ..shared.models import CauseJobData, CiCausesType, CiEventCause

ROOT_CAUSE_TYPES = {
    "workflow_dispatch": CiCausesType.USER,
    "pull_request": CiCausesType.SCM,
    "push": CiCausesType.SCM,
    "create": CiCausesType.SCM,
    "delete": CiCausesType.SCM,
    "fork": CiCausesType.SCM,
    "merge_group": CiCausesType.SCM,
    "schedule": CiCausesType.TIMER,
    "workflow_run": CiCausesType.UPSTREAM,
    "workflow_call": CiCausesType.UPSTREAM,
}


def root_cause_type(cause_type: Optional[str]) -> CiCausesType:
    """Map the GitHub event that triggered a run to an Octane cause type"""
    return ROOT_CAUSE_TYPES.get(cause_type, CiCausesType.UNDEFINED)


def build_causes(job_data: CauseJobData, build_ci_id: str) -> List[CiEventCause]:
    """
    Build the cause list of a job

    A root job yields a single cause of its trigger type. Any other job yields
    a single UPSTREAM cause on its parent, nesting the parent's own causes
    down to the root.
    """
    if job_data.is_root:
        if not job_data.cause_type:
            raise MissingCauseTypeError("Root job must always have a cause type!")

        return [
            CiEventCause(
                type=root_cause_type(job_data.cause_type),
                project=job_data.job_name,
                build_ci_id=build_ci_id,
                user_id=job_data.user_id,
                user_name=job_data.user_name,
            )
        ]

    if job_data.parent_job_data is None:
        raise MissingParentDataError("If not root cause then must have job data!")

    return [
        CiEventCause(
            type=CiCausesType.UPSTREAM,
            project=job_data.parent_job_data.job_name,
            build_ci_id=build_ci_id,
            causes=build_causes(job_data.parent_job_data, build_ci_id),
        )
    ]
