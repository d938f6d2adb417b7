"""
Maps workflow runs, jobs and steps to Octane CI events
"""

from datetime import datetime
from typing import List, Optional, Protocol

from ..shared.exceptions import (
    MissingConclusionError,
    MissingScmDataError,
    MissingTimestampsError,
)
from ..shared.github_models import ActionsEvent, WorkflowRunStatus
from ..shared.models import (
    CauseJobData,
    CiEvent,
    CiEventCause,
    CiEventType,
    CiParameter,
    MultiBranchType,
    PhaseType,
    PipelineEventData,
    Result,
    ScmData,
)
from ..shared.utils import now_millis, to_epoch_millis
from .cause_builder import build_causes


class PipelineComponent(Protocol):
    """Anything with a lifecycle: a workflow job or a job step"""
    name: str
    conclusion: Optional[str]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


RESULTS = {
    WorkflowRunStatus.SUCCESS.value: Result.SUCCESS,
    WorkflowRunStatus.FAILURE.value: Result.FAILURE,
    WorkflowRunStatus.TIMED_OUT.value: Result.FAILURE,
    WorkflowRunStatus.CANCELLED.value: Result.ABORTED,
    WorkflowRunStatus.NEUTRAL.value: Result.UNSTABLE,
    WorkflowRunStatus.ACTION_REQUIRED.value: Result.UNSTABLE,
    WorkflowRunStatus.STALE.value: Result.UNSTABLE,
    WorkflowRunStatus.SKIPPED.value: Result.UNAVAILABLE,
}


def get_run_result(conclusion: Optional[str]) -> Result:
    if not conclusion:
        raise MissingConclusionError("Event must contain a conclusion on Workflow Completed event!")
    return RESULTS.get(conclusion, Result.UNAVAILABLE)


def get_run_duration(started_at, completed_at) -> int:
    """Duration in milliseconds between two timestamps"""
    started = to_epoch_millis(started_at)
    completed = to_epoch_millis(completed_at)
    if started is None or completed is None:
        raise MissingTimestampsError("Event should contain startedAt and completedAt workflow_run fields!")
    return completed - started


def format_run_number(run_number: Optional[int], build_ci_id: str) -> str:
    return str(run_number) if run_number else build_ci_id


def build_root_cause_data(event: ActionsEvent, job_ci_id_prefix: str) -> CauseJobData:
    run = event.workflow_run
    actor = run.triggering_actor if run else None
    return CauseJobData(
        job_name=job_ci_id_prefix,
        is_root=True,
        cause_type=run.event if run else None,
        user_id=actor,
        user_name=actor,
    )


def map_component_to_event(
    component: PipelineComponent,
    parent_cause_data: CauseJobData,
    build_ci_id: str,
    all_children_finished: bool,
    run_number: Optional[int] = None
) -> CiEvent:
    """
    Turn a job or step into a STARTED or FINISHED event

    A component only counts as finished once it has a conclusion and all of
    its children are finished too.
    """
    full_name = f"{parent_cause_data.job_name}/{component.name}"
    is_finished = all_children_finished and bool(component.conclusion)

    started_at = to_epoch_millis(component.started_at)
    ci_event = CiEvent(
        build_ci_id=build_ci_id,
        event_type=CiEventType.FINISHED if is_finished else CiEventType.STARTED,
        number=format_run_number(run_number, build_ci_id),
        project=full_name,
        project_display_name=component.name,
        start_time=started_at if started_at is not None else now_millis(),
        causes=build_causes(
            CauseJobData(job_name=full_name, is_root=False, parent_job_data=parent_cause_data),
            build_ci_id,
        ),
    )

    if is_finished:
        ci_event.result = get_run_result(component.conclusion)
        ci_event.duration = get_run_duration(component.started_at, component.completed_at)

    return ci_event


def generate_root_event(
    event: ActionsEvent,
    pipeline_data: PipelineEventData,
    event_type: CiEventType,
    job_ci_id_prefix: str,
    scm_data: Optional[ScmData] = None,
    parameters: Optional[List[CiParameter]] = None
) -> CiEvent:
    """Build the event of the workflow run itself"""
    run = event.require_workflow_run()
    started_at = to_epoch_millis(run.run_started_at)

    root_event = CiEvent(
        build_ci_id=pipeline_data.build_ci_id,
        event_type=event_type,
        number=format_run_number(run.run_number, pipeline_data.build_ci_id),
        project=job_ci_id_prefix,
        project_display_name=pipeline_data.root_job_name,
        start_time=started_at if started_at is not None else now_millis(),
        causes=build_causes(build_root_cause_data(event, job_ci_id_prefix), pipeline_data.build_ci_id),
        parameters=parameters,
    )

    if event_type == CiEventType.FINISHED:
        root_event.duration = get_run_duration(run.run_started_at, run.updated_at)
        root_event.result = get_run_result(run.conclusion)

    if event_type == CiEventType.SCM:
        if not scm_data:
            raise MissingScmDataError("SCM type event must contain SCM data!")
        root_event.scm_data = scm_data

    return root_event


def generate_root_executor_event(
    event: ActionsEvent,
    executor_name: str,
    executor_ci_id: str,
    build_ci_id: str,
    run_number: str,
    branch_name: str,
    start_time: int,
    event_type: CiEventType,
    parameters: List[CiParameter],
    causes: List[CiEventCause],
    multi_branch_type: MultiBranchType,
    parent_ci_id: str,
    phase_type: Optional[PhaseType] = None
) -> CiEvent:
    executor_event = CiEvent(
        build_ci_id=build_ci_id,
        event_type=event_type,
        number=run_number,
        parent_ci_id=parent_ci_id,
        project=executor_ci_id,
        project_display_name=executor_name,
        multi_branch_type=multi_branch_type,
        start_time=start_time,
        branch=branch_name,
        parameters=parameters,
        causes=causes,
        phase_type=phase_type,
        skip_validation=True,
    )

    if event_type == CiEventType.FINISHED:
        run = event.require_workflow_run()
        executor_event.duration = get_run_duration(run.run_started_at, run.updated_at)
        executor_event.result = get_run_result(run.conclusion)

    return executor_event
