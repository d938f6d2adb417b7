"""
Waits for sibling integration runs before a workflow run is finalized

Integration job names follow OctaneIntegration#<action>#<workflow run id>.
"""

import asyncio
import logging
from typing import List

from ..shared.github_client import GitHubClient
from ..shared.github_models import ActionsEventType, WorkflowRun, WorkflowRunStatus
from ..shared.polling import Tick, poll

logger = logging.getLogger(__name__)

NOT_FINISHED_STATUSES = (
    WorkflowRunStatus.IN_PROGRESS,
    WorkflowRunStatus.QUEUED,
    WorkflowRunStatus.REQUESTED,
    WorkflowRunStatus.WAITING,
)


def is_integration_job_for(job_name: str, event_type: ActionsEventType, workflow_run_id: int) -> bool:
    name_components = job_name.split("#")
    if len(name_components) < 3:
        return False
    try:
        triggered_by_run_id = int(name_components[2])
    except ValueError:
        return False
    return name_components[1] == event_type.value and triggered_by_run_id == workflow_run_id


async def get_not_finished_runs(
    github: GitHubClient,
    owner: str,
    repo: str,
    start_time: int,
    current_run: WorkflowRun
) -> List[WorkflowRun]:
    runs: List[WorkflowRun] = []
    for status in NOT_FINISHED_STATUSES:
        runs.extend(
            await github.get_workflow_runs_triggered_before_by_status(
                owner, repo, start_time, current_run.workflow_id, status
            )
        )
    return [run for run in runs if run.id != current_run.id]


async def wait_for_integration_runs(
    github: GitHubClient,
    owner: str,
    repo: str,
    current_run: WorkflowRun,
    workflow_run_id: int,
    start_time: int,
    event_type: ActionsEventType,
    interval: float = 3.0
) -> None:
    """Block until no other in-flight run carries an integration job of event_type for workflow_run_id"""

    async def tick() -> Tick:
        not_finished_runs = await get_not_finished_runs(github, owner, repo, start_time, current_run)

        jobs_per_run = await asyncio.gather(
            *(github.get_workflow_run_jobs(owner, repo, run.id) for run in not_finished_runs)
        )

        runs_to_wait_for = [
            jobs for jobs in jobs_per_run
            if any(is_integration_job_for(job.name, event_type, workflow_run_id) for job in jobs)
        ]
        if not runs_to_wait_for:
            return Tick.DONE

        logger.debug(f"Still waiting for {len(runs_to_wait_for)} integration run(s)...")
        return Tick.IDLE

    await poll(tick, interval)
