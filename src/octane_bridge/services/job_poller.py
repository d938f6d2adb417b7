"""
Job and step poller

Follows a workflow run while it is in flight and streams one STARTED and one
FINISHED event per job and per step to Octane.
"""

import logging
from collections import deque
from dataclasses import replace
from datetime import datetime, timezone
from typing import Deque, Set

from ..shared.github_client import GitHubClient
from ..shared.github_models import ActionsJob
from ..shared.models import CauseJobData, CiEvent, CiEventType, PipelineEventData
from ..shared.octane_client import OctaneClient
from ..shared.polling import Tick, poll
from .ci_events import map_component_to_event

logger = logging.getLogger(__name__)

_NOT_STARTED = datetime.max.replace(tzinfo=timezone.utc)


def as_started(ci_event: CiEvent) -> CiEvent:
    """STARTED twin of a FINISHED event, for components first seen already finished"""
    return replace(ci_event, event_type=CiEventType.STARTED, duration=None, result=None)


def _start_order(job: ActionsJob) -> datetime:
    return job.started_at or _NOT_STARTED


class JobPoller:
    """
    One polling session over the jobs of a workflow run

    The job queue, the finished job ids and the per-job step sets live only
    as long as the session.
    """

    def __init__(
        self,
        github: GitHubClient,
        octane: OctaneClient,
        owner: str,
        repo: str,
        workflow_run_id: int,
        pipeline_data: PipelineEventData,
        root_cause_data: CauseJobData,
        run_number=None,
        interval: float = 3.0,
        max_idle_tries: int = 2
    ):
        self.github = github
        self.octane = octane
        self.owner = owner
        self.repo = repo
        self.workflow_run_id = workflow_run_id
        self.pipeline_data = pipeline_data
        self.root_cause_data = root_cause_data
        self.run_number = run_number
        self.interval = interval
        self.max_idle_tries = max_idle_tries

    async def _send(self, ci_event: CiEvent) -> None:
        await self.octane.send_events(
            [ci_event], self.pipeline_data.instance_id, self.pipeline_data.base_url
        )

    async def poll_for_job_updates(self) -> None:
        """Process jobs one at a time until the run has concluded and nothing is left"""
        jobs_finished: Set[int] = set()
        job_queue: Deque[int] = deque()

        async def tick() -> Tick:
            jobs = sorted(
                await self.github.get_workflow_run_jobs(self.owner, self.repo, self.workflow_run_id),
                key=_start_order,
            )
            for job in jobs:
                if job.id not in jobs_finished and job.id not in job_queue:
                    job_queue.append(job.id)

            if not job_queue:
                return Tick.IDLE

            job_id = job_queue.popleft()
            logger.info(f"Polling step updates for job {job_id} [{len(jobs_finished) + 1}/{len(jobs)}]...")
            await self.poll_for_job_step_updates(job_id)
            jobs_finished.add(job_id)
            return Tick.BUSY

        async def run_concluded() -> bool:
            workflow_run = await self.github.get_workflow_run(self.owner, self.repo, self.workflow_run_id)
            if not workflow_run.conclusion:
                logger.debug("The workflow run is not completed. Will continue to wait for jobs...")
                return False
            logger.debug("All the jobs in the workflow run have been completed.")
            return True

        await poll(tick, self.interval, self.max_idle_tries, run_concluded)

    async def poll_for_job_step_updates(self, job_id: int) -> None:
        """Follow one job until it and all of its steps are finished"""
        job_started_sent = False
        steps_started: Set[int] = set()
        steps_finished: Set[int] = set()

        async def tick() -> Tick:
            nonlocal job_started_sent

            job = await self.github.get_job(self.owner, self.repo, self.workflow_run_id, job_id)
            steps = sorted(job.steps, key=lambda step: step.number)
            all_steps_finished = all(step.conclusion for step in steps)

            job_event = map_component_to_event(
                job,
                self.root_cause_data,
                self.pipeline_data.build_ci_id,
                all_steps_finished,
                self.run_number,
            )

            if not job_started_sent:
                await self._send(as_started(job_event))
                job_started_sent = True

            job_cause_data = CauseJobData(
                job_name=f"{self.root_cause_data.job_name}/{job.name}",
                is_root=False,
                parent_job_data=self.root_cause_data,
            )

            for step in steps:
                if step.number in steps_finished:
                    continue

                step_event = map_component_to_event(
                    step,
                    job_cause_data,
                    self.pipeline_data.build_ci_id,
                    True,
                    self.run_number,
                )

                if step_event.event_type == CiEventType.FINISHED:
                    if step.number not in steps_started:
                        await self._send(as_started(step_event))
                        steps_started.add(step.number)
                    await self._send(step_event)
                    steps_finished.add(step.number)
                elif step.number not in steps_started:
                    await self._send(step_event)
                    steps_started.add(step.number)

            if job_event.event_type == CiEventType.FINISHED:
                await self._send(job_event)
                return Tick.DONE

            return Tick.IDLE

        await poll(tick, self.interval)
