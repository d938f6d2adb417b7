"""
Event dispatch
Sequences CI server / pipeline resolution, migrations, polling and reporting
for one incoming GitHub event
"""

import logging
from typing import List, Optional

from .context import BridgeContext
from .services.cause_builder import build_causes
from .services.ci_events import build_root_cause_data, format_run_number, generate_root_event
from .services.ci_server import resolve_ci_server
from .services.executor import (
    build_executor_ci_id,
    build_executor_name,
    get_or_create_executor,
    send_executor_finish_event,
    send_executor_start_event,
)
from .services.experiments import Experiments, load_experiments
from .services.job_poller import JobPoller
from .services.migration import perform_migrations
from .services.parameters import get_parameters_from_config, get_parameters_from_logs
from .services.pipeline_data import build_pipeline_name, get_pipeline_data, update_pipeline_name_if_needed
from .services.run_drain import wait_for_integration_runs
from .services.scm_data import collect_scm_data, resolve_scm_since, send_pull_request_data
from .services.test_results import send_test_results
from .shared.exceptions import MissingRequiredFieldError
from .shared.github_models import ActionsEvent, ActionsEventType
from .shared.models import CiEvent, CiEventType, CiParameter, MultiBranchType, PipelineEventData
from .shared.polling import retry_until_found
from .shared.utils import extract_workflow_file_name, now_millis

logger = logging.getLogger(__name__)


async def handle_event(event: ActionsEvent, ctx: BridgeContext) -> None:
    """Entry point shared by the Action and the Function App"""
    event_type = event.event_type

    if event_type.is_workflow_event:
        await handle_workflow_event(event, event_type, ctx)
    elif event_type.is_pull_request_event:
        await handle_pull_request_event(event, ctx)
    else:
        logger.info(f"Ignoring event with action '{event.action}'")


async def handle_pull_request_event(event: ActionsEvent, ctx: BridgeContext) -> None:
    logger.info("Received pull request event...")
    if not event.pull_request or not event.repository.html_url:
        raise MissingRequiredFieldError("Pull request data and repository url should be present!")

    logger.info("Sending pull request data to ALM Octane...")
    await send_pull_request_data(
        ctx.github,
        ctx.octane,
        event.repository.owner,
        event.repository.name,
        event.pull_request,
        event.repository.html_url,
    )


def _executors_enabled(ctx: BridgeContext, experiments: Experiments) -> bool:
    return experiments.run_github_automated_tests and bool(ctx.config.testing_framework)


async def handle_workflow_event(event: ActionsEvent, event_type: ActionsEventType, ctx: BridgeContext) -> None:
    start_time = now_millis()
    config = ctx.config
    owner = event.repository.owner
    repo = event.repository.name

    workflow_run = event.require_workflow_run()
    workflow_file_name = extract_workflow_file_name(event.require_workflow_path())

    is_queued = event_type == ActionsEventType.WORKFLOW_QUEUED
    is_started = event_type == ActionsEventType.WORKFLOW_STARTED
    is_finished = event_type == ActionsEventType.WORKFLOW_FINISHED

    experiments = await load_experiments(ctx.octane)

    jobs = await ctx.github.get_workflow_run_jobs(owner, repo, workflow_run.id)

    ci_server = await resolve_ci_server(
        ctx.octane, owner, config.octane_shared_space, config.server_base_url, is_queued
    )

    short_job_ci_id_prefix = f"{owner}/{repo}/{workflow_file_name}"
    if is_queued:
        job_ci_id_prefix = short_job_ci_id_prefix
    else:
        job_ci_id_prefix = f"{short_job_ci_id_prefix}/{event.require_branch()}"

    pipeline_name = build_pipeline_name(
        event, owner, repo, workflow_file_name, not is_finished, config.pipeline_name_pattern
    )

    parameters: Optional[List[CiParameter]] = None
    if is_queued:
        await perform_migrations(
            ctx.octane, event, pipeline_name, short_job_ci_id_prefix, ci_server, config.octane_shared_space
        )
        await update_pipeline_name_if_needed(ctx.octane, f"{job_ci_id_prefix}*", ci_server, pipeline_name)

        if experiments.run_github_pipeline_with_parameters:
            parameters = await get_parameters_from_config(
                ctx.github, owner, repo, workflow_file_name, workflow_run.head_branch
            )

    pipeline_data = await get_pipeline_data(
        ctx.octane,
        pipeline_name,
        ci_server,
        event,
        is_queued,
        config.server_base_url,
        job_ci_id_prefix,
        jobs,
        parameters,
    )

    executor_name = None
    if _executors_enabled(ctx, experiments):
        executor_name = build_executor_name(
            config.pipeline_name_pattern, owner, repo, event.workflow.name, workflow_file_name
        )

    if is_queued:
        if executor_name:
            await get_or_create_executor(
                ctx.octane, executor_name, short_job_ci_id_prefix, config.testing_framework, ci_server
            )
        return

    root_cause_data = build_root_cause_data(event, job_ci_id_prefix)
    run_number = format_run_number(workflow_run.run_number, pipeline_data.build_ci_id)
    branch_name = event.require_branch()
    executor_event_data = dict(
        executor_name=executor_name,
        executor_ci_id=build_executor_ci_id(owner, repo, workflow_file_name, branch_name),
        parent_ci_id=build_executor_ci_id(owner, repo, workflow_file_name),
        build_ci_id=pipeline_data.build_ci_id,
        run_number=run_number,
        branch_name=branch_name,
        start_time=start_time,
        base_url=config.server_base_url,
        causes=build_causes(root_cause_data, pipeline_data.build_ci_id),
        ci_server=ci_server,
    )

    if is_started:
        logger.debug(f"Creating child pipeline: {pipeline_data.root_job_name}/{branch_name}")
        child_started_event = CiEvent(
            build_ci_id=pipeline_data.build_ci_id,
            event_type=CiEventType.STARTED,
            number=run_number,
            project=job_ci_id_prefix,
            project_display_name=f"{pipeline_data.root_job_name}/{branch_name}",
            start_time=start_time,
            multi_branch_type=MultiBranchType.CHILD,
            parent_ci_id=short_job_ci_id_prefix,
            branch=branch_name,
            skip_validation=True,
        )
        await ctx.octane.send_events([child_started_event], pipeline_data.instance_id, pipeline_data.base_url)

        child_pipeline_name = f"{pipeline_data.root_job_name}/{branch_name}"
        pipeline_data = await retry_until_found(
            lambda: get_pipeline_data(
                ctx.octane, child_pipeline_name, ci_server, event, False, config.server_base_url
            ),
            config.pipeline_retry_count,
            config.pipeline_retry_interval,
        )

        if executor_name:
            await send_executor_start_event(ctx.octane, event, parameters=[], **executor_event_data)

        await inject_scm_data(event, ctx, pipeline_data, job_ci_id_prefix)

        logger.info("Polling for job updates...")
        poller = JobPoller(
            ctx.github,
            ctx.octane,
            owner,
            repo,
            workflow_run.id,
            pipeline_data,
            root_cause_data,
            workflow_run.run_number,
            config.poll_interval,
            config.max_idle_tries,
        )
        await poller.poll_for_job_updates()

    elif is_finished:
        if config.github_run_id is not None:
            logger.info("Waiting for queued events to finish up...")
            current_run = await ctx.github.get_workflow_run(owner, repo, config.github_run_id)
            await wait_for_integration_runs(
                ctx.github,
                owner,
                repo,
                current_run,
                workflow_run.id,
                start_time,
                ActionsEventType.WORKFLOW_STARTED,
                config.drain_interval,
            )
        else:
            logger.debug("Run id of the integration is unknown, not waiting for other integration runs.")

        execution_parameters: Optional[List[CiParameter]] = None
        if experiments.run_github_pipeline_with_parameters:
            logger.info("Parsing and sending the parameters to ALM Octane...")
            execution_parameters = await get_parameters_from_logs(ctx.github, owner, repo, workflow_run.id) or None

        completed_event = generate_root_event(
            event, pipeline_data, CiEventType.FINISHED, job_ci_id_prefix, parameters=execution_parameters
        )
        await ctx.octane.send_events([completed_event], pipeline_data.instance_id, pipeline_data.base_url)

        if executor_name:
            await send_executor_finish_event(
                ctx.octane, event, parameters=execution_parameters or [], **executor_event_data
            )

        await send_test_results(
            ctx.github,
            ctx.octane,
            owner,
            repo,
            workflow_run.id,
            pipeline_data.build_ci_id,
            job_ci_id_prefix,
            pipeline_data.instance_id,
            config.unit_test_results_glob_pattern,
            config.gherkin_test_results_glob_pattern,
        )


async def inject_scm_data(
    event: ActionsEvent,
    ctx: BridgeContext,
    pipeline_data: PipelineEventData,
    job_ci_id_prefix: str
) -> None:
    """Send the commits made since the previous build as an SCM event"""
    builds = await ctx.octane.get_job_builds(job_ci_id_prefix)
    since = resolve_scm_since(builds, ctx.config.scm_since_previous_build)
    if since is None:
        return

    scm_data = await collect_scm_data(
        ctx.github, event, event.repository.owner, event.repository.name, since
    )
    if not scm_data:
        return

    logger.info(f"Injecting commits since {since.isoformat()}...")
    scm_event = generate_root_event(event, pipeline_data, CiEventType.SCM, job_ci_id_prefix, scm_data)
    await ctx.octane.send_events([scm_event], pipeline_data.instance_id, pipeline_data.base_url)
