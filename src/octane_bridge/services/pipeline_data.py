"""
Pipeline naming and resolution
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..shared.exceptions import MissingRequiredFieldError
from ..shared.github_models import ActionsEvent, ActionsJob
from ..shared.models import CiParameter, MultiBranchType, PipelineEventData
from ..shared.octane_client import OctaneClient
from .ci_jobs import update_jobs_ci_id_if_needed

logger = logging.getLogger(__name__)


def apply_name_pattern(
    pattern: str,
    repository_owner: str,
    repository_name: str,
    workflow_name: str,
    workflow_file_name: str
) -> str:
    return (
        pattern.replace("${repository_owner}", repository_owner)
        .replace("${repository_name}", repository_name)
        .replace("${workflow_name}", workflow_name)
        .replace("${workflow_file_name}", workflow_file_name)
    )


def build_pipeline_name(
    event: ActionsEvent,
    owner: str,
    repo_name: str,
    workflow_file_name: str,
    is_parent: bool,
    pattern: str
) -> str:
    """Parent pipelines carry the pattern name, child pipelines append the branch"""
    workflow_name = event.workflow.name if event.workflow else None
    branch_name = event.workflow_run.head_branch if event.workflow_run else None
    if not workflow_name or not branch_name:
        raise MissingRequiredFieldError("Event should contain workflow data!")

    pipeline_name = apply_name_pattern(pattern, owner, repo_name, workflow_name, workflow_file_name)
    return pipeline_name if is_parent else f"{pipeline_name}/{branch_name}"


async def get_pipeline_data(
    octane: OctaneClient,
    root_job_name: str,
    ci_server: Dict[str, Any],
    event: ActionsEvent,
    create_on_absence: bool,
    base_url: str,
    job_ci_id_prefix: Optional[str] = None,
    jobs: Optional[List[ActionsJob]] = None,
    parameters: Optional[List[CiParameter]] = None
) -> PipelineEventData:
    """Resolve the Octane identity of the current workflow run"""
    pipeline = await octane.get_pipeline_or_create(
        root_job_name,
        ci_server,
        create_on_absence,
        job_ci_id_prefix,
        jobs,
        parameters,
    )

    if not event.workflow_run:
        raise MissingRequiredFieldError("Event should contain workflow run data!")

    instance_id = ci_server.get("instance_id")
    if not instance_id:
        raise MissingRequiredFieldError("Could not find the instance ID of the CI Server!")

    return PipelineEventData(
        pipeline_id=str(pipeline["id"]),
        instance_id=instance_id,
        build_ci_id=str(event.workflow_run.id),
        base_url=base_url,
        root_job_name=root_job_name,
    )


async def update_pipeline_name_if_needed(
    octane: OctaneClient,
    root_job_ci_id: str,
    ci_server: Dict[str, Any],
    pipeline_name: str
) -> None:
    """Rename pipelines of this workflow whose name no longer matches the naming pattern"""
    pipelines = await octane.get_pipeline_by_root_job_ci_id(root_job_ci_id, ci_server)
    if not pipelines:
        return

    async def rename(pipeline: Dict[str, Any]) -> None:
        name_tokens = pipeline["name"].split("/")
        if pipeline["name"] == pipeline_name or name_tokens[0] == pipeline_name:
            return
        full_name = f"{pipeline_name}/{name_tokens[1]}" if len(name_tokens) == 2 else pipeline_name
        logger.info(f"Renaming '{pipeline['name']}' to '{full_name}'")
        await octane.update_pipeline({"id": pipeline["id"], "name": full_name})

    await asyncio.gather(*(rename(pipeline) for pipeline in pipelines))


async def upgrade_pipeline_to_multi_branch_if_needed(
    octane: OctaneClient,
    old_pipeline_name: str,
    new_pipeline_name: str,
    ci_id_prefix: str
) -> bool:
    """
    Turn a legacy single-branch pipeline into a multi-branch parent

    Returns False without touching anything when the legacy pipeline does not
    exist or already has a multi-branch type.
    """
    pipeline = await octane.get_pipeline_by_name(old_pipeline_name)
    if not pipeline or pipeline.get("multi_branch_type"):
        return False

    logger.info(f"Migrating '{old_pipeline_name}' to multi-branch pipeline...")

    pipeline_jobs = await octane.get_all_jobs_by_pipeline(pipeline["id"])
    await update_jobs_ci_id_if_needed(
        octane,
        pipeline_jobs,
        ci_id_prefix,
        pipeline["ci_server"],
        old_pipeline_name,
        new_pipeline_name,
    )

    await octane.update_pipeline({
        "id": pipeline["id"],
        "name": new_pipeline_name,
        "multi_branch_type": MultiBranchType.PARENT.value,
    })
    return True
