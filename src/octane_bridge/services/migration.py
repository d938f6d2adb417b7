"""
One-time structural upgrades, attempted on every queued event

Both upgrades check their preconditions first, so running them again is a no-op.
"""

import logging
from typing import Any, Dict

from ..shared.github_models import ActionsEvent
from ..shared.octane_client import OctaneClient
from .ci_jobs import update_jobs_ci_server_if_needed
from .ci_server import legacy_ci_server_instance_id
from .pipeline_data import upgrade_pipeline_to_multi_branch_if_needed

logger = logging.getLogger(__name__)


async def perform_migrations(
    octane: OctaneClient,
    event: ActionsEvent,
    pipeline_name: str,
    ci_id_prefix: str,
    ci_server: Dict[str, Any],
    shared_space: int
) -> None:
    workflow_name = event.workflow.name if event.workflow else None
    if not workflow_name:
        return

    await perform_multi_branch_pipeline_migration(
        octane, pipeline_name, workflow_name, ci_id_prefix, shared_space
    )
    await perform_ci_server_migration(octane, ci_server, pipeline_name, shared_space)


async def perform_multi_branch_pipeline_migration(
    octane: OctaneClient,
    pipeline_name: str,
    workflow_name: str,
    ci_id_prefix: str,
    shared_space: int
) -> bool:
    shared_space_name = await octane.get_shared_space_name(shared_space)
    old_pipeline_name = f"GHA/{shared_space_name}/{workflow_name}"

    return await upgrade_pipeline_to_multi_branch_if_needed(
        octane, old_pipeline_name, pipeline_name, ci_id_prefix
    )


def should_migrate_ci_server(
    new_ci_server: Dict[str, Any],
    old_ci_server: Dict[str, Any],
    pipeline: Dict[str, Any]
) -> bool:
    pipeline_ci_server = pipeline.get("ci_server") or {}
    return (
        new_ci_server.get("instance_id") != old_ci_server.get("instance_id")
        and old_ci_server.get("id") == pipeline_ci_server.get("id")
    )


async def perform_ci_server_migration(
    octane: OctaneClient,
    new_ci_server: Dict[str, Any],
    pipeline_name: str,
    shared_space: int
) -> bool:
    """Repoint a pipeline and its jobs from the legacy shared-space CI server to new_ci_server"""
    old_ci_server = await octane.get_ci_server(legacy_ci_server_instance_id(shared_space))
    if not old_ci_server:
        return False

    pipeline = await octane.get_pipeline_by_name(pipeline_name)
    if not pipeline:
        return False

    if not should_migrate_ci_server(new_ci_server, old_ci_server, pipeline):
        return False

    logger.info(
        f"Migrating CI Server '{old_ci_server.get('instance_id')}' to '{new_ci_server.get('instance_id')}'..."
    )

    await octane.update_pipeline_internal({
        "id": pipeline["id"],
        "ciServer": {"type": "ci_server", "id": new_ci_server["id"]},
    })

    jobs = await octane.get_all_jobs_by_pipeline(pipeline["id"])
    await update_jobs_ci_server_if_needed(octane, jobs, old_ci_server["id"], new_ci_server["id"])
    return True
