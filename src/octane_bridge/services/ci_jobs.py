"""
Bulk updates of Octane CI jobs during migrations
"""

from typing import Any, Dict, List

from ..shared.octane_client import OctaneClient


def _needs_new_prefix(ci_job: Dict[str, Any], ci_id_prefix: str) -> bool:
    if not ci_job.get("ci_id") or not ci_job.get("name"):
        return False
    return not ci_job["ci_id"].startswith(ci_id_prefix)


async def update_jobs_ci_id_if_needed(
    octane: OctaneClient,
    jobs: List[Dict[str, Any]],
    ci_id_prefix: str,
    ci_server: Dict[str, Any],
    old_pipeline_name: str,
    new_pipeline_name: str
) -> int:
    """
    Move jobs under the hierarchical ci id prefix

    The root job (named after the old pipeline) becomes the prefix itself and
    is renamed; every other job becomes <prefix>/<job name>. Jobs already
    under the prefix are left alone. Returns the number of jobs updated.
    """
    jobs_to_update = []
    for ci_job in jobs:
        if not _needs_new_prefix(ci_job, ci_id_prefix):
            continue
        if ci_job["name"] == old_pipeline_name:
            jobs_to_update.append({
                "jobId": ci_job["id"],
                "name": new_pipeline_name,
                "jobCiId": ci_id_prefix,
            })
        else:
            jobs_to_update.append({
                "jobId": ci_job["id"],
                "name": ci_job["name"],
                "jobCiId": f"{ci_id_prefix}/{ci_job['name']}",
            })

    if jobs_to_update:
        await octane.update_ci_jobs(jobs_to_update, ci_server["id"], ci_server["id"])
    return len(jobs_to_update)


async def update_jobs_ci_server_if_needed(
    octane: OctaneClient,
    jobs: List[Dict[str, Any]],
    old_ci_server_id: str,
    new_ci_server_id: str
) -> int:
    """Relink jobs from one CI server to another; no-op when both ids are equal"""
    if not new_ci_server_id or old_ci_server_id == new_ci_server_id:
        return 0

    jobs_to_update = [
        {"jobId": ci_job["id"], "name": ci_job.get("name"), "jobCiId": ci_job.get("ci_id")}
        for ci_job in jobs
    ]

    if jobs_to_update:
        await octane.update_ci_jobs(jobs_to_update, old_ci_server_id, new_ci_server_id)
    return len(jobs_to_update)
