"""
CI server identity

Octane versions older than 25.1.4 know a single CI server per shared space
(GHA/<shared space id>); newer ones get one per repository owner (GHA-<owner>).
"""

import logging
from typing import Any, Dict

from ..shared.octane_client import OctaneClient
from ..shared.utils import is_version_greater_or_equal

logger = logging.getLogger(__name__)

PER_OWNER_CI_SERVER_MIN_VERSION = "25.1.4"


def legacy_ci_server_instance_id(shared_space: int) -> str:
    return f"GHA/{shared_space}"


async def is_old_ci_server(octane: OctaneClient) -> bool:
    current_version = await octane.get_octane_version()
    use_old_ci_server = not is_version_greater_or_equal(current_version, PER_OWNER_CI_SERVER_MIN_VERSION)
    if use_old_ci_server:
        logger.warning(
            f"The Octane version is '{current_version}', older than: "
            f"'{PER_OWNER_CI_SERVER_MIN_VERSION}'. Using old CI server convention."
        )
    return use_old_ci_server


def get_ci_server_instance_id(repository_owner: str, use_old_ci_server: bool, shared_space: int) -> str:
    if use_old_ci_server:
        return legacy_ci_server_instance_id(shared_space)
    return f"GHA-{repository_owner}"


async def get_ci_server_name(
    octane: OctaneClient,
    repository_owner: str,
    use_old_ci_server: bool,
    shared_space: int
) -> str:
    if use_old_ci_server:
        shared_space_name = await octane.get_shared_space_name(shared_space)
        return f"GHA/{shared_space_name}"
    return f"GHA-{repository_owner}"


async def resolve_ci_server(
    octane: OctaneClient,
    repository_owner: str,
    shared_space: int,
    base_url: str,
    create_on_absence: bool
) -> Dict[str, Any]:
    """Get (or on queued events create) the CI server this owner reports to"""
    use_old_ci_server = await is_old_ci_server(octane)
    instance_id = get_ci_server_instance_id(repository_owner, use_old_ci_server, shared_space)
    name = await get_ci_server_name(octane, repository_owner, use_old_ci_server, shared_space)

    ci_server = await octane.get_ci_server_or_create(instance_id, name, base_url, create_on_absence)

    if create_on_absence and not use_old_ci_server:
        await octane.update_plugin_version_if_needed(instance_id, ci_server)

    return ci_server
