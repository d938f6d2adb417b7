"""
Test runner executors
An executor is the Octane entity that lets the server trigger automated test runs
through a workflow
"""

import logging
from typing import Any, Dict, List, Optional

from ..shared.exceptions import NotFoundError
from ..shared.github_models import ActionsEvent
from ..shared.models import (
    CiEventCause,
    CiEventType,
    CiParameter,
    MultiBranchType,
    PhaseType,
)
from ..shared.octane_client import OctaneClient
from .ci_events import generate_root_executor_event
from .pipeline_data import apply_name_pattern

logger = logging.getLogger(__name__)

TEST_RUNNER_SUBTYPE = "test_runner"

DEFAULT_FRAMEWORK_ID = "list_node.je.framework.junit"

FRAMEWORK_IDS = {
    "bddScenario": "list_node.je.framework.cucumber",
    "cucumber": "list_node.je.framework.cucumber",
    "gradle": "list_node.je.framework.junit",
    "junit": "list_node.je.framework.junit",
    "jbehave": "list_node.je.framework.jbehave",
    "protractor": "list_node.testing_tool_type.protractor",
    "testNG": "list_node.je.framework.testng",
    "uft": "list_node.je.framework.uft",
}


def get_framework_id(framework: str) -> str:
    framework_id = FRAMEWORK_IDS.get(framework, DEFAULT_FRAMEWORK_ID)
    logger.debug(f"Framework with name '{framework}' has ID '{framework_id}'.")
    return framework_id


def build_executor_name(
    pattern: str,
    repository_owner: str,
    repository_name: str,
    workflow_name: str,
    workflow_file_name: str
) -> str:
    return apply_name_pattern(pattern, repository_owner, repository_name, workflow_name, workflow_file_name)


def build_executor_ci_id(
    repository_owner: str,
    repository_name: str,
    workflow_file_name: str,
    branch_name: Optional[str] = None
) -> str:
    executor_ci_id = f"{repository_owner}/{repository_name}/{workflow_file_name}/executor"
    return f"{executor_ci_id}/{branch_name}" if branch_name else executor_ci_id


async def get_or_create_executor(
    octane: OctaneClient,
    name: str,
    ci_job_ci_id: str,
    framework: str,
    ci_server: Dict[str, Any]
) -> Dict[str, Any]:
    """Return the test runner linked to the CI job, creating one when there is none"""
    framework_id = get_framework_id(framework)

    ci_jobs = await octane.get_executors(ci_job_ci_id, ci_server)
    logger.debug(f"Found executors: {ci_jobs}")
    if ci_jobs and ci_jobs[0].get("executor"):
        return ci_jobs[0]["executor"]

    if not ci_jobs:
        raise NotFoundError(f"Could not find CI job with {{id='{ci_job_ci_id}'}}")

    logger.info(f"Creating test runner '{name}'...")
    return await octane.create_executor({
        "name": name,
        "subtype": TEST_RUNNER_SUBTYPE,
        "framework": {"type": "list_node", "id": framework_id},
        "ci_server": {"type": "ci_server", "id": ci_server["id"]},
        "ci_job": {"type": "ci_job", "id": ci_jobs[0]["id"]},
    })


async def _send_executor_event(
    octane: OctaneClient,
    event: ActionsEvent,
    event_type: CiEventType,
    executor_name: str,
    executor_ci_id: str,
    parent_ci_id: str,
    build_ci_id: str,
    run_number: str,
    branch_name: str,
    start_time: int,
    base_url: str,
    parameters: List[CiParameter],
    causes: List[CiEventCause],
    ci_server: Dict[str, Any]
) -> None:
    executor_event = generate_root_executor_event(
        event,
        executor_name,
        executor_ci_id,
        build_ci_id,
        run_number,
        branch_name,
        start_time,
        event_type,
        parameters,
        causes,
        MultiBranchType.CHILD,
        parent_ci_id,
        PhaseType.INTERNAL if event_type == CiEventType.STARTED else None,
    )
    await octane.send_events([executor_event], ci_server["instance_id"], base_url)


async def send_executor_start_event(octane: OctaneClient, event: ActionsEvent, **kwargs) -> None:
    await _send_executor_event(octane, event, CiEventType.STARTED, **kwargs)


async def send_executor_finish_event(octane: OctaneClient, event: ActionsEvent, **kwargs) -> None:
    await _send_executor_event(octane, event, CiEventType.FINISHED, **kwargs)
