"""
Pipeline parameters
Declared workflow_dispatch inputs (from the workflow file) and the values a run
actually used (from its logs)
"""

import asyncio
import base64
import glob
import io
import json
import logging
import os
import re
import tempfile
import zipfile
from typing import Any, Dict, List, Optional

import yaml

from ..shared.github_client import GitHubClient
from ..shared.models import CiParameter

logger = logging.getLogger(__name__)

LOG_FILES_PATTERN = "*.txt"

EXECUTION_PARAMETER_LINE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{7}Z execution_parameter:: (?P<parameters>.*)$"
)


async def get_parameters_from_config(
    github: GitHubClient,
    owner: str,
    repo: str,
    workflow_file_name: str,
    branch_name: Optional[str] = None
) -> List[CiParameter]:
    content = await get_workflow_file_content(github, owner, repo, workflow_file_name, branch_name)
    if not content:
        return []
    return parse_yaml_to_ci_parameters(content)


async def get_workflow_file_content(
    github: GitHubClient,
    owner: str,
    repo: str,
    workflow_file_name: str,
    branch_name: Optional[str] = None
) -> Optional[str]:
    workflow_file = await github.get_workflow_file(owner, repo, workflow_file_name, branch_name)
    if workflow_file.encoding != "base64":
        logger.error(
            f"The content of the workflow's configuration file has an unknown encoding: {workflow_file.encoding}"
        )
        return None

    logger.debug("Decoding the content of the workflow's configuration file...")
    return base64.b64decode(workflow_file.content.replace("\n", "")).decode("utf-8")


def _trigger_section(workflow: Dict[Any, Any]) -> Any:
    # YAML 1.1 reads a bare `on` key as the boolean True
    if "on" in workflow:
        return workflow["on"]
    return workflow.get(True)


def parse_yaml_to_ci_parameters(yaml_content: str) -> List[CiParameter]:
    """workflow_dispatch inputs of a workflow file as pipeline parameters"""
    workflow = yaml.safe_load(yaml_content)
    if not isinstance(workflow, dict):
        return []

    triggers = _trigger_section(workflow)
    if not isinstance(triggers, dict):
        return []

    workflow_dispatch = triggers.get("workflow_dispatch")
    if not isinstance(workflow_dispatch, dict):
        return []

    inputs = workflow_dispatch.get("inputs")
    if not isinstance(inputs, dict):
        return []

    parameters = []
    for name, details in inputs.items():
        details = details or {}
        default = details.get("default")
        parameter = CiParameter(
            name=str(name),
            description=details.get("description"),
            default_value=None if default is None else _as_string(default),
            choices=details.get("options"),
        )
        logger.debug(f"Found parameter in configuration file with {parameter.to_dict()}.")
        parameters.append(parameter)
    return parameters


async def get_parameters_from_logs(
    github: GitHubClient,
    owner: str,
    repo: str,
    workflow_run_id: int
) -> List[CiParameter]:
    """Values of the execution parameters printed by the run, or [] when none were printed"""
    logs_url = await github.get_download_logs_url(owner, repo, workflow_run_id)
    if not logs_url:
        return []

    archive = await asyncio.to_thread(github.download, logs_url)

    with tempfile.TemporaryDirectory() as logs_dir:
        with zipfile.ZipFile(io.BytesIO(archive)) as zip_file:
            zip_file.extractall(logs_dir)

        log_files = sorted(glob.glob(os.path.join(logs_dir, LOG_FILES_PATTERN)))
        logger.info(f"Found {len(log_files)} log files according to pattern '{LOG_FILES_PATTERN}'.")

        serialized_parameters = find_execution_parameters(log_files)

    if not serialized_parameters:
        return []
    return deserialize_parameters(serialized_parameters)


def find_execution_parameters(log_files: List[str]) -> Optional[str]:
    """First execution_parameter payload found across the log files"""
    for log_file in log_files:
        with open(log_file, encoding="utf-8", errors="replace") as f:
            for line in f:
                match = EXECUTION_PARAMETER_LINE.match(line.rstrip("\r\n"))
                if match:
                    logger.debug(f"Found execution parameters: {match.group('parameters')}")
                    return match.group("parameters")
    return None


def deserialize_parameters(serialized_parameters: str) -> List[CiParameter]:
    parameters = []
    for name, value in json.loads(serialized_parameters).items():
        string_value = _as_string(value)
        logger.debug(f"Found parameter in log files with {{name='{name}', value='{string_value}'}}.")
        parameters.append(CiParameter(
            name=name,
            value=string_value,
            default_value="",
            choices=[],
            description="",
        ))
    return parameters


def _as_string(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)
