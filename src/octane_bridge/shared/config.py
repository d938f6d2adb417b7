"""
Bridge configuration
Read from app settings (OCTANE_URL, ...) or GitHub Action inputs (INPUT_OCTANEURL, ...)
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_PIPELINE_NAME_PATTERN = "${workflow_name}"


def _read(name: str, input_name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value == "":
        value = os.getenv(f"INPUT_{input_name.upper()}")
    if value is None or value == "":
        return None
    return value.strip()


def _read_int(name: str, input_name: str, default: Optional[int] = None) -> Optional[int]:
    value = _read(name, input_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{value}'")


def _read_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{value}'")


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if not value:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Settings for one bridge invocation"""
    octane_url: str
    octane_shared_space: int
    octane_workspace: int
    octane_client_id: str
    octane_client_secret: str
    github_token: str
    server_base_url: str
    pipeline_name_pattern: str = DEFAULT_PIPELINE_NAME_PATTERN
    testing_framework: Optional[str] = None
    unit_test_results_glob_pattern: Optional[str] = None
    gherkin_test_results_glob_pattern: Optional[str] = None
    log_level: int = 3
    github_run_id: Optional[int] = None
    github_api_url: Optional[str] = None
    poll_interval: float = 3.0
    max_idle_tries: int = 2
    drain_interval: float = 3.0
    pipeline_retry_count: int = 20
    pipeline_retry_interval: float = 2.0
    scm_since_previous_build: bool = True

    @classmethod
    def from_env(cls) -> "Config":
        """Load the configuration from the environment"""
        required = {
            "octane_url": _read("OCTANE_URL", "octaneUrl"),
            "octane_shared_space": _read_int("OCTANE_SHARED_SPACE", "octaneSharedSpace"),
            "octane_workspace": _read_int("OCTANE_WORKSPACE", "octaneWorkspace"),
            "octane_client_id": _read("OCTANE_CLIENT_ID", "octaneClientId"),
            "octane_client_secret": _read("OCTANE_CLIENT_SECRET", "octaneClientSecret"),
            "github_token": _read("GITHUB_TOKEN", "githubToken"),
            "server_base_url": _read("SERVER_BASE_URL", "serverBaseUrl"),
        }

        missing = [key for key, value in required.items() if value is None]
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return cls(
            **required,
            pipeline_name_pattern=_read("PIPELINE_NAME_PATTERN", "pipelineNamePattern")
            or DEFAULT_PIPELINE_NAME_PATTERN,
            testing_framework=_read("TESTING_FRAMEWORK", "testingFramework"),
            unit_test_results_glob_pattern=_read(
                "UNIT_TEST_RESULTS_GLOB_PATTERN", "unitTestResultsGlobPattern"
            ),
            gherkin_test_results_glob_pattern=_read(
                "GHERKIN_TEST_RESULTS_GLOB_PATTERN", "gherkinTestResultsGlobPattern"
            ),
            log_level=_read_int("LOG_LEVEL", "logLevel", 3),
            github_run_id=_read_int("GITHUB_RUN_ID", "githubRunId"),
            github_api_url=_read("GITHUB_API_URL", "githubApiUrl"),
            poll_interval=_read_float("BRIDGE_POLL_INTERVAL", 3.0),
            max_idle_tries=int(_read_float("BRIDGE_MAX_IDLE_TRIES", 2)),
            drain_interval=_read_float("BRIDGE_DRAIN_INTERVAL", 3.0),
            pipeline_retry_count=int(_read_float("BRIDGE_PIPELINE_RETRY_COUNT", 20)),
            pipeline_retry_interval=_read_float("BRIDGE_PIPELINE_RETRY_INTERVAL", 2.0),
            scm_since_previous_build=_read_bool("BRIDGE_SCM_SINCE_PREVIOUS_BUILD", True),
        )
