"""
Server-side feature toggles
"""

import logging
from dataclasses import dataclass

from ..shared.octane_client import OctaneClient
from ..shared.utils import is_version_greater_or_equal

logger = logging.getLogger(__name__)

MINIMUM_OCTANE_VERSION_FOR_EXPERIMENTS = "25.1.12"

RUN_GITHUB_PIPELINE_WITH_PARAMETERS = "run_github_pipeline_with_parameters"
RUN_GITHUB_AUTOMATED_TESTS = "run_github_automated_tests"


@dataclass(frozen=True)
class Experiments:
    """Toggles for one invocation; everything is off unless the server says otherwise"""
    run_github_pipeline_with_parameters: bool = False
    run_github_automated_tests: bool = False


async def load_experiments(octane: OctaneClient) -> Experiments:
    current_version = await octane.get_octane_version()
    if not is_version_greater_or_equal(current_version, MINIMUM_OCTANE_VERSION_FOR_EXPERIMENTS):
        logger.info(
            f"The current version of Octane is older than {MINIMUM_OCTANE_VERSION_FOR_EXPERIMENTS}. "
            "Turning off all experiments..."
        )
        return Experiments()

    toggles = await octane.get_feature_toggles()
    experiments = Experiments(
        run_github_pipeline_with_parameters=bool(toggles.get(RUN_GITHUB_PIPELINE_WITH_PARAMETERS)),
        run_github_automated_tests=bool(toggles.get(RUN_GITHUB_AUTOMATED_TESTS)),
    )
    for name, enabled in (
        (RUN_GITHUB_PIPELINE_WITH_PARAMETERS, experiments.run_github_pipeline_with_parameters),
        (RUN_GITHUB_AUTOMATED_TESTS, experiments.run_github_automated_tests),
    ):
        logger.info(f"Feature '{name}' is {'on' if enabled else 'off'}.")
    return experiments
