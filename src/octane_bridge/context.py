"""
Per-invocation context handed to every service
"""

from dataclasses import dataclass

from .shared.config import Config
from .shared.github_client import GitHubClient
from .shared.octane_client import OctaneClient


@dataclass
class BridgeContext:
    config: Config
    github: GitHubClient
    octane: OctaneClient

    @classmethod
    def from_config(cls, config: Config) -> "BridgeContext":
        return cls(
            config=config,
            github=GitHubClient(config.github_token, base_url=config.github_api_url),
            octane=OctaneClient(config),
        )
