"""Tests for CI server identity."""

import asyncio

import pytest

from octane_bridge.services.ci_server import (
    get_ci_server_instance_id,
    resolve_ci_server,
)
from octane_bridge.shared.exceptions import NotFoundError

from fakes import FakeOctaneClient


class TestInstanceId:
    def test_per_owner(self):
        assert get_ci_server_instance_id("owner", False, 1001) == "GHA-owner"

    def test_per_shared_space(self):
        assert get_ci_server_instance_id("owner", True, 1001) == "GHA/1001"


class TestResolveCiServer:
    def test_creates_per_owner_server_on_queued(self):
        octane = FakeOctaneClient(version="25.1.4")

        ci_server = asyncio.run(resolve_ci_server(octane, "owner", 1001, "https://github.com", True))

        assert ci_server["instance_id"] == "GHA-owner"
        assert ci_server["name"] == "GHA-owner"
        assert octane.plugin_version_updates == ["GHA-owner"]

    def test_old_octane_uses_shared_space_server(self):
        octane = FakeOctaneClient(version="24.4.1", shared_space_name="space")

        ci_server = asyncio.run(resolve_ci_server(octane, "owner", 1001, "https://github.com", True))

        assert ci_server["instance_id"] == "GHA/1001"
        assert ci_server["name"] == "GHA/space"
        assert octane.plugin_version_updates == []

    def test_lookup_only_when_not_queued(self):
        octane = FakeOctaneClient()

        with pytest.raises(NotFoundError):
            asyncio.run(resolve_ci_server(octane, "owner", 1001, "https://github.com", False))

    def test_existing_server_is_reused(self):
        octane = FakeOctaneClient()
        existing = octane.add_ci_server("GHA-owner")

        assert asyncio.run(resolve_ci_server(octane, "owner", 1001, "https://github.com", False)) is existing
        assert octane.mutations == 0
