"""Tests for the error taxonomy."""

from octane_bridge.shared.exceptions import (
    BridgeError,
    MissingRequiredFieldError,
    NotFoundError,
    RemoteCallError,
    describe_error,
)


def test_hierarchy():
    assert issubclass(NotFoundError, BridgeError)
    assert issubclass(MissingRequiredFieldError, ValueError)
    assert issubclass(RemoteCallError, BridgeError)


def test_describe_remote_error():
    error = RemoteCallError(401, "Unauthorized", "https://octane/api/ci_servers", "POST", "Session expired")

    assert describe_error(error) == (
        "401 - Unauthorized\nurl: https://octane/api/ci_servers - POST\nSession expired"
    )


def test_describe_plain_error():
    assert describe_error(NotFoundError("Pipeline 'CI' not found.")) == "Pipeline 'CI' not found."
