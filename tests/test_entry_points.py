"""Tests for the Action entry point and the Function App route."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import azure.functions as func
import pytest

import function_app
from octane_bridge import __main__ as action
from octane_bridge.shared.exceptions import RemoteCallError

from conftest import make_config, workflow_payload


class TestActionMain:
    def test_missing_event_path(self, monkeypatch, capsys):
        monkeypatch.delenv("GITHUB_EVENT_PATH", raising=False)

        with patch.object(action.Config, "from_env", return_value=make_config()), \
                patch.object(action, "configure_logging"):
            assert action.main() == 1

        assert capsys.readouterr().out.strip() == "::error::GITHUB_EVENT_PATH must be set"

    def test_handles_event_file(self, monkeypatch, tmp_path):
        event_file = tmp_path / "event.json"
        event_file.write_text(json.dumps(workflow_payload("requested")))
        monkeypatch.setenv("GITHUB_EVENT_PATH", str(event_file))

        with patch.object(action.Config, "from_env", return_value=make_config()), \
                patch.object(action, "configure_logging"), \
                patch.object(action.BridgeContext, "from_config", return_value=MagicMock()), \
                patch.object(action, "handle_event", new=AsyncMock()) as handle_event:
            assert action.main() == 0

        event = handle_event.await_args.args[0]
        assert event.action == "requested"
        assert event.workflow_run.id == 42

    def test_remote_errors_are_described(self, monkeypatch, tmp_path, capsys):
        event_file = tmp_path / "event.json"
        event_file.write_text(json.dumps(workflow_payload("requested")))
        monkeypatch.setenv("GITHUB_EVENT_PATH", str(event_file))
        error = RemoteCallError(403, "Forbidden", "https://octane/api", "GET", "no access")

        with patch.object(action.Config, "from_env", return_value=make_config()), \
                patch.object(action, "configure_logging"), \
                patch.object(action.BridgeContext, "from_config", return_value=MagicMock()), \
                patch.object(action, "handle_event", new=AsyncMock(side_effect=error)):
            assert action.main() == 1

        out = capsys.readouterr().out
        assert out.startswith("::error::403 - Forbidden")
        assert "url: https://octane/api - GET" in out



class QueuedMessages:
    """Stands in for the func.Out[str] queue binding"""

    def __init__(self):
        self.value = None

    def set(self, value: str) -> None:
        self.value = value

    def get(self) -> str:
        return self.value


def request(body: bytes, github_event: str = "workflow_run") -> func.HttpRequest:
    return func.HttpRequest(
        method="POST",
        url="/api/HandleEvent",
        headers={"X-GitHub-Event": github_event},
        params={},
        body=body,
    )


def user_function(handler):
    # the app decorators wrap the coroutine in a function builder
    if hasattr(handler, "build"):
        return handler.build().get_user_function()
    return handler


def call(req: func.HttpRequest, msg: QueuedMessages) -> func.HttpResponse:
    return asyncio.run(user_function(function_app.handle_github_event)(req, msg))


def process(body: str) -> None:
    asyncio.run(user_function(function_app.process_github_event)(func.QueueMessage(body=body.encode())))


@pytest.fixture
def bridge():
    with patch.object(function_app.Config, "from_env", return_value=make_config()), \
            patch.object(function_app, "configure_logging"), \
            patch.object(function_app.BridgeContext, "from_config", return_value=MagicMock()), \
            patch.object(function_app, "handle_event", new=AsyncMock()) as handle_event:
        yield handle_event


class TestHandleEvent:
    def test_invalid_json(self, bridge):
        msg = QueuedMessages()

        response = call(request(b"{not json"), msg)

        assert response.status_code == 400
        assert msg.get() is None

    def test_missing_repository(self, bridge):
        msg = QueuedMessages()

        response = call(request(json.dumps({"action": "requested"}).encode()), msg)

        assert response.status_code == 400
        assert json.loads(response.get_body()) == {"error": "Event should contain repository data!"}
        assert msg.get() is None

    def test_queues_event_without_handling_it(self, bridge):
        payload = workflow_payload("in_progress")
        msg = QueuedMessages()

        response = call(request(json.dumps(payload).encode()), msg)

        assert response.status_code == 202
        assert json.loads(response.get_body()) == {"status": "queued", "action": "in_progress"}
        assert json.loads(msg.get()) == payload
        bridge.assert_not_awaited()

    @pytest.mark.parametrize("github_event", ["issues", "workflow_job", "check_suite", "pull_request_review_comment"])
    def test_ignores_other_github_events(self, bridge, github_event):
        msg = QueuedMessages()

        response = call(request(json.dumps(workflow_payload("completed")).encode(), github_event), msg)

        assert response.status_code == 202
        assert json.loads(response.get_body()) == {"status": "ignored", "event": github_event}
        assert msg.get() is None

    def test_pull_request_events_are_queued(self, bridge):
        msg = QueuedMessages()

        response = call(request(json.dumps(workflow_payload("opened")).encode(), "pull_request"), msg)

        assert response.status_code == 202
        assert msg.get() is not None


class TestProcessEvent:
    def test_handles_queued_event(self, bridge):
        process(json.dumps(workflow_payload("completed")))

        event = bridge.await_args.args[0]
        assert event.action == "completed"
        assert event.workflow_run.id == 42

    def test_failure_is_raised_for_retry(self, bridge):
        bridge.side_effect = RuntimeError("octane is down")

        with pytest.raises(RuntimeError, match="octane is down"):
            process(json.dumps(workflow_payload("completed")))
