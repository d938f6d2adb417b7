"""
ALM Octane GitHub Actions Bridge
Azure Function that receives GitHub workflow_run and pull_request webhooks

The HTTP trigger only validates and enqueues the delivery; the queue trigger
does the Octane work, which lasts as long as the workflow run it follows.
"""

import azure.functions as func
import logging
import json

from octane_bridge.context import BridgeContext
from octane_bridge.event_handler import handle_event
from octane_bridge.shared.config import Config
from octane_bridge.shared.exceptions import MissingRequiredFieldError, describe_error
from octane_bridge.shared.github_models import ActionsEvent
from octane_bridge.shared.logging_setup import configure_logging

app = func.FunctionApp()

EVENTS_QUEUE = "octane-bridge-events"
QUEUE_CONNECTION = "AzureWebJobsStorage"
SUPPORTED_GITHUB_EVENTS = ("workflow_run", "pull_request")

################################################################################
# Webhook Handler - Entry Point
################################################################################

@app.function_name(name="HandleEvent")
@app.route(route="HandleEvent", auth_level=func.AuthLevel.FUNCTION, methods=["POST"])
@app.queue_output(arg_name="msg", queue_name=EVENTS_QUEUE, connection=QUEUE_CONNECTION)
async def handle_github_event(req: func.HttpRequest, msg: func.Out[str]) -> func.HttpResponse:
    """
    Receives a GitHub webhook and queues it for ProcessEvent.
    Deliveries other than workflow_run and pull_request are acknowledged and dropped.
    """
    github_event = req.headers.get("X-GitHub-Event")
    logging.info(f"GitHub webhook received: {github_event or 'unknown'}")

    if github_event not in SUPPORTED_GITHUB_EVENTS:
        logging.info(f"Ignoring GitHub event '{github_event}'")
        return _json_response({"status": "ignored", "event": github_event}, 202)

    try:
        payload = req.get_json()
    except ValueError as e:
        logging.error(f"Invalid JSON in request: {str(e)}")
        return _json_response({"error": "Invalid JSON payload"}, 400)

    if not isinstance(payload, dict):
        return _json_response({"error": "Invalid JSON payload"}, 400)

    try:
        event = ActionsEvent.from_payload(payload)
    except MissingRequiredFieldError as e:
        logging.error(f"Invalid event: {str(e)}")
        return _json_response({"error": str(e)}, 400)

    msg.set(json.dumps(payload))
    logging.info(f"Queued '{github_event}' event with action '{event.action}'")

    return _json_response({"status": "queued", "action": event.action}, 202)


################################################################################
# Queue Handler - Octane Reporting
################################################################################

@app.function_name(name="ProcessEvent")
@app.queue_trigger(arg_name="msg", queue_name=EVENTS_QUEUE, connection=QUEUE_CONNECTION)
async def process_github_event(msg: func.QueueMessage) -> None:
    """
    Relays one queued GitHub event to ALM Octane.
    Failures are raised so the queue retries the message and finally moves it to the poison queue.
    """
    event = ActionsEvent.from_payload(json.loads(msg.get_body()))
    logging.info(f"Processing queued event with action '{event.action}'")

    try:
        config = Config.from_env()
        configure_logging(config.log_level)

        await handle_event(event, BridgeContext.from_config(config))

    except Exception as e:
        logging.error(f"Error handling event: {describe_error(e)}", exc_info=True)
        raise


def _json_response(body: dict, status_code: int) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body),
        mimetype="application/json",
        status_code=status_code
    )
