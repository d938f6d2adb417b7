"""
ALM Octane API Client
Handles all interactions with the Octane REST API: entity CRUD and the CI analytics endpoints
"""

import asyncio
import logging
import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .config import Config
from .exceptions import NotFoundError, RemoteCallError
from .github_models import ActionsJob
from .models import CiEvent, CiParameter, PullRequestData
from .query import Query, escape_query_value
from .utils import is_version_greater_or_equal, now_millis

logger = logging.getLogger(__name__)

GITHUB_ACTIONS_SERVER_TYPE = "github_actions"
GITHUB_ACTIONS_PLUGIN_VERSION = "24.4.1"

GET = "GET"
CREATE = "POST"
UPDATE = "PUT"


class OctaneClient:
    """Client for ALM Octane operations"""

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        self.url = config.octane_url.rstrip("/")
        self.shared_space = config.octane_shared_space
        self.workspace = config.octane_workspace
        self.client_id = config.octane_client_id
        self.client_secret = config.octane_client_secret
        self.server_base_url = config.server_base_url

        if not self.url or not self.client_id or not self.client_secret:
            raise ValueError("Octane URL, client id and client secret must be set")

        self.session = session or requests.Session()
        self.session.headers.update({
            "ALM-OCTANE-TECH-PREVIEW": "true",
            "ALM-OCTANE-PRIVATE": "true",
        })
        self._signed_in = False

        self.workspace_api_url = f"/api/shared_spaces/{self.shared_space}/workspaces/{self.workspace}"
        self.analytics_ci_api_url = f"{self.workspace_api_url}/analytics/ci"
        self.analytics_ci_internal_api_url = f"/internal-api/shared_spaces/{self.shared_space}/analytics/ci"
        self.analytics_workspace_ci_internal_api_url = (
            f"/internal-api/shared_spaces/{self.shared_space}/workspaces/{self.workspace}/analytics/ci"
        )

    ############################################################################
    # Transport
    ############################################################################

    def sign_in(self) -> None:
        response = self.session.post(
            f"{self.url}/authentication/sign_in",
            json={"client_id": self.client_id, "client_secret": self.client_secret},
            timeout=60,
        )
        if not response.ok:
            raise _remote_call_error(response)
        self._signed_in = True
        logger.debug("Signed in to Octane")

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        if not self._signed_in:
            self.sign_in()

        response = self._send(method, path, params, body, headers)
        if response.status_code == 401:
            # Session cookies expire; sign in once more and replay
            self.sign_in()
            response = self._send(method, path, params, body, headers)

        if not response.ok:
            raise _remote_call_error(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _send(self, method, path, params, body, headers) -> requests.Response:
        kwargs: Dict[str, Any] = {"params": params, "headers": headers, "timeout": 120}
        if isinstance(body, (str, bytes)):
            kwargs["data"] = body.encode("utf-8") if isinstance(body, str) else body
        elif body is not None:
            kwargs["json"] = body
        return self.session.request(method, f"{self.url}{path}", **kwargs)

    def execute_custom_request(
        self,
        path: str,
        method: str,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        return self._request(method, path, body=body, headers=headers)

    def get_entities(self, collection: str, fields: List[str], query: Optional[Query] = None) -> Dict[str, Any]:
        params = {"fields": ",".join(fields)}
        if query is not None:
            params["query"] = query.build()
        response = self._request(GET, f"{self.workspace_api_url}/{collection}", params=params)
        return response or {"total_count": 0, "data": []}

    def create_entities(self, collection: str, entities: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        response = self._request(CREATE, f"{self.workspace_api_url}/{collection}", body={"data": entities})
        return (response or {}).get("data", [])

    def update_entity(self, collection: str, entity: Dict[str, Any]) -> None:
        self._request(UPDATE, f"{self.workspace_api_url}/{collection}/{entity['id']}", body=entity)

    ############################################################################
    # CI events
    ############################################################################

    async def send_events(self, events: List[CiEvent], instance_id: str, url: str) -> None:
        """Push CI events to the analytics events endpoint"""
        payload_events = [event.to_dict() for event in events]
        logger.debug(
            f"Sending events to server-side app (instanceId: {instance_id}): {json.dumps(payload_events)}"
        )

        events_to_send = {
            "server": {
                "instanceId": instance_id,
                "type": GITHUB_ACTIONS_SERVER_TYPE,
                "url": url,
                "version": GITHUB_ACTIONS_PLUGIN_VERSION,
                "sendingTime": now_millis(),
            },
            "events": payload_events,
        }

        await asyncio.to_thread(
            self.execute_custom_request, f"{self.analytics_ci_internal_api_url}/events", UPDATE, events_to_send
        )

    async def send_test_result(self, test_result: str, instance_id: str, job_id: str, build_id: str) -> None:
        logger.debug(
            f"Sending test results for job run with {{jobId='{job_id}', buildId='{build_id}', instanceId='{instance_id}'}}"
        )
        path = (
            f"{self.analytics_ci_internal_api_url}/test-results?skip-errors=true"
            f"&instance-id={quote(instance_id, safe='')}"
            f"&job-ci-id={quote(job_id, safe='')}"
            f"&build-ci-id={quote(build_id, safe='')}"
        )
        await asyncio.to_thread(
            self.execute_custom_request, path, CREATE, test_result, {"Content-Type": "application/xml"}
        )

    async def send_pull_request_data(self, pull_requests: List[PullRequestData]) -> None:
        payload = [pull_request.to_dict() for pull_request in pull_requests]
        logger.debug(f"Sending pull request data with {{pullRequests={json.dumps(payload)}}}...")
        await asyncio.to_thread(
            self.execute_custom_request, f"{self.analytics_ci_api_url}/pull-requests", UPDATE, payload
        )

    ############################################################################
    # CI servers
    ############################################################################

    async def create_ci_server(self, name: str, instance_id: str, url: str) -> Dict[str, Any]:
        logger.debug(f"Creating CI server with {{name='{name}', instanceId='{instance_id}'}}...")
        created = await asyncio.to_thread(self.create_entities, "ci_servers", [{
            "name": name,
            "instance_id": instance_id,
            "server_type": GITHUB_ACTIONS_SERVER_TYPE,
            "url": url,
        }])
        return created[0]

    async def get_ci_server(self, instance_id: str) -> Optional[Dict[str, Any]]:
        logger.debug(f"Getting CI server with {{instanceId='{instance_id}'}}...")
        query = Query.field("instance_id").equal(escape_query_value(instance_id))
        ci_servers = await asyncio.to_thread(
            self.get_entities, "ci_servers", ["instance_id", "plugin_version", "url"], query
        )
        data = ci_servers.get("data") or []
        return data[0] if data else None

    async def get_ci_server_or_create(
        self,
        instance_id: str,
        name: str,
        base_url: str,
        create_on_absence: bool = False
    ) -> Dict[str, Any]:
        """Look a CI server up by instance id, creating it when allowed"""
        ci_server = await self.get_ci_server(instance_id)
        if ci_server:
            return ci_server

        if not create_on_absence:
            raise NotFoundError(f"CI Server '{name} (instanceId='{instance_id}')' not found.")

        return await self.create_ci_server(name, instance_id, base_url)

    async def update_plugin_version_if_needed(self, instance_id: str, ci_server: Dict[str, Any]) -> None:
        plugin_version = ci_server.get("plugin_version")
        logger.info(f"Current CI Server version: '{plugin_version}'")
        if not plugin_version or is_version_greater_or_equal(GITHUB_ACTIONS_PLUGIN_VERSION, plugin_version):
            logger.info(f"Updating CI Server version to: '{GITHUB_ACTIONS_PLUGIN_VERSION}'")
            await self.update_plugin_version(instance_id)

    async def update_plugin_version(self, instance_id: str) -> None:
        path = (
            f"{self.analytics_ci_internal_api_url}/servers/{quote(instance_id, safe='')}/tasks"
            f"?self-type={GITHUB_ACTIONS_SERVER_TYPE}&api-version=1&sdk-version="
            f"&plugin-version={GITHUB_ACTIONS_PLUGIN_VERSION}"
            f"&self-url={quote(self.server_base_url or '', safe='')}"
            f"&client-id={quote(self.client_id, safe='')}&client-server-user="
        )
        await asyncio.to_thread(self.execute_custom_request, path, GET)

    async def get_octane_version(self) -> str:
        response = await asyncio.to_thread(
            self.execute_custom_request,
            f"{self.analytics_ci_internal_api_url}/servers/connectivity/status",
            GET,
            headers={"ALM-OCTANE-TECH-PREVIEW": "true"},
        )
        return (response or {}).get("octaneVersion", "")

    async def get_shared_space_name(self, shared_space_id: int) -> str:
        logger.debug(f"Getting the name of the shared space {{id='{shared_space_id}'}}...")
        response = await asyncio.to_thread(
            self._request,
            GET,
            "/api/shared_spaces",
            params={"fields": "name", "query": f'"id EQ {shared_space_id}"'},
        )
        return response["data"][0]["name"]

    async def get_feature_toggles(self) -> Dict[str, bool]:
        response = await asyncio.to_thread(
            self.execute_custom_request,
            f"{self.analytics_workspace_ci_internal_api_url}/github_feature_toggles",
            GET,
        )
        return response or {}

    ############################################################################
    # Pipelines
    ############################################################################

    async def create_pipeline(
        self,
        pipeline_name: str,
        ci_server: Dict[str, Any],
        job_ci_id_prefix: Optional[str] = None,
        jobs: Optional[List[ActionsJob]] = None,
        parameters: Optional[List[CiParameter]] = None
    ) -> Dict[str, Any]:
        logger.debug(f"Creating pipeline with {{name='{pipeline_name}'}}...")

        pipeline_jobs = [
            {"name": job.name, "jobCiId": f"{job_ci_id_prefix}/{job.name}"}
            for job in (jobs or [])
        ]
        root_job = {"name": pipeline_name, "jobCiId": f"{job_ci_id_prefix}"}
        if parameters:
            root_job["parameters"] = [parameter.to_dict() for parameter in parameters]
        pipeline_jobs.append(root_job)

        created = await asyncio.to_thread(self.create_entities, "pipelines", [{
            "name": pipeline_name,
            "ci_server": {"type": "ci_server", "id": ci_server["id"]},
            "root_job_ci_id": f"{job_ci_id_prefix}",
            "jobs": pipeline_jobs,
        }])
        return created[0]

    async def get_pipeline_or_create(
        self,
        pipeline_name: str,
        ci_server: Dict[str, Any],
        create_on_absence: bool = False,
        job_ci_id_prefix: Optional[str] = None,
        jobs: Optional[List[ActionsJob]] = None,
        parameters: Optional[List[CiParameter]] = None
    ) -> Dict[str, Any]:
        """Look a pipeline up by (name, CI server), creating it when allowed"""
        logger.debug(f"Getting pipeline with {{name='{pipeline_name}'}}...")

        query = Query.field("name").equal(escape_query_value(pipeline_name)).and_(
            Query.field("ci_server").equal(Query.field("id").equal(ci_server["id"]))
        )
        pipelines = await asyncio.to_thread(
            self.get_entities, "pipelines", ["name", "ci_server"], query
        )
        data = pipelines.get("data") or []
        if data:
            return data[0]

        if not create_on_absence:
            raise NotFoundError(f"Pipeline '{pipeline_name}' not found.")

        return await self.create_pipeline(pipeline_name, ci_server, job_ci_id_prefix, jobs, parameters)

    async def get_pipeline_by_root_job_ci_id(
        self,
        root_job_ci_id: str,
        ci_server: Dict[str, Any]
    ) -> Optional[List[Dict[str, Any]]]:
        logger.debug(f"Getting pipeline with {{root_job_ci_id='{root_job_ci_id}'}}...")

        query = Query.field("root_job").equal(
            Query.field("ci_id").equal(escape_query_value(root_job_ci_id))
        ).and_(Query.field("ci_server").equal(Query.field("id").equal(ci_server["id"])))

        pipelines = await asyncio.to_thread(
            self.get_entities, "pipelines", ["name", "ci_server{instance_id}"], query
        )
        data = pipelines.get("data") or []
        if not data:
            logger.debug(f"Couldn't find pipeline with {{root_job_ci_id='{root_job_ci_id}'}}...")
            return None
        return data

    async def get_pipeline_by_name(self, pipeline_name: str) -> Optional[Dict[str, Any]]:
        logger.debug(f"Getting pipeline with {{name='{pipeline_name}'}}...")

        query = Query.field("name").equal(escape_query_value(pipeline_name))
        pipelines = await asyncio.to_thread(
            self.get_entities,
            "pipelines", ["name", "ci_server{instance_id}", "multi_branch_type"], query
        )
        data = pipelines.get("data") or []
        if not data:
            logger.debug(f"Couldn't find pipeline with {{name='{pipeline_name}'}}...")
            return None
        return data[0]

    async def update_pipeline(self, pipeline: Dict[str, Any]) -> None:
        logger.debug(f"Updating pipeline with {json.dumps(pipeline)}...")
        await asyncio.to_thread(self.update_entity, "pipelines", pipeline)

    async def update_pipeline_internal(self, pipeline: Dict[str, Any]) -> None:
        logger.debug(f"Updating pipeline with {json.dumps(pipeline)}, using custom resource...")
        await asyncio.to_thread(
            self.execute_custom_request,
            f"{self.analytics_workspace_ci_internal_api_url}/pipeline_update", UPDATE, pipeline
        )

    ############################################################################
    # Jobs and builds
    ############################################################################

    async def get_all_jobs_by_pipeline(self, pipeline_id: str) -> List[Dict[str, Any]]:
        logger.debug(f"Getting all the jobs for pipeline with {{id='{pipeline_id}'}}...")

        query = Query.field("pipeline").equal(Query.field("id").equal(pipeline_id))
        response = await asyncio.to_thread(self.get_entities, "pipeline_nodes", ["ci_job{ci_id,name}"], query)
        return [node["ci_job"] for node in response.get("data") or [] if node.get("ci_job")]

    async def get_job_builds(self, job_ci_id: str) -> List[Dict[str, Any]]:
        logger.debug(f"Getting job builds for CI job with {{id='{job_ci_id}'}}...")

        query = Query.field("ci_job").equal(Query.field("ci_id").equal(escape_query_value(job_ci_id)))
        builds = await asyncio.to_thread(self.get_entities, "ci_builds", ["start_time"], query)
        return builds.get("data") or []

    async def update_ci_jobs(
        self,
        ci_jobs: List[Dict[str, Any]],
        ci_server_id: str,
        new_ci_server_id: str
    ) -> None:
        """Bulk update of job names, ci ids and CI server linkage"""
        request_payload = []
        for ci_job in ci_jobs:
            logger.debug(
                f"Updating job with {{id='{ci_job['jobId']}', name='{ci_job['name']}', "
                f"jobCiId='{ci_job['jobCiId']}', ciServerId='{new_ci_server_id}'}}..."
            )
            request_payload.append({
                "name": ci_job["name"],
                "jobId": ci_job["jobId"],
                "jobCiId": ci_job["jobCiId"],
                "ciServer": {"id": new_ci_server_id},
            })

        if request_payload:
            await asyncio.to_thread(
                self.execute_custom_request,
                f"{self.analytics_workspace_ci_internal_api_url}/ci_job_update"
                f"?ci-server-id={quote(str(ci_server_id), safe='')}",
                UPDATE,
                request_payload,
            )

    ############################################################################
    # Executors
    ############################################################################

    async def get_executors(self, ci_job_ci_id: str, ci_server: Dict[str, Any]) -> List[Dict[str, Any]]:
        """CI jobs with the given ci id, including the executor they are linked to"""
        query = Query.field("ci_id").equal(escape_query_value(ci_job_ci_id)).and_(
            Query.field("ci_server").equal(Query.field("id").equal(ci_server["id"]))
        )
        ci_jobs = await asyncio.to_thread(self.get_entities, "ci_jobs", ["ci_id", "name", "executor"], query)
        return ci_jobs.get("data") or []

    async def create_executor(self, executor: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug(f"Creating executor with {json.dumps(executor)}...")
        created = await asyncio.to_thread(self.create_entities, "executors", [executor])
        return created[0]


def _remote_call_error(response: requests.Response) -> RemoteCallError:
    description = ""
    try:
        body = response.json()
        if isinstance(body, dict):
            description = body.get("description_translated") or body.get("description") or ""
    except ValueError:
        description = response.text or ""

    request = response.request
    return RemoteCallError(
        status=response.status_code,
        reason=response.reason or "",
        url=request.url if request is not None else "",
        method=request.method if request is not None else "",
        description=description,
    )
