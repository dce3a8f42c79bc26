"""OpenProject client for the API v3 endpoints used by the relationship migration.

Covers work package lookup (including parent/children links), the relations
index with filters, relation creation and the Jira key to work package id
discovery through the custom field that stores the original Jira key.
"""

import json
import time
from collections.abc import Iterable, Iterator
from typing import Any

import requests

from j2o import config
from j2o.clients.exceptions import (
    ApiError,
    AuthenticationError,
    ClientConnectionError,
    JsonParseError,
    RateLimitError,
    ResourceNotFoundError,
)
from j2o.config import logger
from j2o.type_definitions import IssueKeyToWorkItemId, OpenProjectData, RelationFilter, WorkItemId

HTTP_BAD_REQUEST_MIN = 400
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
DEFAULT_PAGE_SIZE = 100
KEY_LOOKUP_CHUNK_SIZE = 50
DEFAULT_TIMEOUT = 30
DEFAULT_RATE_LIMIT_WAIT = 5
MAX_RATE_LIMIT_WAIT = 60

# OpenProject hides closed work packages unless a status filter says otherwise
ALL_STATUSES_FILTER = {"status": {"operator": "*", "values": []}}


def href_id(href: str | None) -> str | None:
    """Return the trailing id segment of an API href.

    >>> href_id("/api/v3/work_packages/123")
    '123'
    """
    if not href:
        return None
    return href.rstrip("/").split("/")[-1] or None


class OpenProjectClient:
    """Client for the OpenProject REST API v3.

    All error handling uses exceptions: HTTP errors are mapped onto the
    client exception hierarchy, network failures onto ClientConnectionError.
    """

    def __init__(
        self,
        url: str | None = None,
        api_token: str | None = None,
        *,
        verify_ssl: bool | None = None,
        timeout: int | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the OpenProject client.

        Args:
            url: OpenProject base URL (default: from config)
            api_token: API token (default: from config, api_token or api_key)
            verify_ssl: Verify TLS certificates (default: migration.ssl_verify)
            timeout: Request timeout in seconds (default: migration.request_timeout)
            session: Optional pre-built requests session (dependency injection)

        Raises:
            ValueError: If URL or API token are missing

        """
        op_config = config.openproject_config
        migration_config = config.migration_config

        self.url: str = (url or op_config.get("url", "")).rstrip("/")
        token = api_token or op_config.get("api_token") or op_config.get("api_key")

        if not self.url:
            msg = "OpenProject URL is required"
            raise ValueError(msg)
        if not token:
            msg = "OpenProject API token is required"
            raise ValueError(msg)

        self.base_url = f"{self.url}/api/v3"
        self.verify_ssl = migration_config.get("ssl_verify", True) if verify_ssl is None else verify_ssl
        self.timeout = timeout or migration_config.get("request_timeout", DEFAULT_TIMEOUT)
        self.request_count = 0

        self.session = session or requests.Session()
        self.session.auth = ("apikey", str(token))
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/hal+json, application/json",
            },
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> OpenProjectData:
        """Issue a request against the API and return the decoded JSON body.

        A rate-limited request is sent once more after waiting as long as the
        server asks in ``Retry-After``, capped at MAX_RATE_LIMIT_WAIT seconds.

        Raises:
            ClientConnectionError: If the server cannot be reached
            AuthenticationError: On HTTP 401/403
            ResourceNotFoundError: On HTTP 404
            RateLimitError: On HTTP 429 for the request and its single retry
            ApiError: On any other HTTP error
            JsonParseError: If the body is not valid JSON

        """
        try:
            return self._send(method, path, **kwargs)
        except RateLimitError as e:
            wait = min(e.retry_after or DEFAULT_RATE_LIMIT_WAIT, MAX_RATE_LIMIT_WAIT)
            logger.warning("Rate limit exceeded, waiting %ss before retrying %s %s", wait, method, path)
            time.sleep(wait)
            return self._send(method, path, **kwargs)

    def _send(self, method: str, path: str, **kwargs: Any) -> OpenProjectData:
        url = f"{self.base_url}{path}"
        self.request_count += 1
        logger.debug("OpenProject %s %s (request #%d)", method, path, self.request_count)

        try:
            response = self.session.request(
                method,
                url,
                timeout=self.timeout,
                verify=self.verify_ssl,
                **kwargs,
            )
        except requests.RequestException as e:
            msg = f"Error during API request to {url}: {e!s}"
            raise ClientConnectionError(msg) from e

        self._handle_response(response)

        try:
            return response.json()
        except ValueError as e:
            msg = f"Invalid JSON in response from {url}"
            raise JsonParseError(msg) from e

    def _handle_response(self, response: requests.Response) -> None:
        """Raise the matching client exception for an error response."""
        if response.status_code < HTTP_BAD_REQUEST_MIN:
            return

        error_msg = f"HTTP Error {response.status_code}: {response.reason}"
        try:
            error_json = response.json()
            if isinstance(error_json, dict) and error_json.get("message"):
                error_msg = f"{error_msg} - {error_json['message']}"
        except ValueError:
            logger.debug("Error response without JSON body: %s", error_msg)

        if response.status_code == HTTP_NOT_FOUND:
            raise ResourceNotFoundError(error_msg)
        if response.status_code in {401, 403}:
            raise AuthenticationError(error_msg)
        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                error_msg,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        raise ApiError(error_msg, status_code=response.status_code)

    # =====================================
    # Relation store
    # =====================================

    def get_work_package(self, work_package_id: WorkItemId) -> OpenProjectData:
        """Fetch a single work package, including its parent and children links."""
        return self._request("GET", f"/work_packages/{work_package_id}")

    def query_relations(self, filters: list[RelationFilter]) -> tuple[int, list[OpenProjectData]]:
        """Query the relations index.

        Args:
            filters: OpenProject filter objects; each object holds a single
                filter key and the server combines them with AND

        Returns:
            Tuple of total match count and the embedded relation elements

        """
        data = self._request("GET", "/relations", params={"filters": json.dumps(filters)})
        elements = data.get("_embedded", {}).get("elements", [])
        return int(data.get("total", len(elements))), elements

    def create_relation(
        self,
        from_id: WorkItemId,
        to_id: WorkItemId,
        relation_type: str,
        description: str | None = None,
        lag: int | None = None,
    ) -> OpenProjectData:
        """Create a relation from one work package to another.

        Returns:
            The created relation resource

        """
        payload: dict[str, Any] = {
            "type": str(relation_type),
            "_links": {"to": {"href": f"/api/v3/work_packages/{to_id}"}},
        }
        if description is not None:
            payload["description"] = description
        if lag is not None:
            payload["lag"] = lag

        return self._request("POST", f"/work_packages/{from_id}/relations", json=payload)

    # =====================================
    # Jira key mapping discovery
    # =====================================

    def iter_work_packages(
        self,
        project_id: str | int,
        filters: list[RelationFilter] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Iterator[OpenProjectData]:
        """Iterate over all work packages of a project, or of all projects for "all".

        Closed work packages are included.
        """
        path = "/work_packages" if str(project_id) == "all" else f"/projects/{project_id}/work_packages"
        query_filters = [ALL_STATUSES_FILTER, *(filters or [])]
        offset = 1

        while True:
            data = self._request(
                "GET",
                path,
                params={
                    "offset": offset,
                    "pageSize": page_size,
                    "filters": json.dumps(query_filters),
                },
            )
            elements = data.get("_embedded", {}).get("elements", [])
            yield from elements

            total = int(data.get("total", 0))
            if not elements or offset * page_size >= total:
                break
            offset += 1

    def get_work_package_key_map(
        self,
        project_id: str | int,
        custom_field_id: int,
    ) -> IssueKeyToWorkItemId:
        """Build the Jira key to work package id mapping of a project.

        Args:
            project_id: OpenProject project id or identifier, or "all"
            custom_field_id: Id of the custom field holding the Jira key

        """
        field_name = f"customField{custom_field_id}"
        mapping: IssueKeyToWorkItemId = {}

        for wp in self.iter_work_packages(project_id):
            jira_key = wp.get(field_name)
            if jira_key:
                mapping[str(jira_key)] = int(wp["id"])

        logger.info("Found %d work packages with a Jira key in project %s", len(mapping), project_id)
        return mapping

    def find_work_packages_by_jira_keys(
        self,
        jira_keys: Iterable[str],
        custom_field_id: int,
    ) -> IssueKeyToWorkItemId:
        """Look up work packages across all projects by their Jira key."""
        field_name = f"customField{custom_field_id}"
        keys = sorted(set(jira_keys))
        mapping: IssueKeyToWorkItemId = {}

        for start in range(0, len(keys), KEY_LOOKUP_CHUNK_SIZE):
            chunk = keys[start : start + KEY_LOOKUP_CHUNK_SIZE]
            key_filter = {field_name: {"operator": "=", "values": chunk}}
            for wp in self.iter_work_packages("all", filters=[key_filter]):
                jira_key = wp.get(field_name)
                if jira_key in chunk:
                    mapping[str(jira_key)] = int(wp["id"])

        return mapping
