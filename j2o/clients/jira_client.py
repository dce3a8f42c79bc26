"""Jira API client for the relationship migration.

Fetches the issues whose links and epic links are migrated, with only the
fields needed for that. Failures raise ``JiraError`` subclasses, which are
also ``ClientError`` subclasses, instead of returning empty results.
"""

import re
from collections.abc import Iterable

from jira import JIRA, Issue

from j2o import config
from j2o.clients.exceptions import (
    ApiError,
    AuthenticationError,
    ClientConnectionError,
    ClientError,
    ResourceNotFoundError,
)
from j2o.config import logger

DEFAULT_EPIC_LINK_FIELD = "customfield_10014"
DEFAULT_PAGE_SIZE = 100
PROJECT_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]+$")

# Fields required to derive relations; everything else stays on the server
RELATION_FIELDS = (
    "summary",
    "issuetype",
    "created",
    "issuelinks",
    "parent",
)


class JiraError(ClientError):
    """A Jira request failed."""


class JiraConnectionError(JiraError, ClientConnectionError):
    pass


class JiraAuthenticationError(JiraError, AuthenticationError):
    pass


class JiraApiError(JiraError, ApiError):
    pass


class JiraResourceNotFoundError(JiraError, ResourceNotFoundError):
    pass


class JiraClient:
    """Read-only access to the Jira issues of one migration run."""

    def __init__(self, jira: JIRA | None = None, page_size: int | None = None) -> None:
        """Read the ``jira`` settings and connect unless a JIRA instance is injected.

        Raises:
            ValueError: If URL or API token are missing from the configuration
            JiraAuthenticationError: If no authentication method succeeds

        """
        jira_config = config.jira_config
        self.jira_url: str = jira_config.get("url", "")
        self.jira_username: str = jira_config.get("username", "")
        self.jira_token: str = jira_config.get("api_token", "")
        self.verify_ssl: bool = jira_config.get("verify_ssl", True)
        self.epic_link_field: str = jira_config.get("epic_link_field", DEFAULT_EPIC_LINK_FIELD)
        self.page_size: int = page_size or config.get_value("migration", "batch_size", DEFAULT_PAGE_SIZE)

        self.jira: JIRA | None = jira
        if self.jira is not None:
            return

        for setting, value in (("URL", self.jira_url), ("API token", self.jira_token)):
            if not value:
                msg = f"Jira {setting} is required"
                raise ValueError(msg)

        self._connect()

    @property
    def fields(self) -> list[str]:
        """Issue fields requested from Jira, including the epic link field."""
        return [*RELATION_FIELDS, self.epic_link_field]

    def _connect(self) -> None:
        """Connect with a bearer token (Jira Server/DC), falling back to basic auth (Cloud).

        Raises:
            JiraAuthenticationError: If neither method is accepted

        """
        attempts = (
            ("token", {"token_auth": self.jira_token}),
            ("basic", {"basic_auth": (self.jira_username, self.jira_token)}),
        )
        failures: list[str] = []

        for method, auth in attempts:
            try:
                jira = JIRA(server=self.jira_url, options={"verify": self.verify_ssl}, **auth)
                server_info = jira.server_info()
            except Exception as e:  # noqa: BLE001
                failures.append(f"{method}: {e!s}")
                logger.warning("Jira %s authentication failed: %s", method, e)
                continue

            self.jira = jira
            logger.success(
                "Connected to Jira %s (%s) using %s authentication",
                server_info.get("baseUrl", self.jira_url),
                server_info.get("version", "unknown version"),
                method,
            )
            return

        msg = f"Failed to authenticate with Jira at {self.jira_url}: {'; '.join(failures)}"
        logger.error(msg)
        raise JiraAuthenticationError(msg)

    def _require_connection(self) -> JIRA:
        if self.jira is None:
            msg = "Jira client is not initialized"
            raise JiraConnectionError(msg)
        return self.jira

    @staticmethod
    def validate_project_key(project_key: str) -> None:
        """Reject empty or malformed project keys before querying Jira.

        Raises:
            ValueError: If the key is missing or not an uppercase Jira project key

        """
        if not project_key:
            msg = "Project key is required"
            raise ValueError(msg)
        if not PROJECT_KEY_PATTERN.match(project_key):
            msg = (
                f"Invalid project key format '{project_key}'. "
                "Project keys should be uppercase and may contain numbers."
            )
            raise ValueError(msg)

    def get_all_issues_for_project(self, project_key: str) -> list[Issue]:
        """Get all issues of a project, oldest first, handling pagination.

        Raises:
            JiraConnectionError: If the client is not connected
            JiraResourceNotFoundError: If the project does not exist
            JiraApiError: If a page cannot be fetched

        """
        self.validate_project_key(project_key)
        jira = self._require_connection()

        try:
            jira.project(project_key)
        except Exception as e:
            msg = f"Project '{project_key}' not found: {e!s}"
            raise JiraResourceNotFoundError(msg) from e

        # Surround project key with quotes to handle reserved words
        jql = f'project = "{project_key}" ORDER BY created ASC'
        all_issues: list[Issue] = []
        start_at = 0

        logger.notice("Fetching all issues for project '%s'...", project_key)

        while True:
            try:
                issues_page = jira.search_issues(
                    jql,
                    startAt=start_at,
                    maxResults=self.page_size,
                    fields=",".join(self.fields),
                    json_result=False,
                )
            except Exception as e:
                error_msg = f"Failed to get issues page for project {project_key} at startAt={start_at}: {e!s}"
                logger.exception(error_msg)
                raise JiraApiError(error_msg) from e

            if not issues_page:
                break

            all_issues.extend(issues_page)
            logger.debug("Fetched %d issues (total: %d) for %s", len(issues_page), len(all_issues), project_key)

            if len(issues_page) < self.page_size:
                break
            start_at += len(issues_page)

        if not all_issues:
            logger.warning(
                "No issues found in project %s. Check the project key, that it contains issues "
                "and that you have permission to view them",
                project_key,
            )
        else:
            logger.info("Finished fetching %d issues for project '%s'", len(all_issues), project_key)
        return all_issues

    def get_specific_issues(self, issue_keys: Iterable[str]) -> list[Issue]:
        """Get the given issues by key, oldest first.

        Raises:
            JiraConnectionError: If the client is not connected
            JiraApiError: If the search fails

        """
        keys = [key.strip() for key in issue_keys if key and key.strip()]
        if not keys:
            return []
        jira = self._require_connection()

        quoted = ", ".join(f'"{key}"' for key in keys)
        jql = f"key in ({quoted}) ORDER BY created ASC"
        logger.info("Fetching specific issues: %s", ", ".join(keys))

        try:
            return list(
                jira.search_issues(
                    jql,
                    maxResults=len(keys),
                    fields=",".join(self.fields),
                    json_result=False,
                ),
            )
        except Exception as e:
            error_msg = f"Failed to get issues {', '.join(keys)}: {e!s}"
            logger.exception(error_msg)
            raise JiraApiError(error_msg) from e
