"""Shared type aliases and configuration shapes for the relationship migration."""

from typing import Any, Literal, NotRequired, TypedDict

# Jira issue keys ("PROJ-5") and OpenProject work package ids (42)
type IssueKey = str
type WorkItemId = int
type IssueKeyToWorkItemId = dict[IssueKey, WorkItemId]

# Decoded HAL+JSON resources and filter objects of the OpenProject API
type OpenProjectData = dict[str, Any]
type RelationFilter = dict[str, dict[str, Any]]

type LinkDirection = Literal["outward", "inward"]

type ConfigValue = str | int | bool
type SectionName = Literal["jira", "openproject", "migration"]
type DirType = Literal["data", "logs", "results", "run"]
type LogLevel = Literal["DEBUG", "INFO", "NOTICE", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class JiraConfig(TypedDict, total=False):
    """``jira`` section: connection and the epic link custom field."""

    url: str
    username: str
    api_token: str
    verify_ssl: bool
    epic_link_field: str


class OpenProjectConfig(TypedDict, total=False):
    """``openproject`` section: REST connection and the Jira key custom field."""

    url: str
    api_token: str
    api_key: NotRequired[str]
    jira_key_custom_field_id: int


class MigrationConfig(TypedDict, total=False):
    """``migration`` section: run behaviour shared by all components."""

    log_level: LogLevel
    batch_size: int
    ssl_verify: bool
    dry_run: bool
    request_timeout: int
    relation_description: str


class Config(TypedDict):
    jira: JiraConfig
    openproject: OpenProjectConfig
    migration: MigrationConfig
