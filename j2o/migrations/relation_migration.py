"""Relation migration: create OpenProject relations from Jira issue links and epic links.

Work packages must already exist. The Jira key to work package id mapping is
read from OpenProject (custom field holding the Jira key) and completed with
the mapping persisted by the work package migration, if any.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from j2o import config
from j2o.config import logger
from j2o.clients.exceptions import ClientError
from j2o.clients.jira_client import JiraClient, JiraError
from j2o.clients.openproject_client import OpenProjectClient
from j2o.display import ProgressTracker, console, render_summary_table
from j2o.migrations.base_migration import BaseMigration
from j2o.models import ComponentResult, MigrationError, SourceIssue
from j2o.relations.creator import DEFAULT_RELATION_DESCRIPTION
from j2o.relations.issue_source import build_source_issues
from j2o.relations.reconciler import RelationshipReconciler
from j2o.type_definitions import IssueKey, IssueKeyToWorkItemId, WorkItemId

WORK_PACKAGE_MAPPING_FILE = Path("work_package_mapping.json")
SUMMARY_FILE = Path("relation_migration_summary.json")


def _as_work_package_id(entry: Any) -> WorkItemId | None:
    """Extract a work package id from the shapes a mapping entry can take."""
    if isinstance(entry, dict):
        entry = entry.get("openproject_id")
    if isinstance(entry, bool):
        return None
    if isinstance(entry, int):
        return entry
    if isinstance(entry, str) and entry.isdigit():
        return int(entry)
    return None


class RelationMigration(BaseMigration):
    """Create OpenProject relations for the issues of one Jira project."""

    def __init__(
        self,
        jira_client: JiraClient | None = None,
        op_client: OpenProjectClient | None = None,
        *,
        jira_project_key: str,
        openproject_project_id: str | int,
        issue_keys: Iterable[str] | None = None,
        dry_run: bool | None = None,
    ) -> None:
        """Initialize the relation migration.

        Args:
            jira_client: Jira client used as issue source
            op_client: OpenProject client used as relation store
            jira_project_key: Key of the Jira project whose links are migrated
            openproject_project_id: Target project id, or "all" to map keys across projects
            issue_keys: Restrict the run to these issues
            dry_run: Report relations without creating them (default: from config)

        """
        super().__init__(jira_client, op_client)
        self.jira_project_key = jira_project_key
        self.openproject_project_id = openproject_project_id
        self.issue_keys = list(issue_keys) if issue_keys else None
        self.dry_run = config.get_value("migration", "dry_run", False) if dry_run is None else dry_run
        self.custom_field_id: int | None = config.get_value("openproject", "jira_key_custom_field_id")
        self.epic_link_field: str = self.jira_client.epic_link_field

    def _load_persisted_map(self) -> IssueKeyToWorkItemId:
        """Read the work package mapping written by the work package migration.

        Entries are either keyed by Jira key or by work package id with a
        ``jira_key`` attribute.
        """
        persisted = self._load_from_json(WORK_PACKAGE_MAPPING_FILE, default={}) or {}
        mapping: IssueKeyToWorkItemId = {}
        for key, entry in persisted.items():
            jira_key = entry.get("jira_key", key) if isinstance(entry, dict) else key
            wp_id = _as_work_package_id(entry)
            if jira_key and wp_id is not None:
                mapping[str(jira_key)] = wp_id
        return mapping

    def _load_work_package_map(self) -> IssueKeyToWorkItemId:
        """Build the Jira key to work package id mapping.

        Raises:
            MigrationError: If OpenProject cannot be queried

        """
        mapping: IssueKeyToWorkItemId = {}
        if self.custom_field_id:
            logger.info("Fetching work packages for project %s...", self.openproject_project_id)
            try:
                mapping = self.op_client.get_work_package_key_map(
                    self.openproject_project_id,
                    self.custom_field_id,
                )
            except ClientError as e:
                msg = f"Failed to fetch OpenProject work packages: {e}"
                raise MigrationError(msg) from e

        for key, wp_id in self._load_persisted_map().items():
            mapping.setdefault(key, wp_id)

        logger.info("Found %d mapped work packages", len(mapping))
        return mapping

    def _fetch_issues(self) -> list[SourceIssue]:
        """Fetch the Jira issues with their links.

        Raises:
            MigrationError: If the issues cannot be fetched

        """
        try:
            if self.issue_keys:
                raw_issues = self.jira_client.get_specific_issues(self.issue_keys)
            else:
                raw_issues = self.jira_client.get_all_issues_for_project(self.jira_project_key)
        except (JiraError, ValueError) as e:
            msg = f"Failed to fetch Jira issues: {e}"
            raise MigrationError(msg) from e

        issues = build_source_issues(raw_issues, self.epic_link_field)
        logger.info("Found %d Jira issues to process", len(issues))
        return issues

    def _resolve_missing(self, jira_keys: set[IssueKey]) -> dict[IssueKey, WorkItemId]:
        """Find work packages of linked issues outside the target project."""
        if not self.custom_field_id:
            return {}
        return self.op_client.find_work_packages_by_jira_keys(jira_keys, self.custom_field_id)

    def run(self) -> ComponentResult:
        """Create all relations of the configured issues and report the counters."""
        logger.info("Starting relation migration...")
        if self.dry_run:
            logger.warning("Dry run: no relation will be created")

        try:
            work_packages = self._load_work_package_map()
            issues = self._fetch_issues()
        except MigrationError as e:
            logger.error("Relation migration failed: %s", e.message)
            return ComponentResult.failure(e.message, dry_run=self.dry_run)

        if not work_packages:
            logger.warning("No work package mapping entries found; all relations will be deferred")

        reconciler = RelationshipReconciler(
            self.op_client,
            work_packages,
            resolve_missing=self._resolve_missing if self.custom_field_id else None,
            description=config.get_value("migration", "relation_description", DEFAULT_RELATION_DESCRIPTION),
            dry_run=self.dry_run,
        )

        with ProgressTracker("Creating relationships", len(issues), "Recent issues") as tracker:
            for issue in issues:
                reconciler.process_issue(issue)
                tracker.add_log_item(issue.key)
                tracker.increment()

        reconciler.retry_pending()
        reconciler.log_summary()
        summary = reconciler.summary

        console.print(render_summary_table("Relationship migration", summary.counters()))

        result = ComponentResult(
            success=summary.failed == 0,
            message=(
                f"Relations created={summary.created}, skipped={summary.skipped}, "
                f"deferred={summary.deferred}, failed={summary.failed}"
            ),
            details=summary.counters(),
            dry_run=self.dry_run,
            success_count=summary.created + summary.skipped,
            failed_count=summary.failed,
            total_count=len(issues),
        )
        for pending in summary.unresolved:
            result.add_warning(f"Unresolved relationship: {pending}")

        self._save_to_json(summary.model_dump(mode="json"), SUMMARY_FILE)
        if result.success:
            logger.success(result.message)
        else:
            logger.warning(result.message)
        return result
