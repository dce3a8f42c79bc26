"""Relationship reconciliation: drives classification, creation and the retry pass.

Issues are processed one at a time and every request is awaited before the
next one is sent, so the existence check of a pair is never raced by another
creation from this process.
"""

from collections.abc import Callable, Iterable, Mapping

from j2o.clients.exceptions import ClientError
from j2o.config import logger
from j2o.models.relations import (
    CreationOutcome,
    PendingRelationship,
    ReconciliationSummary,
    RelationRequest,
    SourceIssue,
)
from j2o.relations.classifier import Classification, classify_epic_link, classify_link
from j2o.relations.creator import DEFAULT_RELATION_DESCRIPTION, RelationshipCreator
from j2o.relations.protocols import RelationStore
from j2o.relations.retry_queue import DeferredRetryQueue
from j2o.type_definitions import IssueKey, IssueKeyToWorkItemId, WorkItemId

type MissingKeyResolver = Callable[[set[IssueKey]], Mapping[IssueKey, WorkItemId]]


class RelationshipReconciler:
    """Owns the key mapping and the retry queue of one migration run.

    Usage:
        reconciler = RelationshipReconciler(store, {"PROJ-1": 7})
        summary = reconciler.reconcile(issues)

    or, to drive the passes separately, call process_issue() per issue and
    retry_pending() once at the end.
    """

    def __init__(
        self,
        store: RelationStore,
        work_packages: Mapping[IssueKey, WorkItemId] | None = None,
        *,
        creator: RelationshipCreator | None = None,
        resolve_missing: MissingKeyResolver | None = None,
        description: str | None = DEFAULT_RELATION_DESCRIPTION,
        lag: int | None = 0,
        dry_run: bool = False,
    ) -> None:
        self.work_packages: IssueKeyToWorkItemId = {}
        self.queue = DeferredRetryQueue()
        self.creator = creator or RelationshipCreator(
            store,
            description=description,
            lag=lag,
            dry_run=dry_run,
        )
        self.resolve_missing = resolve_missing
        self.summary = ReconciliationSummary()

        for key, wp_id in (work_packages or {}).items():
            self.register_work_package(key, wp_id)

    def register_work_package(self, jira_key: IssueKey, work_package_id: WorkItemId) -> None:
        """Record the work package of a migrated issue. Known keys keep their id."""
        known = self.work_packages.setdefault(jira_key, work_package_id)
        if known != work_package_id:
            logger.warning(
                "Ignoring work package %s for %s, already mapped to %s",
                work_package_id,
                jira_key,
                known,
            )

    def process_issue(self, issue: SourceIssue) -> None:
        """Handle the epic link, then every issue link in source order."""
        logger.debug("Processing relationships of %s", issue.key)
        if issue.key not in self.work_packages:
            self.summary.unmapped_issues += 1
            logger.debug("%s has no work package yet, its relationships will be deferred", issue.key)

        if issue.epic_key:
            self._submit(issue.key, issue.epic_key, classify_epic_link(issue, self.work_packages))

        for link in issue.links:
            classification = classify_link(issue, link, self.work_packages)
            if classification is None:
                self.summary.suppressed += 1
                logger.debug(
                    "Skipping duplicate link %s %s %s, created from the older issue",
                    issue.key,
                    link.verb,
                    link.linked_key,
                )
                continue
            self._submit(issue.key, link.linked_key, classification)

    def _submit(self, from_key: IssueKey, to_key: IssueKey, classification: Classification | None) -> None:
        match classification:
            case None:
                return
            case PendingRelationship():
                logger.info(
                    "Target of %s not found in current migration batch, will retry later",
                    classification,
                )
                self._defer(classification)
            case RelationRequest():
                outcome = self.creator.create_request(classification)
                if outcome is CreationOutcome.CREATED:
                    self.summary.created += 1
                elif outcome is CreationOutcome.SKIPPED:
                    self.summary.skipped += 1
                else:
                    self._defer(PendingRelationship(from_key, to_key, classification.relation_type))

    def _defer(self, pending: PendingRelationship) -> None:
        if self.queue.add(pending):
            self.summary.deferred += 1

    def retry_pending(self) -> None:
        """Run the single retry pass over deferred relationships."""
        if not len(self.queue):
            return

        if self.resolve_missing is not None:
            self._resolve_missing_keys()

        result = self.queue.replay(self.work_packages, self.creator)
        self.summary.created += result.created
        self.summary.skipped += result.skipped
        self.summary.failed += len(result.unresolved)
        self.summary.unresolved.extend(result.unresolved)

    def _resolve_missing_keys(self) -> None:
        missing = self.queue.missing_keys(self.work_packages)
        if not missing:
            return

        logger.info("Looking up %d issue keys missing from the mapping", len(missing))
        try:
            found = self.resolve_missing(missing)  # type: ignore[misc]
        except ClientError as e:
            logger.error("Failed to look up missing work packages: %s", e)
            return

        for key, wp_id in found.items():
            self.register_work_package(key, wp_id)

    def reconcile(
        self,
        issues: Iterable[SourceIssue],
        work_packages: Mapping[IssueKey, WorkItemId] | None = None,
    ) -> ReconciliationSummary:
        """Process all issues, then retry the deferred relationships once.

        Args:
            issues: Issues of the batch, in any order
            work_packages: Extra Jira key to work package id entries

        Returns:
            The aggregate counters of this run

        """
        self.summary = ReconciliationSummary()
        for key, wp_id in (work_packages or {}).items():
            self.register_work_package(key, wp_id)

        logger.info("=== Creating Relationships ===")
        for issue in issues:
            self.process_issue(issue)

        self.retry_pending()
        self.log_summary()
        return self.summary

    def log_summary(self) -> None:
        """Log the counters and every relationship that could not be created."""
        logger.info(
            "Relationships created=%d, skipped=%d, deferred=%d, failed=%d, suppressed=%d",
            self.summary.created,
            self.summary.skipped,
            self.summary.deferred,
            self.summary.failed,
            self.summary.suppressed,
        )
        for pending in self.summary.unresolved:
            logger.warning("Unresolved relationship: %s", pending)


def reconcile_relationships(
    issues: Iterable[SourceIssue],
    issue_key_to_work_item_id: Mapping[IssueKey, WorkItemId],
    store: RelationStore,
    **kwargs: object,
) -> ReconciliationSummary:
    """Create the relationships of a batch of issues with a fresh reconciler."""
    reconciler = RelationshipReconciler(store, issue_key_to_work_item_id, **kwargs)  # type: ignore[arg-type]
    return reconciler.reconcile(issues)
