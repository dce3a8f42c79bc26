"""Deferred relationships and their single retry pass."""

from collections.abc import Mapping
from dataclasses import dataclass, field

from j2o.config import logger
from j2o.models.relations import CreationOutcome, PendingRelationship
from j2o.relations.creator import RelationshipCreator
from j2o.type_definitions import IssueKey, WorkItemId


@dataclass(slots=True)
class RetryResult:
    """Outcome of replaying the deferred relationships."""

    created: int = 0
    skipped: int = 0
    unresolved: list[PendingRelationship] = field(default_factory=list)


class DeferredRetryQueue:
    """Set of pending relationships, kept in insertion order for stable logs.

    Equal triples collapse into a single entry.
    """

    def __init__(self) -> None:
        self._pending: dict[PendingRelationship, None] = {}

    def add(self, pending: PendingRelationship) -> bool:
        """Queue a relationship; return False if an equal entry was already queued."""
        if pending in self._pending:
            return False
        self._pending[pending] = None
        return True

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, pending: object) -> bool:
        return pending in self._pending

    def missing_keys(self, work_packages: Mapping[IssueKey, WorkItemId]) -> set[IssueKey]:
        """Return the issue keys of queued entries that are not in the mapping."""
        return {
            key
            for pending in self._pending
            for key in (pending.from_key, pending.to_key)
            if key not in work_packages
        }

    def drain(self) -> list[PendingRelationship]:
        """Remove and return all queued entries."""
        entries = list(self._pending)
        self._pending.clear()
        return entries

    def replay(
        self,
        work_packages: Mapping[IssueKey, WorkItemId],
        creator: RelationshipCreator,
    ) -> RetryResult:
        """Attempt every queued relationship once more, then forget it.

        Entries with an end still missing from the mapping, or whose creation
        fails again, are returned as unresolved. There is no further retry.
        """
        entries = self.drain()
        result = RetryResult()
        if not entries:
            return result

        logger.info("Retrying %d missing relationships...", len(entries))

        for pending in entries:
            from_id = work_packages.get(pending.from_key)
            to_id = work_packages.get(pending.to_key)

            if from_id is None or to_id is None:
                logger.warning("Still missing work package for relationship: %s", pending)
                result.unresolved.append(pending)
                continue

            match creator.create(from_id, to_id, pending.relation_type):
                case CreationOutcome.CREATED:
                    logger.info("Created relationship: %s", pending)
                    result.created += 1
                case CreationOutcome.SKIPPED:
                    result.skipped += 1
                case CreationOutcome.FAILED:
                    logger.error("Failed to create relationship: %s", pending)
                    result.unresolved.append(pending)

        return result
