"""Value types shared by the relationship reconciliation components."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from j2o.type_definitions import IssueKey, LinkDirection, WorkItemId


class RelationType(StrEnum):
    """OpenProject relation types produced from Jira links.

    Inverse pairs (blocks/blocked, partof/includes, duplicates/duplicated) are
    sent as-is; OpenProject derives the reverse side itself.
    """

    BLOCKS = "blocks"
    BLOCKED = "blocked"
    RELATES = "relates"
    PARTOF = "partof"
    INCLUDES = "includes"
    DUPLICATES = "duplicates"
    DUPLICATED = "duplicated"


class RelationEvidence(StrEnum):
    """What the existence check found between two work packages."""

    PARENT_CHILD = "parent_child"
    RELATION = "relation"
    NONE = "none"


class CreationOutcome(StrEnum):
    """Result of a single check-then-create attempt."""

    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RelationRequest:
    """A directional relation between two resolved work packages."""

    from_id: WorkItemId
    to_id: WorkItemId
    relation_type: RelationType


@dataclass(frozen=True, slots=True)
class PendingRelationship:
    """A relation keyed by Jira issue keys, waiting for both ends to be migrated."""

    from_key: IssueKey
    to_key: IssueKey
    relation_type: RelationType

    def __str__(self) -> str:
        return f"{self.from_key} {self.relation_type} {self.to_key}"


@dataclass(slots=True)
class SourceIssueLink:
    """One side of a Jira issue link as seen from the issue carrying it."""

    direction: LinkDirection
    verb: str
    linked_key: IssueKey
    linked_created: datetime | None = None


@dataclass(slots=True)
class SourceIssue:
    """The relationship-relevant part of a Jira issue."""

    key: IssueKey
    created: datetime | None = None
    epic_key: IssueKey | None = None
    links: list[SourceIssueLink] = field(default_factory=list)


class ReconciliationSummary(BaseModel):
    """Aggregate counters of one reconciliation run."""

    created: int = 0
    skipped: int = 0
    deferred: int = 0
    failed: int = 0
    suppressed: int = 0
    unmapped_issues: int = 0
    unresolved: list[PendingRelationship] = Field(default_factory=list)

    def counters(self) -> dict[str, int]:
        """Return the counters without the unresolved list."""
        return {
            "created": self.created,
            "skipped": self.skipped,
            "deferred": self.deferred,
            "failed": self.failed,
            "suppressed": self.suppressed,
            "unmapped_issues": self.unmapped_issues,
        }
