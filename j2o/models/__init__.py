"""Models package for data structures used in the application."""

from j2o.models.component_results import ComponentResult
from j2o.models.migration_error import MigrationError
from j2o.models.relations import (
    CreationOutcome,
    PendingRelationship,
    ReconciliationSummary,
    RelationEvidence,
    RelationRequest,
    RelationType,
    SourceIssue,
    SourceIssueLink,
)

__all__ = [
    "ComponentResult",
    "CreationOutcome",
    "MigrationError",
    "PendingRelationship",
    "ReconciliationSummary",
    "RelationEvidence",
    "RelationRequest",
    "RelationType",
    "SourceIssue",
    "SourceIssueLink",
]
