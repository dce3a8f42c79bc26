"""Classification of Jira issue links into OpenProject relation requests.

Jira stores every link on both issues: once as an outward link on the source
and once as an inward link on the target. Each side is classified on its own
using the link verb as seen from the issue carrying it.
"""

from collections.abc import Mapping

from j2o.models.relations import (
    PendingRelationship,
    RelationRequest,
    RelationType,
    SourceIssue,
    SourceIssueLink,
)
from j2o.type_definitions import IssueKey, LinkDirection, WorkItemId

OUTWARD_RELATION_TYPES: dict[str, RelationType] = {
    "blocks": RelationType.BLOCKS,
    "relates to": RelationType.RELATES,
    "is parent of": RelationType.INCLUDES,
    "duplicates": RelationType.DUPLICATES,
}

INWARD_RELATION_TYPES: dict[str, RelationType] = {
    "is blocked by": RelationType.BLOCKED,
    "relates to": RelationType.RELATES,
    "is child of": RelationType.PARTOF,
    "is duplicated by": RelationType.DUPLICATED,
}

type Classification = RelationRequest | PendingRelationship


def relation_type_for(direction: LinkDirection, verb: str) -> RelationType:
    """Map a link verb to a relation type; unknown verbs become ``relates``."""
    table = OUTWARD_RELATION_TYPES if direction == "outward" else INWARD_RELATION_TYPES
    return table.get(verb.strip().lower(), RelationType.RELATES)


def is_suppressed_duplicate(
    issue: SourceIssue,
    link: SourceIssueLink,
    relation_type: RelationType,
) -> bool:
    """Tell whether this side of a duplicate link must not create the relation.

    Jira records the link on both issues, as ``duplicates`` on one and
    ``is duplicated by`` on the other. Only the side of the earlier created
    issue is kept, whichever verb it carries, so the relation is created once
    and oriented from that issue. Equal or unknown timestamps never suppress;
    the existence check catches the second side instead.
    """
    if relation_type not in (RelationType.DUPLICATES, RelationType.DUPLICATED):
        return False
    if issue.created is None or link.linked_created is None:
        return False
    return issue.created > link.linked_created


def _resolve(
    from_key: IssueKey,
    to_key: IssueKey,
    relation_type: RelationType,
    work_packages: Mapping[IssueKey, WorkItemId],
) -> Classification:
    from_id = work_packages.get(from_key)
    to_id = work_packages.get(to_key)
    if from_id is None or to_id is None:
        return PendingRelationship(from_key, to_key, relation_type)
    return RelationRequest(from_id, to_id, relation_type)


def classify_link(
    issue: SourceIssue,
    link: SourceIssueLink,
    work_packages: Mapping[IssueKey, WorkItemId],
) -> Classification | None:
    """Classify one link of an issue.

    Returns:
        A RelationRequest when both ends are migrated, a PendingRelationship
        when an end is not in the mapping yet, or None when the duplicate
        tie-break leaves the relation to the other issue

    """
    relation_type = relation_type_for(link.direction, link.verb)
    if is_suppressed_duplicate(issue, link, relation_type):
        return None
    return _resolve(issue.key, link.linked_key, relation_type, work_packages)


def classify_epic_link(
    issue: SourceIssue,
    work_packages: Mapping[IssueKey, WorkItemId],
) -> Classification | None:
    """Classify the epic link of an issue as ``partof`` from the issue to its epic."""
    if not issue.epic_key:
        return None
    return _resolve(issue.key, issue.epic_key, RelationType.PARTOF, work_packages)
