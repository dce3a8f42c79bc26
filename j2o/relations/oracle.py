"""Existence check for relations between two work packages.

OpenProject allows at most one relation of any type between two work
packages, whatever the direction, and a parent/child link excludes every
other relation. Parent/child links are not part of the relations index, so
they are read from the work package itself.
"""

from j2o.clients.exceptions import ClientError
from j2o.clients.openproject_client import href_id
from j2o.config import logger
from j2o.models.relations import RelationEvidence
from j2o.relations.protocols import RelationStore
from j2o.type_definitions import OpenProjectData, RelationFilter, WorkItemId


def pair_filters(first_id: WorkItemId, second_id: WorkItemId) -> list[RelationFilter]:
    """Build relation filters matching any relation between the two ids.

    The server ANDs top-level filter objects and expects a single key per
    object, so both ids go into a "from" filter and a "to" filter. This also
    matches self relations, which OpenProject does not allow.
    """
    id_filter = {"operator": "=", "values": [str(first_id), str(second_id)]}
    return [{"from": id_filter}, {"to": id_filter}]


def _linked_ids(work_package: OpenProjectData) -> tuple[str | None, set[str]]:
    links = work_package.get("_links") or {}
    parent_id = href_id((links.get("parent") or {}).get("href"))
    children = {href_id(child.get("href")) for child in links.get("children") or []}
    children.discard(None)
    return parent_id, children  # type: ignore[return-value]


class RelationshipOracle:
    """Answers whether any relation already exists between two work packages.

    The answer does not depend on argument order.
    """

    def __init__(self, store: RelationStore) -> None:
        self.store = store

    def exists(self, from_id: WorkItemId, to_id: WorkItemId) -> bool:
        """Return True when any relation, parent/child included, links the two ids."""
        return self.evidence(from_id, to_id) is not RelationEvidence.NONE

    def evidence(self, from_id: WorkItemId, to_id: WorkItemId) -> RelationEvidence:
        """Return the strongest evidence found, checking parent/child first."""
        if self._has_parent_child(from_id, to_id):
            logger.debug("Found existing parent relationship between %s and %s", from_id, to_id)
            return RelationEvidence.PARENT_CHILD
        if self._has_relation(from_id, to_id):
            return RelationEvidence.RELATION
        return RelationEvidence.NONE

    def _has_parent_child(self, from_id: WorkItemId, to_id: WorkItemId) -> bool:
        # One side is enough: if to_id is neither parent nor child of from_id,
        # from_id is neither parent nor child of to_id either
        try:
            work_package = self.store.get_work_package(from_id)
        except ClientError as e:
            logger.error("Error checking parent relationship of %s: %s", from_id, e)
            return False

        parent_id, children = _linked_ids(work_package)
        target = str(to_id)
        return parent_id == target or target in children

    def _has_relation(self, from_id: WorkItemId, to_id: WorkItemId) -> bool:
        try:
            total, elements = self.store.query_relations(pair_filters(from_id, to_id))
        except ClientError as e:
            logger.error("Error checking existing relationship between %s and %s: %s", from_id, to_id, e)
            return False

        if total > 0 and elements:
            relation = elements[0]
            links = relation.get("_links") or {}
            logger.debug(
                "Found existing relation %s: %s from %s to %s",
                relation.get("id"),
                relation.get("type"),
                href_id((links.get("from") or {}).get("href")),
                href_id((links.get("to") or {}).get("href")),
            )
        return total > 0
