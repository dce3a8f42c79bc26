"""Protocol definitions for the relation store consumed by the reconciliation engine."""

from typing import Protocol

from j2o.type_definitions import OpenProjectData, RelationFilter, WorkItemId


class RelationStore(Protocol):
    """Work package relation endpoints of the target system.

    Implemented by OpenProjectClient; tests provide in-memory stores.
    """

    def get_work_package(self, work_package_id: WorkItemId) -> OpenProjectData:
        """Return the work package resource including ``_links.parent`` and ``_links.children``."""
        ...

    def query_relations(self, filters: list[RelationFilter]) -> tuple[int, list[OpenProjectData]]:
        """Return the total count and the relations matching all filters."""
        ...

    def create_relation(
        self,
        from_id: WorkItemId,
        to_id: WorkItemId,
        relation_type: str,
        description: str | None = None,
        lag: int | None = None,
    ) -> OpenProjectData:
        """Create a relation and return it; raise a ClientError on rejection."""
        ...
