"""Check-then-create of a single OpenProject relation."""

from j2o.clients.exceptions import ClientError
from j2o.config import logger
from j2o.models.relations import CreationOutcome, RelationRequest, RelationType
from j2o.relations.oracle import RelationshipOracle
from j2o.relations.protocols import RelationStore
from j2o.type_definitions import WorkItemId

DEFAULT_RELATION_DESCRIPTION = "Created by Jira migration"


class RelationshipCreator:
    """Creates a relation unless any relation already links the two work packages.

    Failures are logged and reported as CreationOutcome.FAILED, never raised.
    Not safe for concurrent use on the same pair: the existence check and the
    creation are two separate requests.
    """

    def __init__(
        self,
        store: RelationStore,
        oracle: RelationshipOracle | None = None,
        *,
        description: str | None = DEFAULT_RELATION_DESCRIPTION,
        lag: int | None = 0,
        dry_run: bool = False,
    ) -> None:
        self.store = store
        self.oracle = oracle or RelationshipOracle(store)
        self.description = description
        self.lag = lag
        self.dry_run = dry_run
        # Pairs a dry run reported as created; stands in for the store
        self.planned_pairs: set[frozenset[WorkItemId]] = set()

    def create(
        self,
        from_id: WorkItemId,
        to_id: WorkItemId,
        relation_type: RelationType,
    ) -> CreationOutcome:
        """Create ``from_id relation_type to_id`` if the pair has no relation yet."""
        logger.debug("Attempting to create relationship: %s %s %s", from_id, relation_type, to_id)

        if self.oracle.exists(from_id, to_id):
            logger.info("Relationship already exists between %s and %s, skipping %s", from_id, to_id, relation_type)
            return CreationOutcome.SKIPPED

        if self.dry_run:
            pair = frozenset((from_id, to_id))
            if pair in self.planned_pairs:
                logger.info(
                    "[DRY RUN] Relationship between %s and %s already planned, skipping %s",
                    from_id,
                    to_id,
                    relation_type,
                )
                return CreationOutcome.SKIPPED
            self.planned_pairs.add(pair)
            logger.info("[DRY RUN] Would create %s relationship: %s -> %s", relation_type, from_id, to_id)
            return CreationOutcome.CREATED

        try:
            relation = self.store.create_relation(
                from_id,
                to_id,
                str(relation_type),
                description=self.description,
                lag=self.lag,
            )
        except ClientError as e:
            logger.error("Error creating relationship: %s -> %s %s: %s", from_id, to_id, relation_type, e)
            return CreationOutcome.FAILED

        logger.success(
            "Created %s relationship: %s -> %s (relation %s)",
            relation_type,
            from_id,
            to_id,
            relation.get("id") if isinstance(relation, dict) else "?",
        )
        return CreationOutcome.CREATED

    def create_request(self, request: RelationRequest) -> CreationOutcome:
        """Create the relation described by a RelationRequest."""
        return self.create(request.from_id, request.to_id, request.relation_type)
