"""Relationship reconciliation engine.

Maps Jira issue links and epic links onto OpenProject relations, skipping
pairs that already have any relation and retrying forward references once.
"""

from j2o.relations.classifier import classify_epic_link, classify_link, relation_type_for
from j2o.relations.creator import RelationshipCreator
from j2o.relations.oracle import RelationshipOracle
from j2o.relations.reconciler import RelationshipReconciler, reconcile_relationships
from j2o.relations.retry_queue import DeferredRetryQueue

__all__ = [
    "DeferredRetryQueue",
    "RelationshipCreator",
    "RelationshipOracle",
    "RelationshipReconciler",
    "classify_epic_link",
    "classify_link",
    "reconcile_relationships",
    "relation_type_for",
]
