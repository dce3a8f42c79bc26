"""Migration components."""

from j2o.migrations.base_migration import BaseMigration
from j2o.migrations.relation_migration import RelationMigration

__all__ = ["BaseMigration", "RelationMigration"]
