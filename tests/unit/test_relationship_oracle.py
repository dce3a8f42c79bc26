from unittest.mock import MagicMock

import pytest

from j2o.clients.exceptions import ApiError
from j2o.models import RelationEvidence
from j2o.relations.oracle import RelationshipOracle, pair_filters
from tests.utils.fake_store import FakeRelationStore

pytestmark = pytest.mark.unit


def test_pair_filters_shape():
    assert pair_filters(3, 8) == [
        {"from": {"operator": "=", "values": ["3", "8"]}},
        {"to": {"operator": "=", "values": ["3", "8"]}},
    ]


def test_no_relation_found():
    store = FakeRelationStore(relations=[(1, 3, "relates")])
    oracle = RelationshipOracle(store)

    assert oracle.evidence(1, 2) is RelationEvidence.NONE
    assert not oracle.exists(1, 2)


@pytest.mark.parametrize(("first", "second"), [(1, 2), (2, 1)])
def test_existing_relation_is_found_in_either_order(first, second):
    store = FakeRelationStore(relations=[(1, 2, "blocks")])
    oracle = RelationshipOracle(store)

    assert oracle.evidence(first, second) is RelationEvidence.RELATION
    assert oracle.exists(first, second)


@pytest.mark.parametrize(("first", "second"), [(10, 20), (20, 10)])
def test_parent_child_is_found_in_either_order(first, second):
    store = FakeRelationStore(parents={20: 10})
    oracle = RelationshipOracle(store)

    assert oracle.evidence(first, second) is RelationEvidence.PARENT_CHILD


def test_parent_child_short_circuits_relation_query():
    store = FakeRelationStore(parents={20: 10})
    RelationshipOracle(store).exists(10, 20)

    assert store.get_calls == 1
    assert store.query_calls == 0


def test_relation_on_a_third_work_package_does_not_count():
    store = FakeRelationStore(relations=[(1, 1_000, "relates"), (1_000, 2, "relates")])
    assert not RelationshipOracle(store).exists(1, 2)


def test_lookup_errors_are_treated_as_not_found():
    store = FakeRelationStore(relations=[(1, 2, "relates")], fail_lookups=True)
    oracle = RelationshipOracle(store)

    assert oracle.evidence(1, 2) is RelationEvidence.NONE
    assert store.get_calls == 1
    assert store.query_calls == 1


def test_relation_query_uses_both_ids():
    store = MagicMock()
    store.get_work_package.return_value = {"id": 4, "_links": {"parent": None, "children": []}}
    store.query_relations.return_value = (0, [])

    assert not RelationshipOracle(store).exists(4, 9)

    store.get_work_package.assert_called_once_with(4)
    store.query_relations.assert_called_once_with(pair_filters(4, 9))


def test_relation_query_error_is_logged_not_raised():
    store = MagicMock()
    store.get_work_package.return_value = {"id": 4, "_links": {}}
    store.query_relations.side_effect = ApiError("HTTP Error 500", status_code=500)

    assert not RelationshipOracle(store).exists(4, 9)
