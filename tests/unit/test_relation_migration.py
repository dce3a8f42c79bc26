import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from j2o.clients.exceptions import ClientConnectionError
from j2o.clients.jira_client import JiraClient
from j2o.migrations.relation_migration import RelationMigration
from tests.utils.data_generators import generate_issue_link, generate_jira_issue, generate_timestamp
from tests.utils.fake_store import FakeRelationStore

pytestmark = pytest.mark.unit

CUSTOM_FIELD_ID = 3


class FakeOpenProjectClient(FakeRelationStore):
    """Relation store that also answers the Jira key lookups."""

    def __init__(self, key_map: dict[str, int], elsewhere: dict[str, int] | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.key_map = key_map
        self.elsewhere = elsewhere or {}
        self.lookups: list[set[str]] = []

    def get_work_package_key_map(self, project_id, custom_field_id):
        assert custom_field_id == CUSTOM_FIELD_ID
        return dict(self.key_map)

    def find_work_packages_by_jira_keys(self, jira_keys, custom_field_id):
        self.lookups.append(set(jira_keys))
        return {key: wp_id for key, wp_id in self.elsewhere.items() if key in jira_keys}


@pytest.fixture
def migration_config(monkeypatch: pytest.MonkeyPatch, tmp_var_dirs):
    from j2o import config

    monkeypatch.setattr(config, "jira_config", {"epic_link_field": "customfield_10014"})
    monkeypatch.setattr(config, "openproject_config", {"jira_key_custom_field_id": CUSTOM_FIELD_ID})
    monkeypatch.setattr(config, "migration_config", {"relation_description": "Migrated", "dry_run": False})
    return tmp_var_dirs


def _jira_client(mock_jira: MagicMock, raw_issues: list[dict]) -> JiraClient:
    mock_jira.search_issues.return_value = [SimpleNamespace(raw=raw) for raw in raw_issues]
    return JiraClient(jira=mock_jira)


def _issues() -> list[dict]:
    return [
        generate_jira_issue(
            "PROJ-1",
            created=generate_timestamp(1),
            links=[generate_issue_link("outward", "blocks", "OTHER-2")],
        ),
        generate_jira_issue("PROJ-5", created=generate_timestamp(5), epic_key="PROJ-1"),
    ]


def test_run_creates_relations_and_writes_summary(migration_config, mock_jira):
    op = FakeOpenProjectClient({"PROJ-1": 7, "PROJ-5": 42}, elsewhere={"OTHER-2": 8})
    migration = RelationMigration(
        _jira_client(mock_jira, _issues()),
        op,
        jira_project_key="PROJ",
        openproject_project_id="demo",
    )

    result = migration.run()

    assert result.success
    assert sorted(op.created) == [(7, 8, "blocks"), (42, 7, "partof")]
    assert op.lookups == [{"OTHER-2"}]
    assert result.details["created"] == 2
    assert result.details["deferred"] == 1
    assert result.details["failed"] == 0
    assert op.relations[0]["description"] == "Migrated"

    summary = json.loads((migration_config["results"] / "relation_migration_summary.json").read_text())
    assert summary["created"] == 2
    assert summary["unresolved"] == []


def test_run_reports_unresolved_relationships(migration_config, mock_jira):
    raw = [
        generate_jira_issue(
            "PROJ-9",
            created=generate_timestamp(9),
            links=[generate_issue_link("outward", "relates to", "PROJ-999")],
        ),
    ]
    op = FakeOpenProjectClient({"PROJ-9": 9})
    migration = RelationMigration(_jira_client(mock_jira, raw), op, jira_project_key="PROJ", openproject_project_id="demo")

    result = migration.run()

    assert not result.success
    assert result.failed_count == 1
    assert result.warnings == ["Unresolved relationship: PROJ-9 relates PROJ-999"]

    summary = json.loads((migration_config["results"] / "relation_migration_summary.json").read_text())
    assert summary["unresolved"] == [{"from_key": "PROJ-9", "to_key": "PROJ-999", "relation_type": "relates"}]


def test_persisted_mapping_completes_openproject_mapping(migration_config, mock_jira):
    (migration_config["data"] / "work_package_mapping.json").write_text(
        json.dumps(
            {
                "OTHER-2": {"openproject_id": "8"},
                "42": {"jira_key": "PROJ-5", "openproject_id": 99},
                "PROJ-1": 7,
            },
        ),
    )
    op = FakeOpenProjectClient({"PROJ-5": 42})
    migration = RelationMigration(_jira_client(mock_jira, _issues()), op, jira_project_key="PROJ", openproject_project_id="demo")

    work_packages = migration._load_work_package_map()

    # OpenProject wins over the persisted file for keys known to both
    assert work_packages == {"PROJ-5": 42, "OTHER-2": 8, "PROJ-1": 7}


@pytest.mark.parametrize("content", ["", "{not json"])
def test_unreadable_mapping_file_is_ignored(migration_config, mock_jira, content):
    (migration_config["data"] / "work_package_mapping.json").write_text(content)
    op = FakeOpenProjectClient({"PROJ-5": 42})
    migration = RelationMigration(_jira_client(mock_jira, _issues()), op, jira_project_key="PROJ", openproject_project_id="demo")

    assert migration._load_work_package_map() == {"PROJ-5": 42}


def test_without_custom_field_only_the_persisted_mapping_is_used(migration_config, mock_jira, monkeypatch):
    from j2o import config

    monkeypatch.setattr(config, "openproject_config", {})
    (migration_config["data"] / "work_package_mapping.json").write_text(json.dumps({"PROJ-1": 7, "PROJ-5": 42}))
    op = MagicMock(wraps=FakeOpenProjectClient({}))
    migration = RelationMigration(_jira_client(mock_jira, _issues()), op, jira_project_key="PROJ", openproject_project_id="demo")

    result = migration.run()

    op.get_work_package_key_map.assert_not_called()
    op.find_work_packages_by_jira_keys.assert_not_called()
    assert result.details["created"] == 1
    assert result.details["failed"] == 1


def test_dry_run_creates_nothing(migration_config, mock_jira):
    op = FakeOpenProjectClient({"PROJ-1": 7, "PROJ-5": 42}, elsewhere={"OTHER-2": 8})
    migration = RelationMigration(
        _jira_client(mock_jira, _issues()),
        op,
        jira_project_key="PROJ",
        openproject_project_id="demo",
        dry_run=True,
    )

    result = migration.run()

    assert result.dry_run
    assert result.details["created"] == 2
    assert op.create_calls == 0


def test_issue_keys_restrict_the_fetch(migration_config, mock_jira):
    op = FakeOpenProjectClient({"PROJ-1": 7, "PROJ-5": 42})
    migration = RelationMigration(
        _jira_client(mock_jira, _issues()[1:]),
        op,
        jira_project_key="PROJ",
        openproject_project_id="demo",
        issue_keys=["PROJ-5"],
    )

    result = migration.run()

    assert 'key in ("PROJ-5")' in mock_jira.search_issues.call_args.args[0]
    mock_jira.project.assert_not_called()
    assert op.created == [(42, 7, "partof")]
    assert result.success


def test_jira_failure_fails_the_component(migration_config, mock_jira):
    mock_jira.search_issues.side_effect = RuntimeError("Jira is down")
    op = FakeOpenProjectClient({"PROJ-1": 7})
    migration = RelationMigration(JiraClient(jira=mock_jira), op, jira_project_key="PROJ", openproject_project_id="demo")

    result = migration.run()

    assert not result.success
    assert "Failed to fetch Jira issues" in result.errors[0]
    assert op.create_calls == 0


def test_openproject_failure_fails_the_component(migration_config, mock_jira):
    op = FakeOpenProjectClient({})
    op.get_work_package_key_map = MagicMock(side_effect=ClientConnectionError("refused"))
    migration = RelationMigration(_jira_client(mock_jira, _issues()), op, jira_project_key="PROJ", openproject_project_id="demo")

    result = migration.run()

    assert not result.success
    assert "Failed to fetch OpenProject work packages" in result.message
    mock_jira.search_issues.assert_not_called()
