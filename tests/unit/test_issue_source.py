from datetime import UTC, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from j2o.relations.issue_source import build_source_issue, build_source_issues, parse_jira_timestamp
from tests.utils.data_generators import generate_issue_link, generate_jira_issue, generate_timestamp

pytestmark = pytest.mark.unit

EPIC_FIELD = "customfield_10014"


def test_parse_jira_timestamp_formats():
    assert parse_jira_timestamp("2024-01-15T10:30:00.000+0100") == datetime(
        2024, 1, 15, 10, 30, tzinfo=timezone(timedelta(hours=1))
    )
    assert parse_jira_timestamp("2024-01-15T10:30:00+00:00") == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
    # Naive values are taken as UTC
    assert parse_jira_timestamp("2024-01-15T10:30:00") == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


def test_parse_jira_timestamp_invalid_values():
    assert parse_jira_timestamp(None) is None
    assert parse_jira_timestamp("") is None
    assert parse_jira_timestamp("yesterday") is None


def test_timestamps_in_different_zones_compare_correctly():
    berlin = parse_jira_timestamp("2024-01-15T10:30:00.000+0100")
    utc = parse_jira_timestamp("2024-01-15T10:00:00.000+0000")
    assert berlin < utc


def test_build_source_issue_reads_links_and_epic():
    raw = generate_jira_issue(
        "PROJ-5",
        created=generate_timestamp(5),
        epic_key="PROJ-1",
        links=[
            generate_issue_link("outward", "blocks", "PROJ-6"),
            generate_issue_link("inward", "is duplicated by", "PROJ-2", linked_created=generate_timestamp(2)),
        ],
    )

    issue = build_source_issue(raw, EPIC_FIELD)

    assert issue.key == "PROJ-5"
    assert issue.created == datetime(2024, 1, 5, 10, tzinfo=UTC)
    assert issue.epic_key == "PROJ-1"
    assert [(link.direction, link.verb, link.linked_key) for link in issue.links] == [
        ("outward", "blocks", "PROJ-6"),
        ("inward", "is duplicated by", "PROJ-2"),
    ]
    assert issue.links[0].linked_created is None
    assert issue.links[1].linked_created == datetime(2024, 1, 2, 10, tzinfo=UTC)


def test_build_source_issue_accepts_library_issue_objects():
    raw = generate_jira_issue("PROJ-5", created=generate_timestamp(5))
    issue = build_source_issue(SimpleNamespace(raw=raw), EPIC_FIELD)
    assert issue.key == "PROJ-5"


def test_epic_link_field_may_hold_an_object():
    raw = generate_jira_issue("PROJ-5")
    raw["fields"][EPIC_FIELD] = {"key": "PROJ-1"}
    assert build_source_issue(raw, EPIC_FIELD).epic_key == "PROJ-1"


def test_links_without_linked_issue_are_ignored():
    raw = generate_jira_issue("PROJ-5", links=[{"id": "1", "type": {"name": "Blocks"}}])
    assert build_source_issue(raw, EPIC_FIELD).links == []


def test_batch_fills_missing_linked_timestamps():
    issues = build_source_issues(
        [
            generate_jira_issue(
                "X-1",
                created=generate_timestamp(1),
                links=[generate_issue_link("outward", "duplicates", "Y-1")],
            ),
            generate_jira_issue(
                "Y-1",
                created=generate_timestamp(2),
                links=[generate_issue_link("inward", "is duplicated by", "X-1")],
            ),
        ],
        EPIC_FIELD,
    )

    assert issues[0].links[0].linked_created == datetime(2024, 1, 2, 10, tzinfo=UTC)
    assert issues[1].links[0].linked_created == datetime(2024, 1, 1, 10, tzinfo=UTC)
