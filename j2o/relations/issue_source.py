"""Conversion of Jira issues into the relationship-relevant SourceIssue shape."""

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from jira import Issue

from j2o.config import logger
from j2o.models.relations import SourceIssue, SourceIssueLink

JIRA_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"


def parse_jira_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse a Jira timestamp such as ``2024-01-15T10:30:00.000+0100``.

    Naive values are taken as UTC. Unparseable values yield None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.strptime(value, JIRA_TIMESTAMP_FORMAT)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(value)
            except ValueError:
                logger.warning("Unparseable Jira timestamp: %r", value)
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _raw(issue: Issue | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(issue, Mapping):
        return issue
    return issue.raw


def _epic_key(value: Any) -> str | None:
    if isinstance(value, Mapping):
        value = value.get("key")
    return str(value) if value else None


def _link_from_raw(
    raw_link: Mapping[str, Any],
    created_by_key: Mapping[str, datetime | None],
) -> SourceIssueLink | None:
    link_type = raw_link.get("type") or {}
    if raw_link.get("outwardIssue"):
        direction = "outward"
        linked = raw_link["outwardIssue"]
        verb = link_type.get("outward", "")
    elif raw_link.get("inwardIssue"):
        direction = "inward"
        linked = raw_link["inwardIssue"]
        verb = link_type.get("inward", "")
    else:
        return None

    linked_key = linked.get("key")
    if not linked_key:
        return None

    # Linked issue payloads usually omit "created"; fall back to the batch
    linked_created = parse_jira_timestamp((linked.get("fields") or {}).get("created"))
    if linked_created is None:
        linked_created = created_by_key.get(linked_key)

    return SourceIssueLink(
        direction=direction,
        verb=verb or "",
        linked_key=str(linked_key),
        linked_created=linked_created,
    )


def build_source_issue(
    issue: Issue | Mapping[str, Any],
    epic_link_field: str,
    created_by_key: Mapping[str, datetime | None] | None = None,
) -> SourceIssue:
    """Convert one Jira issue (library object or raw JSON) into a SourceIssue."""
    raw = _raw(issue)
    fields = raw.get("fields") or {}
    lookup = created_by_key or {}

    links = []
    for raw_link in fields.get("issuelinks") or []:
        link = _link_from_raw(raw_link, lookup)
        if link is None:
            logger.debug("Ignoring link without linked issue on %s: %s", raw.get("key"), raw_link)
            continue
        links.append(link)

    return SourceIssue(
        key=str(raw["key"]),
        created=parse_jira_timestamp(fields.get("created")),
        epic_key=_epic_key(fields.get(epic_link_field)),
        links=links,
    )


def build_source_issues(
    issues: Iterable[Issue | Mapping[str, Any]],
    epic_link_field: str,
) -> list[SourceIssue]:
    """Convert a batch of Jira issues, sharing creation timestamps across the batch."""
    raws = [_raw(issue) for issue in issues]
    created_by_key = {
        str(raw["key"]): parse_jira_timestamp((raw.get("fields") or {}).get("created"))
        for raw in raws
    }
    return [build_source_issue(raw, epic_link_field, created_by_key) for raw in raws]
