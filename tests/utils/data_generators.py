"""Functions to generate Jira and OpenProject payloads for relationship tests."""

from typing import Any


def generate_timestamp(day: int, hour: int = 10) -> str:
    """Generate a Jira timestamp in January 2024.

    Args:
        day: Day of the month
        hour: Hour of the day

    Returns:
        str: Timestamp in Jira's format, e.g. ``2024-01-05T10:00:00.000+0000``

    """
    return f"2024-01-{day:02d}T{hour:02d}:00:00.000+0000"


def generate_issue_link(
    direction: str,
    verb: str,
    linked_key: str,
    type_name: str | None = None,
    linked_created: str | None = None,
) -> dict[str, Any]:
    """Generate one entry of an issue's ``issuelinks`` field.

    Args:
        direction: "outward" or "inward"
        verb: Link verb as seen from the issue carrying the link
        linked_key: Key of the issue on the other end
        type_name: Link type name (defaults to the verb)
        linked_created: Creation timestamp of the linked issue, if Jira sent one

    """
    linked: dict[str, Any] = {"key": linked_key, "fields": {"summary": f"Issue {linked_key}"}}
    if linked_created:
        linked["fields"]["created"] = linked_created

    link_type = {"name": type_name or verb.title(), "inward": "", "outward": ""}
    link_type[direction] = verb
    return {"id": f"link-{linked_key}", "type": link_type, f"{direction}Issue": linked}


def generate_jira_issue(
    key: str,
    created: str | None = None,
    links: list[dict[str, Any]] | None = None,
    epic_key: str | None = None,
    epic_link_field: str = "customfield_10014",
) -> dict[str, Any]:
    """Generate raw Jira issue JSON carrying the fields the relation migration reads."""
    fields: dict[str, Any] = {
        "summary": f"Issue {key}",
        "issuetype": {"name": "Task"},
        "issuelinks": links or [],
    }
    if created:
        fields["created"] = created
    if epic_key:
        fields[epic_link_field] = epic_key
    return {"key": key, "fields": fields}


def generate_op_work_package(
    wp_id: int,
    parent_id: int | None = None,
    children: list[int] | None = None,
    jira_key: str | None = None,
    custom_field_id: int = 1,
) -> dict[str, Any]:
    """Generate an OpenProject work package resource with its parent and children links."""
    links: dict[str, Any] = {"self": {"href": f"/api/v3/work_packages/{wp_id}"}}
    if parent_id is not None:
        links["parent"] = {"href": f"/api/v3/work_packages/{parent_id}"}
    links["children"] = [{"href": f"/api/v3/work_packages/{child}"} for child in children or []]

    work_package: dict[str, Any] = {"id": wp_id, "_type": "WorkPackage", "_links": links}
    if jira_key:
        work_package[f"customField{custom_field_id}"] = jira_key
    return work_package
