"""Jira to OpenProject relationship migration."""

__version__ = "0.1.0"
