"""Shared plumbing for migration components: clients, var directories and JSON files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from j2o import config
from j2o.clients.jira_client import JiraClient
from j2o.clients.openproject_client import OpenProjectClient
from j2o.models.component_results import ComponentResult


class BaseMigration:
    """Base class for migration components.

    Subclasses implement ``run``. Inputs are read from ``var/data`` and
    outputs written to ``var/results``.
    """

    def __init__(
        self,
        jira_client: JiraClient | None = None,
        op_client: OpenProjectClient | None = None,
    ) -> None:
        """Use the given clients, or create them from the configuration.

        Args:
            jira_client: Connected Jira client
            op_client: OpenProject client

        """
        self.jira_client = jira_client or JiraClient()
        self.op_client = op_client or OpenProjectClient()

        self.data_dir: Path = config.get_path("data")
        self.results_dir: Path = config.get_path("results")
        self.logger = config.logger

    def run(self) -> ComponentResult:
        raise NotImplementedError

    def _load_from_json(self, filename: Path | str, default: Any = None) -> Any:
        """Read a JSON file from the data directory.

        A missing, empty or unparsable file yields ``default``; only the
        unparsable case is logged as an error.
        """
        path = self.data_dir / filename
        if not path.is_file():
            self.logger.debug("No %s in %s", path.name, self.data_dir)
            return default

        content = path.read_text(encoding="utf-8")
        if not content.strip():
            self.logger.debug("%s is empty", path)
            return default

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            self.logger.error("Cannot parse %s: %s", path, e)
            return default

    def _save_to_json(self, data: Any, filename: Path | str) -> Path:
        """Write ``data`` as indented JSON into the results directory and return the path."""
        path = self.results_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
        self.logger.debug("Saved %s", path)
        return path
