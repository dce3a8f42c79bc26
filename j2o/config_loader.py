"""Loading of ``config/config.yaml`` with ``.env`` files and ``J2O_*`` overrides.

Precedence, lowest first: the YAML file, then environment variables, which
``.env``, ``.env.local`` and in tests ``.env.test`` and ``.env.test.local``
may populate. Values already exported in the shell win over ``.env``.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from j2o.type_definitions import (
    Config,
    ConfigValue,
    JiraConfig,
    MigrationConfig,
    OpenProjectConfig,
    SectionName,
)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"
SECTIONS: tuple[SectionName, ...] = ("jira", "openproject", "migration")
LOG_LEVELS = ("DEBUG", "INFO", "NOTICE", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
TRUE_VALUES = ("true", "1", "yes", "y")
FALSE_VALUES = ("false", "0", "no", "n", "f")

# (file, override already loaded values, only in test environment)
ENV_FILES = (
    (".env", False, False),
    (".env.local", True, False),
    (".env.test", True, True),
    (".env.test.local", True, True),
)

# The logging configuration depends on this module, so log through a plain logger
config_logger = logging.getLogger("config_loader")


def is_test_environment() -> bool:
    """Tell whether we run under pytest or with ``J2O_TEST_MODE`` set."""
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True
    return os.environ.get("J2O_TEST_MODE", "").lower() in TRUE_VALUES


def convert_env_value(value: str) -> ConfigValue:
    """Convert an environment string into an int, a bool or leave it a string."""
    if value.isdigit():
        return int(value)

    match value.lower():
        case "true" | "yes" | "y":
            return True
        case "false" | "no" | "n":
            return False
        case _:
            return value


class ConfigLoader:
    """Loads configuration settings from a YAML file and environment variables."""

    def __init__(self, config_file_path: Path = DEFAULT_CONFIG_PATH) -> None:
        self._load_env_files()
        self.config: Config = self._load_yaml_config(config_file_path)

        for section in SECTIONS:
            if not self.config.get(section):
                self.config[section] = {}  # type: ignore[literal-required]

        self._apply_environment_overrides(os.environ)

    def _load_env_files(self) -> None:
        testing = is_test_environment()
        for env_file, override, test_only in ENV_FILES:
            if test_only and not testing:
                continue
            if Path(env_file).exists():
                load_dotenv(env_file, override=override)
                config_logger.debug("Loaded environment from %s", env_file)

    def _load_yaml_config(self, config_file_path: Path) -> Config:
        """Load configuration from the YAML file.

        Raises:
            FileNotFoundError: If the configuration file does not exist

        """
        try:
            with config_file_path.open("r") as config_file:
                return yaml.safe_load(config_file) or {}
        except FileNotFoundError:
            config_logger.exception("Config file not found: %s", config_file_path)
            raise

    def _apply_environment_overrides(self, environ: Mapping[str, str]) -> None:
        """Apply ``J2O_<SECTION>_<KEY>`` and the ``migration`` shortcuts."""
        migration = self.config["migration"]

        for env_var, value in environ.items():
            if not env_var.startswith("J2O_"):
                continue

            match env_var.removeprefix("J2O_").split("_", 1):
                case [("JIRA" | "OPENPROJECT") as section, key] if key:
                    self.config[section.lower()][key.lower()] = convert_env_value(value)  # type: ignore[literal-required]
                case ["LOG", "LEVEL"]:
                    if value.upper() in LOG_LEVELS:
                        migration["log_level"] = value.upper()  # type: ignore[typeddict-item]
                    else:
                        config_logger.warning("Ignoring unknown log level %r", value)
                case ["BATCH", "SIZE"]:
                    migration["batch_size"] = int(value)
                case ["REQUEST", "TIMEOUT"]:
                    migration["request_timeout"] = int(value)
                case ["SSL", "VERIFY"]:
                    migration["ssl_verify"] = value.lower() not in FALSE_VALUES
                case ["DRY", "RUN"]:
                    migration["dry_run"] = value.lower() in TRUE_VALUES
                case ["RELATION", "DESCRIPTION"]:
                    migration["relation_description"] = value
                case _:
                    continue

            config_logger.debug("Applied %s", env_var)

    def get_config(self) -> Config:
        return self.config

    def get_jira_config(self) -> JiraConfig:
        return self.config["jira"]

    def get_openproject_config(self) -> OpenProjectConfig:
        return self.config["openproject"]

    def get_migration_config(self) -> MigrationConfig:
        return self.config["migration"]

    def get_value(self, section: SectionName, key: str, default: Any = None) -> Any:
        """Get a configuration value, or ``default`` when the key is not set."""
        return self.config[section].get(key, default)
