"""Process-wide configuration for the relationship migration.

Importing this module loads ``config/config.yaml`` with its ``.env`` and
``J2O_*`` overrides, prepares the ``var/`` directories and configures the
``logger`` every other module logs through.
"""

from pathlib import Path
from typing import Any

from j2o.config_loader import ConfigLoader
from j2o.display import configure_logging
from j2o.type_definitions import DirType, LogLevel, SectionName

_config_loader = ConfigLoader()

jira_config = _config_loader.get_jira_config()
openproject_config = _config_loader.get_openproject_config()
migration_config = _config_loader.get_migration_config()

var_dir = Path(__file__).parent.parent / "var"
var_dirs: dict[DirType, Path] = {name: var_dir / name for name in ("data", "logs", "results", "run")}

for _path in var_dirs.values():
    _path.mkdir(parents=True, exist_ok=True)

LOG_LEVEL: LogLevel = migration_config.get("log_level", "INFO")
log_file = var_dirs["logs"] / "migration.log"
logger = configure_logging(LOG_LEVEL, log_file)

# Settings without which the relation migration cannot connect, as
# (section, accepted keys, environment variable to hint at)
REQUIRED_SETTINGS: list[tuple[SectionName, tuple[str, ...], str]] = [
    ("jira", ("url",), "J2O_JIRA_URL"),
    ("jira", ("api_token",), "J2O_JIRA_API_TOKEN"),
    ("openproject", ("url",), "J2O_OPENPROJECT_URL"),
    ("openproject", ("api_token", "api_key"), "J2O_OPENPROJECT_API_TOKEN"),
]


def get_section(section: SectionName) -> dict[str, Any]:
    """Get the current settings of one section."""
    sections = {"jira": jira_config, "openproject": openproject_config, "migration": migration_config}
    return sections[section]  # type: ignore[return-value]


def get_value(section: SectionName, key: str, default: Any = None) -> Any:
    """Get a single configuration value."""
    return get_section(section).get(key, default)


def get_path(path_type: DirType) -> Path:
    """Get one of the ``var/`` directories."""
    if path_type not in var_dirs:
        msg = f"Invalid path type: {path_type}"
        raise ValueError(msg)
    return var_dirs[path_type]


def validate_config() -> bool:
    """Check that the connection settings are present, logging the missing ones."""
    missing = [
        env_var
        for section, keys, env_var in REQUIRED_SETTINGS
        if not any(get_value(section, key) for key in keys)
    ]
    if missing:
        logger.error("Missing required configuration: %s", ", ".join(missing))
        return False
    return True


def update_from_cli_args(args: Any) -> None:
    """Apply ``--dry-run`` and ``--log-level`` on top of the loaded configuration.

    Args:
        args: Parsed argparse namespace

    """
    if getattr(args, "dry_run", False):
        migration_config["dry_run"] = True
        logger.debug("Setting dry_run=True from CLI arguments")

    log_level = getattr(args, "log_level", None)
    if log_level:
        migration_config["log_level"] = log_level.upper()
        configure_logging(log_level.upper(), log_file)
        logger.debug("Setting log_level=%s from CLI arguments", log_level.upper())
