"""Configuration model and JSON persistence for MirrorBox."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import ConfigError
from .utils import DEFAULT_CHECK_INTERVAL, DEFAULT_JOB_TIMEOUT, DEFAULT_MAX_WORKERS

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MIRRORBOX_CONFIG"

SCHEDULES = ("interval", "manual")

LOG_LEVELS = ("debug", "info", "warning", "error")


def default_config_path() -> Path:
    """Return the config file path.

    Uses ``$MIRRORBOX_CONFIG`` when set, otherwise
    ~/.config/mirrorbox/config.json.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "mirrorbox" / "config.json"


def _get_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


@dataclass
class SyncJobConfig:
    """Definition of one sync job."""

    source_path: str
    """Local directory to sync from"""

    destination_path: str
    """Local directory or smb:// share URL to sync to"""

    name: str = ""
    """Human-readable identifier; generated from the paths when empty"""

    enabled: bool = True
    """Whether this job is registered at all"""

    schedule: str = "interval"
    """Schedule label ("interval" or "manual"); informational only, every
    enabled job runs on each scheduler wave"""

    delete_extra_files: bool = False
    """Delete destination files that no longer exist at the source"""

    def __post_init__(self) -> None:
        if not self.source_path:
            raise ConfigError("source_path cannot be empty")
        if not self.destination_path:
            raise ConfigError("destination_path cannot be empty")
        if self.schedule not in SCHEDULES:
            raise ConfigError(
                f"Invalid schedule {self.schedule!r}; "
                f"expected one of {', '.join(SCHEDULES)}"
            )
        if not self.name:
            self.name = f"Sync {self.source_path} to {self.destination_path}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncJobConfig":
        """Create SyncJobConfig from dictionary.

        Raises:
            ConfigError: If required fields are missing or invalid
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Sync job entry must be an object, got {data!r}")

        missing = [k for k in ("source_path", "destination_path") if k not in data]
        if missing:
            raise ConfigError(f"Missing required fields: {', '.join(missing)}")

        return cls(
            name=str(data.get("name", "")),
            source_path=str(data["source_path"]),
            destination_path=str(data["destination_path"]),
            enabled=_get_bool(data, "enabled", True),
            schedule=str(data.get("schedule", "interval")),
            delete_extra_files=_get_bool(data, "delete_extra_files", False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "source_path": self.source_path,
            "destination_path": self.destination_path,
            "enabled": self.enabled,
            "schedule": self.schedule,
            "delete_extra_files": self.delete_extra_files,
        }


@dataclass
class Config:
    """Application configuration."""

    sync_jobs: list[SyncJobConfig] = field(default_factory=list)
    """Configured sync jobs, in order"""

    check_interval: float = DEFAULT_CHECK_INTERVAL
    """Seconds between scheduled sync waves (must be positive)"""

    log_level: str = "info"
    """Logging verbosity"""

    max_workers: int = DEFAULT_MAX_WORKERS
    """Jobs allowed to execute at once"""

    job_timeout: float = DEFAULT_JOB_TIMEOUT
    """Run budget per job execution, in seconds"""

    def __post_init__(self) -> None:
        if self.check_interval <= 0:
            raise ConfigError("check_interval must be positive")
        if self.max_workers < 1:
            raise ConfigError("max_workers must be at least 1")
        if self.job_timeout <= 0:
            raise ConfigError("job_timeout must be positive")
        if self.log_level.lower() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level {self.log_level!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary.

        Raises:
            ConfigError: If the data does not describe a valid configuration
        """
        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a JSON object")

        jobs = data.get("sync_jobs") or []
        if not isinstance(jobs, list):
            raise ConfigError("sync_jobs must be a list")

        try:
            return cls(
                sync_jobs=[SyncJobConfig.from_dict(j) for j in jobs],
                check_interval=float(
                    data.get("check_interval", DEFAULT_CHECK_INTERVAL)
                ),
                log_level=str(data.get("log_level", "info")),
                max_workers=int(data.get("max_workers", DEFAULT_MAX_WORKERS)),
                job_timeout=float(data.get("job_timeout", DEFAULT_JOB_TIMEOUT)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config value: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "sync_jobs": [j.to_dict() for j in self.sync_jobs],
            "check_interval": self.check_interval,
            "log_level": self.log_level,
            "max_workers": self.max_workers,
            "job_timeout": self.job_timeout,
        }

    def find_job(self, name: str) -> Optional[SyncJobConfig]:
        for job in self.sync_jobs:
            if job.name == name:
                return job
        return None


class ConfigStore:
    """Loads and saves the configuration file."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """Initialize config store.

        Args:
            path: Config file path (defaults to default_config_path())
        """
        self.path = Path(path) if path is not None else default_config_path()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Config:
        """Read configuration from disk.

        Returns:
            The stored Config, or the defaults if the file does not exist

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug("No config at %s, using defaults", self.path)
            return Config()
        except json.JSONDecodeError as e:
            raise ConfigError(f"parse config {self.path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"read config {self.path}: {e}") from e

        config = Config.from_dict(data)
        logger.debug(
            "Loaded %d sync job(s) from %s", len(config.sync_jobs), self.path
        )
        return config

    def save(self, config: Config) -> None:
        """Write configuration to disk, replacing the file atomically.

        Raises:
            ConfigError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".config-", suffix=".json", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(config.to_dict(), f, indent=2)
                    f.write("\n")
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ConfigError(f"write config {self.path}: {e}") from e
        logger.debug("Saved config to %s", self.path)
