"""
Engine configuration for SiteAudit.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .logging_config import VERBOSITY_NORMAL, get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".site-audit" / "config.yaml"


class EngineConfig(BaseModel):
    """Settings handed to every audit at construction time."""

    verbosity: int = Field(default=VERBOSITY_NORMAL, ge=0)
    echo_remote_script: bool = False
    drush_binary: str = "drush"
    python_interpreter: str = "python3"
    command_timeout: Optional[int] = None  # seconds, None waits forever

    @property
    def include_traces(self) -> bool:
        """Whether unclassified errors carry a full traceback."""
        return self.verbosity > VERBOSITY_NORMAL

    @classmethod
    def load_from_file(cls, config_path: Optional[Path] = None) -> "EngineConfig":
        """Load the ``engine`` section of a YAML config file."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if not config_path.exists():
            logger.info(
                "Config file not found at %s, using defaults and environment variables",
                config_path,
            )
            return cls.load_from_env()

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**(data.get("engine") or {}))
        except Exception as e:
            logger.warning("Failed to load config from %s: %s", config_path, e)
            return cls.load_from_env()

    @classmethod
    def load_from_env(cls) -> "EngineConfig":
        """Load configuration from SITE_AUDIT_* environment variables."""
        values = {}

        verbosity = os.getenv("SITE_AUDIT_VERBOSITY")
        if verbosity:
            try:
                values["verbosity"] = int(verbosity)
            except ValueError:
                logger.warning("Invalid SITE_AUDIT_VERBOSITY: %s, ignoring", verbosity)

        echo = os.getenv("SITE_AUDIT_ECHO_SCRIPT")
        if echo:
            values["echo_remote_script"] = echo.lower() in ("1", "true", "yes", "on")

        if os.getenv("SITE_AUDIT_DRUSH"):
            values["drush_binary"] = os.getenv("SITE_AUDIT_DRUSH")
        if os.getenv("SITE_AUDIT_PYTHON"):
            values["python_interpreter"] = os.getenv("SITE_AUDIT_PYTHON")

        timeout = os.getenv("SITE_AUDIT_TIMEOUT")
        if timeout:
            try:
                values["command_timeout"] = int(timeout)
            except ValueError:
                logger.warning("Invalid SITE_AUDIT_TIMEOUT: %s, ignoring", timeout)

        return cls(**values)

    def save_to_file(self, config_path: Optional[Path] = None) -> None:
        """Write the ``engine`` section, keeping other sections intact."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        config_path.parent.mkdir(parents=True, exist_ok=True)

        existing_data = {}
        if config_path.exists():
            with open(config_path) as f:
                existing_data = yaml.safe_load(f) or {}

        existing_data["engine"] = self.model_dump(exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(existing_data, f, default_flow_style=False, sort_keys=False)

        logger.info("Configuration saved to %s", config_path)
