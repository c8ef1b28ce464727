"""
Logging configuration for SiteAudit.
"""

import logging
import sys
from enum import Enum
from typing import Any, Dict, Optional

import yaml

# Symfony-style verbosity levels used by the engine and the CLI
VERBOSITY_NORMAL = 0
VERBOSITY_VERBOSE = 1
VERBOSITY_DEBUG = 2


class LogColors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    GRAY = "\033[90m"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name of each record."""

    LEVEL_COLORS = {
        logging.DEBUG: LogColors.GRAY,
        logging.INFO: LogColors.BLUE,
        logging.WARNING: LogColors.YELLOW,
        logging.ERROR: LogColors.RED,
        logging.CRITICAL: LogColors.RED + LogColors.BOLD,
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno)
        if color:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{LogColors.RESET}"
        return super().format(record)


def setup_logging(verbosity: int = VERBOSITY_NORMAL, use_colors: bool = True) -> None:
    """
    Setup logging configuration based on verbosity level.

    Args:
        verbosity: Verbosity level (0-2)
            0: Warnings and errors only
            1: DEBUG messages from site_audit modules (-v)
            2: DEBUG messages from every library, paramiko included (-vv)
        use_colors: Whether to use colored output on a terminal
    """
    level = logging.DEBUG if verbosity >= VERBOSITY_VERBOSE else logging.WARNING

    fmt = "%(levelname)s: %(message)s"
    if use_colors and sys.stderr.isatty():
        formatter: logging.Formatter = ColoredFormatter(fmt=fmt)
    else:
        formatter = logging.Formatter(fmt=fmt)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if verbosity < VERBOSITY_DEBUG:
        logging.getLogger("paramiko").setLevel(logging.WARNING)
        logging.getLogger("site_audit").setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the site_audit namespace.

    Args:
        name: Module name (usually __name__)
    """
    if not name.startswith("site_audit"):
        if name == "__main__":
            name = "site_audit.cli"
        elif "." not in name:
            name = f"site_audit.{name}"

    return logging.getLogger(name)


class _TokenDumper(yaml.SafeDumper):
    """Safe dumper that renders unknown objects (targets, enums) as strings."""


def _represent_any(dumper, data):
    if isinstance(data, Enum):
        data = data.value
    return dumper.represent_str(str(data))


_TokenDumper.add_multi_representer(object, _represent_any)


def dump_tokens(tokens: Dict[str, Any], logger: Optional[logging.Logger] = None) -> str:
    """Render a token snapshot as YAML and log it at debug level."""
    rendered = yaml.dump(
        tokens,
        Dumper=_TokenDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    if logger is not None:
        logger.debug("Tokens:\n%s", rendered)
    return rendered
