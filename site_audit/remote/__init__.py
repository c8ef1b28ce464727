"""
Remote execution: drush command adapter and remote script evaluation.
"""

from .command import DRUSH_COMMANDS, CommandRegistry, CommandSpec, Drush, format_options, hyphenate
from .evaluate import PhpDialect, PythonDialect, RemoteEvaluator, RemoteTask, remote_tempfile
from .output import decode_json

__all__ = [
    "Drush",
    "CommandRegistry",
    "CommandSpec",
    "DRUSH_COMMANDS",
    "hyphenate",
    "format_options",
    "RemoteTask",
    "RemoteEvaluator",
    "PythonDialect",
    "PhpDialect",
    "remote_tempfile",
    "decode_json",
]
