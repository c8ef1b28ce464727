"""
Targets: the environments audits run against.
"""

from .base import CommandResult, Target
from .local import LocalTarget
from .ssh import SSHConnectionError, SSHTarget

__all__ = [
    "CommandResult",
    "Target",
    "LocalTarget",
    "SSHTarget",
    "SSHConnectionError",
]
