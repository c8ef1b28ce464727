"""
SiteAudit - policy based health and compliance audits for remote sites.

Policies declare parameters and dependencies; audits implement the check
logic and run commands on a target through a sandbox, either as drush
subcommands or as scripts evaluated remotely.
"""

__version__ = "0.1.0"

from .audit.engine import Audit, RemediableAudit
from .audit.response import AuditResponse
from .audit.sandbox import Sandbox
from .core.config import EngineConfig
from .core.policy import Dependency, Outcome, Policy
from .remote.command import Drush
from .remote.evaluate import RemoteTask
from .targets.local import LocalTarget
from .targets.ssh import SSHTarget

__all__ = [
    "Audit",
    "RemediableAudit",
    "AuditResponse",
    "Sandbox",
    "EngineConfig",
    "Policy",
    "Dependency",
    "Outcome",
    "Drush",
    "RemoteTask",
    "LocalTarget",
    "SSHTarget",
]
