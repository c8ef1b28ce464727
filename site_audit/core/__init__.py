"""
Core module for SiteAudit framework.
"""

from .config import EngineConfig
from .exceptions import (
    AuditValidationError,
    DependencyError,
    NoSuchPropertyError,
    ParameterError,
    PolicyLoadError,
    RemoteDecodeError,
    SandboxCommandError,
    SiteAuditError,
    UnknownCommandError,
)
from .policy import Dependency, Outcome, Policy
from .tokens import TokenBag

__all__ = [
    "EngineConfig",
    "Policy",
    "Dependency",
    "Outcome",
    "TokenBag",
    "SiteAuditError",
    "SandboxCommandError",
    "RemoteDecodeError",
    "UnknownCommandError",
    "DependencyError",
    "AuditValidationError",
    "NoSuchPropertyError",
    "ParameterError",
    "PolicyLoadError",
]
