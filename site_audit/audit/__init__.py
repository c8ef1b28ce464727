"""
Audit module: check logic base classes and the execution engine.
"""

from .engine import Audit, RemediableAudit
from .parameters import ParameterDefinition, ParameterMode, ParameterSet
from .response import AuditResponse
from .sandbox import Sandbox

__all__ = [
    "Audit",
    "RemediableAudit",
    "AuditResponse",
    "Sandbox",
    "ParameterMode",
    "ParameterDefinition",
    "ParameterSet",
]
