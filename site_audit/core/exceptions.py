"""
Exception hierarchy for SiteAudit.

Only ``Audit.execute`` catches broadly; everything below it lets these
propagate so the engine can classify them into an outcome.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .policy import Dependency


class SiteAuditError(Exception):
    """Base class for all SiteAudit errors."""


class SandboxCommandError(SiteAuditError):
    """A command run through the sandbox exited unsuccessfully."""

    def __init__(
        self,
        command: str,
        exit_code: Optional[int] = None,
        output: str = "",
        error: Optional[str] = None,
    ):
        self.command = command
        self.exit_code = exit_code
        self.output = output
        self.error = error
        message = f"Command failed with exit code {exit_code}: {command}"
        if error:
            message += f"\n{error.strip()}"
        super().__init__(message)


class RemoteDecodeError(SiteAuditError):
    """Output expected to be a JSON document could not be decoded."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(message)


class UnknownCommandError(SiteAuditError, ValueError):
    """A command identifier is not present in the command registry."""


class DependencyError(SiteAuditError):
    """A policy dependency was not met."""

    def __init__(self, dependency: "Dependency", message: Optional[str] = None):
        self.dependency = dependency
        super().__init__(message or f"Policy dependency not met: {dependency}")


class AuditValidationError(SiteAuditError):
    """The audit does not apply to the target it was run against."""


class NoSuchPropertyError(SiteAuditError, KeyError):
    """A target does not expose the requested property."""

    def __init__(self, name: str, target_name: str = "target"):
        self.name = name
        super().__init__(f"{target_name} has no property '{name}'")

    def __str__(self) -> str:
        return self.args[0]


class ParameterError(SiteAuditError, ValueError):
    """A policy supplied parameters that the audit cannot bind."""

    def __init__(self, message: str, parameter: Optional[str] = None):
        self.parameter = parameter
        super().__init__(message)


class PolicyLoadError(SiteAuditError):
    """A policy or target definition could not be loaded."""
