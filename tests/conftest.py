"""
Shared fixtures for SiteAudit tests.
"""

import os
import sys
from typing import Any, List, Optional, Tuple, Union

import pytest

# Make the package importable when pytest runs from a source checkout
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from site_audit.audit.engine import Audit  # noqa: E402
from site_audit.targets.base import CommandResult, Target  # noqa: E402


class FakeTarget(Target):
    """Target that records commands and answers from canned responses."""

    def __init__(self, properties: Optional[dict] = None):
        super().__init__("fake", properties)
        self.commands: List[str] = []
        self._responses: List[Tuple[str, Any, int, Optional[str]]] = []

    def respond(
        self,
        prefix: str,
        output: Union[str, List[str]] = "",
        exit_code: int = 0,
        error: Optional[str] = None,
    ) -> "FakeTarget":
        """
        Answer commands starting with ``prefix``. Earlier entries win.

        A list of outputs is served in order, the last one repeating.
        """
        self._responses.append((prefix, output, exit_code, error))
        return self

    def run(self, command: str, timeout: Optional[int] = None) -> CommandResult:
        self.commands.append(command)
        for prefix, output, exit_code, error in self._responses:
            if command.startswith(prefix):
                if isinstance(output, list):
                    output = output.pop(0) if len(output) > 1 else output[0]
                return CommandResult(
                    command=command,
                    success=exit_code == 0,
                    output=output,
                    error=error,
                    exit_code=exit_code,
                    execution_time=0.0,
                )
        return CommandResult(
            command=command, success=True, output="", exit_code=0, execution_time=0.0
        )


class NoopAudit(Audit):
    """Audit that only exists to provide a sandbox in tests."""

    def audit(self, sandbox):
        return True


@pytest.fixture
def fake_target():
    return FakeTarget()


@pytest.fixture
def sandbox(fake_target):
    from site_audit.audit.sandbox import Sandbox

    return Sandbox(NoopAudit(fake_target))


@pytest.fixture
def configured_sandbox(fake_target):
    """Factory for sandboxes over ``fake_target`` with a given EngineConfig."""
    from site_audit.audit.sandbox import Sandbox

    def factory(config):
        return Sandbox(NoopAudit(fake_target, config))

    return factory
