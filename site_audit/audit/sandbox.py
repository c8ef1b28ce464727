"""
The sandbox: the only way audit logic runs commands on a target.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..core.config import EngineConfig
from ..core.exceptions import SandboxCommandError
from ..targets.base import Target

if TYPE_CHECKING:
    from ..remote.command import Drush
    from ..remote.evaluate import RemoteEvaluator
    from .engine import Audit


class Sandbox:
    """Command execution bound to one audit and its target."""

    def __init__(self, audit: "Audit"):
        self.audit = audit
        self._drush: Optional["Drush"] = None

    @property
    def target(self) -> Target:
        return self.audit.target

    @property
    def logger(self) -> logging.Logger:
        return self.audit.logger

    @property
    def config(self) -> EngineConfig:
        return self.audit.config

    def exec(self, template: str, substitutions: Optional[Dict[str, Any]] = None) -> str:
        """
        Run a command on the target and return its standard output.

        ``@name`` placeholders in the template are replaced verbatim by the
        matching substitution. Nothing is escaped: callers own shell safety.

        Raises:
            SandboxCommandError: the command exited with a non-zero status.
        """
        command = substitute(template, substitutions or {})
        self.logger.debug("Executing command: %s", command)

        result = self.target.run(command, timeout=self.config.command_timeout)
        if not result.success:
            raise SandboxCommandError(
                command,
                exit_code=result.exit_code,
                output=result.output,
                error=result.error,
            )
        return result.output

    def drush(self) -> "Drush":
        """The drush adapter for this sandbox. Options persist until a call."""
        from ..remote.command import Drush

        if self._drush is None:
            self._drush = Drush(self, binary=self.config.drush_binary)
        return self._drush

    def python(self) -> "RemoteEvaluator":
        """Remote evaluator running Python on the target."""
        from ..remote.evaluate import PythonDialect, RemoteEvaluator

        return RemoteEvaluator(self, PythonDialect(self.config.python_interpreter))


def substitute(template: str, substitutions: Dict[str, Any]) -> str:
    """Replace placeholders, longest first so ``@arg`` cannot clobber ``@args``."""
    for key in sorted(substitutions, key=len, reverse=True):
        template = template.replace(key, str(substitutions[key]))
    return template
