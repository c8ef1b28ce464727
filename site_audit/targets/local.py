"""
Target that runs commands on the local machine.
"""

import subprocess
import time
from typing import Any, Dict, Optional

from ..core.logging_config import get_logger
from .base import CommandResult, Target

logger = get_logger(__name__)


class LocalTarget(Target):
    """Runs command lines through the local shell."""

    def __init__(
        self,
        name: str = "local",
        properties: Optional[Dict[str, Any]] = None,
        cwd: Optional[str] = None,
    ):
        super().__init__(name, properties)
        self.cwd = cwd

    def run(self, command: str, timeout: Optional[int] = None) -> CommandResult:
        start = time.time()
        try:
            proc = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=self.cwd,
            )
            output = proc.stdout
            error = proc.stderr or None
            exit_code = proc.returncode
        except subprocess.TimeoutExpired:
            output = ""
            error = f"Timeout after {timeout}s"
            exit_code = -1

        result = CommandResult(
            command=command,
            success=exit_code == 0,
            output=output,
            error=error,
            exit_code=exit_code,
            execution_time=time.time() - start,
        )
        logger.debug("Result: success=%s, exit_code=%s", result.success, exit_code)
        return result
