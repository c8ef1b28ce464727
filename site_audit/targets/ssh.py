"""
Target reached over SSH.
"""

import os
import time
from typing import Any, Dict, Optional

import paramiko

from ..core.exceptions import SiteAuditError
from ..core.logging_config import get_logger
from .base import CommandResult, Target

logger = get_logger(__name__)


class SSHConnectionError(SiteAuditError):
    """The SSH session to the target could not be established."""


class SSHTarget(Target):
    """Remote host whose commands run in an SSH exec channel."""

    def __init__(
        self,
        host: str,
        username: str,
        name: Optional[str] = None,
        password: Optional[str] = None,
        private_key: Optional[str] = None,
        port: int = 22,
        timeout: int = 30,
        properties: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(name or host, properties)
        self.host = host
        self.username = username
        self.password = password
        self.private_key = private_key
        self.port = port
        self.timeout = timeout
        self._ssh_client: Optional[paramiko.SSHClient] = None

    @property
    def is_connected(self) -> bool:
        return self._ssh_client is not None

    def connect(self) -> None:
        """Open the SSH session. Key, then password, then agent/default keys."""
        if self._ssh_client is not None:
            return

        connect_kwargs: Dict[str, Any] = {
            "hostname": self.host,
            "port": self.port,
            "username": self.username,
            "timeout": self.timeout,
            "look_for_keys": True,
            "allow_agent": True,
        }

        if self.private_key:
            connect_kwargs["key_filename"] = os.path.expanduser(self.private_key)
            connect_kwargs["look_for_keys"] = False
            logger.debug("Using private key %s for %s", self.private_key, self.host)
        elif self.password:
            connect_kwargs["password"] = self.password
            connect_kwargs["look_for_keys"] = False
            connect_kwargs["allow_agent"] = False
            logger.debug("Using provided password for %s", self.host)
        else:
            logger.debug("Trying default SSH authentication (agent + keys in ~/.ssh/)")

        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(**connect_kwargs)
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise SSHConnectionError(
                f"Failed to connect to {self.username}@{self.host}:{self.port}: {e}"
            ) from e

        self._ssh_client = client
        logger.info("Connected to %s", self.host)

    def close(self) -> None:
        if self._ssh_client:
            self._ssh_client.close()
            self._ssh_client = None

    def run(self, command: str, timeout: Optional[int] = None) -> CommandResult:
        self.connect()
        start_time = time.time()

        stdin, stdout, stderr = self._ssh_client.exec_command(command, timeout=timeout)
        stdout_data = stdout.read()
        stderr_data = stderr.read()
        exit_code = stdout.channel.recv_exit_status()

        output = stdout_data.decode("utf-8", errors="replace")
        error = stderr_data.decode("utf-8", errors="replace") if stderr_data else None

        result = CommandResult(
            command=command,
            success=exit_code == 0,
            output=output,
            error=error,
            exit_code=exit_code,
            execution_time=time.time() - start_time,
        )
        logger.debug("Result: success=%s, exit_code=%s", result.success, exit_code)
        if result.error:
            logger.debug("Error: %s", result.error)
        return result

    def __str__(self) -> str:
        return f"SSHTarget({self.username}@{self.host})"
