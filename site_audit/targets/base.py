"""
Base classes for audit targets.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..core.exceptions import NoSuchPropertyError, PolicyLoadError


class CommandResult(BaseModel):
    """Result of executing a command on a target."""

    command: str
    success: bool
    output: str
    error: Optional[str] = None
    exit_code: Optional[int] = None
    execution_time: float


class Target(ABC):
    """
    Abstract base class for audited environments.

    A target exposes a set of named facts (properties) and can run a single
    shell command line, which is all the sandbox needs.
    """

    def __init__(self, name: str, properties: Optional[Dict[str, Any]] = None):
        self.name = name
        self._properties: Dict[str, Any] = dict(properties or {})

    def get_property_list(self) -> List[str]:
        return list(self._properties)

    def get_property(self, name: str) -> Any:
        if name not in self._properties:
            raise NoSuchPropertyError(name, str(self))
        return self._properties[name]

    def set_property(self, name: str, value: Any) -> "Target":
        self._properties[name] = value
        return self

    def has_property(self, name: str) -> bool:
        return name in self._properties

    @abstractmethod
    def run(self, command: str, timeout: Optional[int] = None) -> CommandResult:
        """Execute one command line on the target."""
        pass

    def close(self) -> None:
        """Release any connection held by the target."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"

    def __repr__(self) -> str:
        return self.__str__()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Target":
        """
        Build a target from an inventory entry.

        Example::

            type: ssh
            name: prod
            host: web1.example.com
            username: deploy
            properties:
              drush.alias: "@site.prod"
        """
        from .local import LocalTarget
        from .ssh import SSHTarget

        data = dict(data)
        target_type = data.pop("type", "local")
        name = data.pop("name", None)
        properties = data.pop("properties", None) or {}

        try:
            if target_type == "local":
                return LocalTarget(name=name or "local", properties=properties, **data)
            if target_type == "ssh":
                if "host" not in data or "username" not in data:
                    raise PolicyLoadError("An ssh target needs 'host' and 'username'")
                return SSHTarget(name=name, properties=properties, **data)
        except TypeError as e:
            raise PolicyLoadError(f"Invalid {target_type} target definition: {e}") from e
        raise PolicyLoadError(f"Unsupported target type: {target_type}")
