"""
Policy definitions: outcomes, dependencies and the policy record itself.
"""

import importlib
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import DependencyError, PolicyLoadError
from .logging_config import get_logger

if TYPE_CHECKING:
    from ..audit.engine import Audit

logger = get_logger(__name__)


class Outcome(str, Enum):
    """The closed set of results an audit execution can have."""

    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"
    NOT_APPLICABLE = "not_applicable"
    WARNING = "warning"

    @classmethod
    def _missing_(cls, value):
        # Short forms accepted in policy files (on_fail: fail|omit|...)
        aliases = {
            "pass": cls.SUCCESS,
            "fail": cls.FAILURE,
            "omit": cls.NOT_APPLICABLE,
            "na": cls.NOT_APPLICABLE,
            "not-applicable": cls.NOT_APPLICABLE,
            "warn": cls.WARNING,
        }
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
            return aliases.get(lowered)
        return None

    @classmethod
    def coerce(cls, value: Any) -> "Outcome":
        """Turn a value returned by check logic into an Outcome."""
        if isinstance(value, Outcome):
            return value
        if isinstance(value, bool):
            return cls.SUCCESS if value else cls.FAILURE
        raise ValueError(f"Unknown audit outcome: {value!r}")


class Dependency(BaseModel):
    """
    A precondition of a policy.

    Either ``expression`` (evaluated against the audit context) or ``check``
    (a callable receiving the audit) decides whether the dependency is met.
    When it is not, the parent policy takes the ``on_fail`` outcome.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    expression: Optional[str] = None
    check: Optional[Callable[[Any], Any]] = Field(default=None, exclude=True)
    on_fail: Outcome = Outcome.FAILURE
    description: Optional[str] = None

    @model_validator(mode="after")
    def _one_condition(self) -> "Dependency":
        if (self.expression is None) == (self.check is None):
            raise ValueError("A dependency needs exactly one of expression or check")
        return self

    def get_fail_behaviour(self) -> Outcome:
        return self.on_fail

    def execute(self, audit: "Audit") -> bool:
        """Return True when met, raise DependencyError otherwise."""
        try:
            if self.check is not None:
                result = self.check(audit)
            else:
                result = audit.evaluate(self.expression)
        except Exception as e:
            logger.warning("Dependency '%s' could not be evaluated: %s", self, e)
            raise DependencyError(
                self, f"Policy dependency could not be evaluated: {self}: {e}"
            ) from e

        # Another check may be referenced directly; use its outcome.
        result = getattr(result, "outcome", result)
        if isinstance(result, Outcome):
            met = result is Outcome.SUCCESS
        else:
            met = bool(result)

        if not met:
            raise DependencyError(self)
        return True

    def __str__(self) -> str:
        if self.description:
            return self.description
        if self.expression is not None:
            return self.expression
        return getattr(self.check, "__name__", repr(self.check))


class Policy(BaseModel):
    """Declarative definition of one check and its inputs."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    title: Optional[str] = None
    description: Optional[str] = None
    audit_class: Optional[str] = Field(default=None, alias="class")
    parameters: Dict[str, Any] = {}
    depends: List[Dependency] = []
    tags: List[str] = []

    @field_validator("depends", mode="before")
    @classmethod
    def _normalise_depends(cls, value):
        # A bare string is shorthand for an expression with default on_fail.
        if value is None:
            return []
        return [{"expression": item} if isinstance(item, str) else item for item in value]

    def get_depends(self) -> List[Dependency]:
        return list(self.depends)

    def get_all_parameters(self) -> Dict[str, Any]:
        return dict(self.parameters)

    def with_parameters(self, overrides: Dict[str, Any]) -> "Policy":
        """Copy of this policy with some parameters replaced."""
        parameters = self.get_all_parameters()
        parameters.update(overrides)
        return self.model_copy(update={"parameters": parameters})

    def load_audit_class(self) -> Type["Audit"]:
        """Import the audit class named by ``class`` (``module:Class``)."""
        from ..audit.engine import Audit

        if not self.audit_class:
            raise PolicyLoadError(f"Policy '{self.name}' does not name an audit class")

        if ":" in self.audit_class:
            module_name, _, class_name = self.audit_class.partition(":")
        else:
            module_name, _, class_name = self.audit_class.rpartition(".")

        try:
            module = importlib.import_module(module_name)
            audit_class = getattr(module, class_name)
        except (ImportError, AttributeError, ValueError) as e:
            raise PolicyLoadError(
                f"Cannot load audit class '{self.audit_class}' for policy '{self.name}': {e}"
            ) from e

        if not (isinstance(audit_class, type) and issubclass(audit_class, Audit)):
            raise PolicyLoadError(f"'{self.audit_class}' is not an Audit subclass")
        return audit_class

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Policy":
        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise PolicyLoadError(f"Invalid policy definition: {e}") from e

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "Policy":
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise PolicyLoadError(f"Invalid policy YAML: {e}") from e
        if not isinstance(data, dict):
            raise PolicyLoadError("Policy YAML must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path) -> "Policy":
        """Load a policy from a YAML or JSON file."""
        try:
            content = Path(path).read_text()
        except OSError as e:
            raise PolicyLoadError(f"Cannot read policy file {path}: {e}") from e
        # JSON is a subset of YAML, so one loader covers both.
        return cls.from_yaml(content)
