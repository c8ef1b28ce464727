"""
Declared audit inputs and their binding to policy parameters.
"""

from dataclasses import dataclass
from enum import IntFlag
from typing import Any, Dict, List, Mapping, Optional

from ..core.exceptions import ParameterError


class ParameterMode(IntFlag):
    REQUIRED = 1
    OPTIONAL = 2
    IS_ARRAY = 4


@dataclass
class ParameterDefinition:
    """One input an audit accepts from its policy."""

    name: str
    mode: ParameterMode = ParameterMode.OPTIONAL
    description: str = ""
    default: Any = None

    def __post_init__(self):
        if self.mode & ParameterMode.REQUIRED and self.mode & ParameterMode.OPTIONAL:
            raise ValueError(f"Parameter '{self.name}' cannot be both required and optional")
        if not self.mode & (ParameterMode.REQUIRED | ParameterMode.OPTIONAL):
            self.mode |= ParameterMode.OPTIONAL
        if self.is_required and self.default is not None:
            raise ValueError(
                f"Parameter '{self.name}': only optional parameters can have a default"
            )
        if self.is_array:
            if self.default is None:
                self.default = []
            elif not isinstance(self.default, (list, tuple)):
                raise ValueError(f"Parameter '{self.name}': array default must be a list")

    @property
    def is_required(self) -> bool:
        return bool(self.mode & ParameterMode.REQUIRED)

    @property
    def is_array(self) -> bool:
        return bool(self.mode & ParameterMode.IS_ARRAY)


class ParameterSet:
    """The ordered collection of parameters an audit declares."""

    def __init__(self):
        self._definitions: Dict[str, ParameterDefinition] = {}

    def add(self, definition: ParameterDefinition) -> None:
        if definition.name in self._definitions:
            raise ValueError(f"A parameter named '{definition.name}' already exists")
        self._definitions[definition.name] = definition

    def get(self, name: str) -> Optional[ParameterDefinition]:
        return self._definitions.get(name)

    def definitions(self) -> List[ParameterDefinition]:
        return list(self._definitions.values())

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def bind(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validate policy values against the declarations.

        Returns every declared parameter, in declaration order, with
        defaults filled in for optional parameters the policy left out.

        Raises:
            ParameterError: an undeclared name was supplied, a required one
                is missing, or a list parameter got a scalar.
        """
        for name in values:
            if name not in self._definitions:
                raise ParameterError(f'The "{name}" parameter does not exist.', parameter=name)

        missing = [
            d.name for d in self._definitions.values() if d.is_required and d.name not in values
        ]
        if missing:
            names = ", ".join(f'"{name}"' for name in missing)
            raise ParameterError(f"Not enough parameters (missing: {names}).", parameter=missing[0])

        bound = {}
        for name, definition in self._definitions.items():
            if name not in values:
                bound[name] = definition.default
                continue
            value = values[name]
            if definition.is_array and not isinstance(value, (list, tuple)):
                raise ParameterError(
                    f'The "{name}" parameter expects a list, got {type(value).__name__}.',
                    parameter=name,
                )
            bound[name] = list(value) if definition.is_array else value
        return bound

    def upgrade_hint(self, error: ParameterError, supplied: Mapping[str, Any], owner: str) -> str:
        """
        Explain how ``owner`` would have to declare its parameters to accept
        what the policy supplied.
        """
        name = error.parameter
        lines = [str(error)]

        if name is not None and name in supplied and name not in self._definitions:
            value = supplied[name]
            mode = "ParameterMode.OPTIONAL"
            if isinstance(value, (list, tuple)):
                mode += " | ParameterMode.IS_ARRAY"
            lines.append(
                f"{owner} does not declare '{name}'. If the policy is right, add to "
                f"{owner}.configure():"
            )
            lines.append(f"    self.add_parameter({name!r}, {mode}, '', {value!r})")
        elif name is not None and name in self._definitions:
            definition = self._definitions[name]
            shape = "a list" if definition.is_array else "a value"
            requirement = "required" if definition.is_required else "optional"
            lines.append(
                f"{owner} expects {shape} for the {requirement} parameter '{name}'"
                + (f" ({definition.description})." if definition.description else ".")
            )

        if self._definitions:
            declared = ", ".join(
                f"{d.name} ({'required' if d.is_required else 'optional'})"
                for d in self._definitions.values()
            )
            lines.append(f"Declared parameters: {declared}")
        else:
            lines.append(f"{owner} declares no parameters.")
        return "\n".join(lines)
