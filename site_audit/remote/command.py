"""
Adapter turning structured calls into drush command lines.
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Union

from ..core.exceptions import UnknownCommandError
from ..core.logging_config import get_logger
from .output import decode_json

if TYPE_CHECKING:
    from ..audit.sandbox import Sandbox
    from .evaluate import RemoteTask

logger = get_logger(__name__)

_WORD_RE = re.compile(r"(?:^|[A-Z])[a-z]+")

JSON_FLAG = "--format=json"


def hyphenate(name: str) -> str:
    """
    Convert a camelCase identifier into a hyphenated command name.

    ``pmInfo`` and ``PmInfo`` become ``pm-info``, ``status`` is unchanged.
    Anything outside those runs, digits included, is dropped.
    """
    return "-".join(word.lower() for word in _WORD_RE.findall(name))


def _is_empty(value: Any) -> bool:
    if isinstance(value, (list, tuple, dict)):
        return not value
    return value is None or value is False or value == "" or value == 0 or value == "0"


def format_options(options: Mapping[Union[str, int], Any]) -> List[str]:
    """
    Render an option mapping as command line flags.

    Single character names give ``-x`` (``-x value``), longer names give
    ``--name`` (``--name=value``). Integer keys produce nothing.
    """
    flags = []
    for key, value in options.items():
        if isinstance(key, int):
            continue
        if len(key) == 1:
            flag = f"-{key}"
            if not _is_empty(value):
                flag += f" {value}"
        else:
            flag = f"--{key}"
            if not _is_empty(value):
                flag += f"={value}"
        flags.append(flag)
    return flags


@dataclass(frozen=True)
class CommandSpec:
    """One supported command: the identifier callers use and its CLI name."""

    identifier: str
    command: str
    description: str = ""


class CommandRegistry:
    """Explicit set of commands an adapter is allowed to issue."""

    def __init__(self, identifiers: Iterable[str] = ()):
        self._commands: Dict[str, CommandSpec] = {}
        for identifier in identifiers:
            self.register(identifier)

    def register(
        self, identifier: str, command: Optional[str] = None, description: str = ""
    ) -> CommandSpec:
        command = command or hyphenate(identifier)
        if not command:
            raise UnknownCommandError(f"Cannot derive a command name from '{identifier}'")
        spec = CommandSpec(identifier=identifier, command=command, description=description)
        self._commands[identifier] = spec
        return spec

    def get(self, identifier: str) -> CommandSpec:
        try:
            return self._commands[identifier]
        except KeyError:
            raise UnknownCommandError(
                f"Unknown command '{identifier}'. Known commands: "
                + ", ".join(sorted(self._commands))
            ) from None

    def identifiers(self) -> List[str]:
        return list(self._commands)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._commands

    def __len__(self) -> int:
        return len(self._commands)


DRUSH_COMMANDS = CommandRegistry(
    [
        "status",
        "pmInfo",
        "pmList",
        "pmEnable",
        "sqlq",
        "sqlQuery",
        "phpScript",
        "configGet",
        "variableGet",
        "cacheRebuild",
        "updatedbStatus",
        "coreRequirements",
    ]
)


class Drush:
    """
    Runs drush subcommands on a target through a sandbox.

    Options set with :meth:`options` accumulate until the next command is
    issued and are consumed by that command alone, whether it succeeds or
    not. When the consumed options ask for ``--format=json`` the output is
    decoded, otherwise the raw text is returned.
    """

    ALIAS_PROPERTY = "drush.alias"

    def __init__(
        self,
        sandbox: "Sandbox",
        registry: Optional[CommandRegistry] = None,
        binary: str = "drush",
    ):
        self.sandbox = sandbox
        self.registry = registry or DRUSH_COMMANDS
        self.binary = binary
        self._options: List[str] = []

    def options(
        self, options: Optional[Mapping[Union[str, int], Any]] = None, **kwargs: Any
    ) -> "Drush":
        """Add options for the next command. Repeated calls accumulate."""
        merged: Dict[Union[str, int], Any] = dict(options or {})
        merged.update(kwargs)
        self._options.extend(format_options(merged))
        return self

    @property
    def pending_options(self) -> List[str]:
        return list(self._options)

    def call(self, identifier: str, *args: str) -> Any:
        """Run a registered command with the pending options."""
        spec = self.registry.get(identifier)
        options, self._options = self._options, []
        logger.debug("drush %s (options: %s)", spec.command, " ".join(options) or "none")

        output = self.run_command(spec.command, args, options)

        if JSON_FLAG in options:
            return decode_json(output, f"drush {spec.command}")
        return output

    def run_command(self, command: str, args: Iterable[str], options: List[str]) -> str:
        parts = [self.binary]
        if self.sandbox.target.has_property(self.ALIAS_PROPERTY):
            parts.append(str(self.sandbox.target.get_property(self.ALIAS_PROPERTY)))
        parts.extend(options)
        parts.append(command)
        parts.extend(str(arg) for arg in args)
        return self.sandbox.exec(" ".join(part for part in parts if part))

    def status(self) -> Any:
        return self.call("status")

    def pm_info(self, *extensions: str) -> Any:
        return self.call("pmInfo", *extensions)

    def pm_list(self) -> Any:
        return self.call("pmList")

    def config_get(self, name: str, key: Optional[str] = None) -> Any:
        args = [name] if key is None else [name, key]
        return self.call("configGet", *args)

    def php_script(self, path: str) -> Any:
        return self.call("phpScript", path)

    def sqlq(self, sql: str) -> Any:
        """Run a SQL query. The query is double quoted, not escaped."""
        output = self.call("sqlq", f'"{sql}"')
        return output.strip() if isinstance(output, str) else output

    def evaluate(self, task: "RemoteTask") -> Any:
        """
        Run PHP on the site through ``drush php-script``.

        Other pending options go to ``php-script``. A pending
        ``--format=json`` is dropped, the evaluator decodes the script's
        output itself.
        """
        from .evaluate import PhpDialect, RemoteEvaluator

        self._options = [option for option in self._options if option != JSON_FLAG]
        return RemoteEvaluator(self.sandbox, PhpDialect(), runner=self.php_script).evaluate(
            task
        )
