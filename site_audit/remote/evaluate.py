"""
Remote evaluation: ship a generated script to the target, run it and decode
the single JSON document it prints.

The transfer happens in three commands against the target::

    mktemp
    echo <base64 script> | base64 --decode > <tmpfile>
    <interpreter> <tmpfile>

followed by ``rm -f <tmpfile>``, which runs on every exit path.
"""

import base64
import re
import textwrap
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator, List, Optional, Tuple

from ..core.exceptions import SandboxCommandError
from ..core.logging_config import get_logger
from .output import decode_json

if TYPE_CHECKING:
    from ..audit.sandbox import Sandbox

logger = get_logger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class RemoteTask:
    """
    A unit of logic to run on the target.

    ``body`` is the body of a function whose parameters are the argument
    names, in order. Argument values are embedded as literals, so the remote
    process sees them as they were when the script was built.
    """

    body: str
    arguments: List[Tuple[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self.arguments = [(name, value) for name, value in self.arguments]
        for name, _ in self.arguments:
            if not _IDENTIFIER_RE.match(name):
                raise ValueError(f"Invalid remote argument name: {name!r}")

    @classmethod
    def build(cls, body: str, **arguments: Any) -> "RemoteTask":
        """Keyword form: ``RemoteTask.build("return a+b", a=2, b=3)``."""
        return cls(body=body, arguments=list(arguments.items()))

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.arguments]

    @property
    def values(self) -> List[Any]:
        return [value for _, value in self.arguments]


class ScriptDialect(ABC):
    """How to write a standalone script for one remote interpreter."""

    name = "script"
    #: Names the generated script uses for itself.
    reserved: Tuple[str, ...] = ()

    def __init__(self, interpreter: str):
        self.interpreter = interpreter

    @abstractmethod
    def literal(self, value: Any) -> str:
        """Render a value as a literal of the target language."""
        pass

    @abstractmethod
    def build_script(self, task: RemoteTask) -> str:
        pass

    def command(self) -> str:
        return f"{self.interpreter} @path"

    def check_names(self, task: RemoteTask) -> None:
        clashes = [name for name in task.names if name in self.reserved]
        if clashes:
            raise ValueError(
                f"Remote {self.name} argument names clash with the script: "
                + ", ".join(clashes)
            )


class PythonDialect(ScriptDialect):
    """Scripts for a Python 3 interpreter on the target."""

    name = "python"
    reserved = ("_json", "_evaluation", "_response")

    def __init__(self, interpreter: str = "python3"):
        super().__init__(interpreter)

    def literal(self, value: Any) -> str:
        if value is None or isinstance(value, (bool, int, float, str)):
            return repr(value)
        if isinstance(value, (list, tuple)):
            return "[" + ", ".join(self.literal(v) for v in value) + "]"
        if isinstance(value, dict):
            items = ", ".join(
                f"{self.literal(k)}: {self.literal(v)}" for k, v in value.items()
            )
            return "{" + items + "}"
        raise TypeError(f"Cannot send {type(value).__name__} to a remote Python script")

    def build_script(self, task: RemoteTask) -> str:
        self.check_names(task)
        body = textwrap.dedent(task.body).strip() or "return None"
        params = ", ".join(task.names)

        lines = ["import json as _json", ""]
        for name, value in task.arguments:
            lines.append(f"{name} = {self.literal(value)}")
        lines.append("")
        lines.append(f"def _evaluation({params}):")
        lines.append(textwrap.indent(body, "    "))
        lines.append("")
        lines.append(f"_response = _evaluation({params})")
        lines.append("print(_json.dumps(_response))")
        return "\n".join(lines) + "\n"


class PhpDialect(ScriptDialect):
    """Scripts for PHP, run by ``php`` or ``drush php-script``."""

    name = "php"
    reserved = ("evaluation", "response")

    def __init__(self, interpreter: str = "php"):
        super().__init__(interpreter)

    def literal(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, str):
            escaped = value.replace("\\", "\\\\").replace("'", "\\'")
            return f"'{escaped}'"
        if isinstance(value, (list, tuple)):
            return "[" + ", ".join(self.literal(v) for v in value) + "]"
        if isinstance(value, dict):
            items = ", ".join(
                f"{self.literal(k)} => {self.literal(v)}" for k, v in value.items()
            )
            return "[" + items + "]"
        raise TypeError(f"Cannot send {type(value).__name__} to a remote PHP script")

    def build_script(self, task: RemoteTask) -> str:
        self.check_names(task)
        params = ", ".join(f"${name}" for name in task.names)

        lines = ["<?php"]
        for name, value in task.arguments:
            lines.append(f"${name} = {self.literal(value)};")
        lines.append(f"$evaluation = function ({params}) {{")
        lines.append(textwrap.dedent(task.body).strip())
        lines.append("};")
        lines.append(f"$response = $evaluation({params});")
        lines.append("echo json_encode($response);")
        return "\n".join(lines) + "\n"


@contextmanager
def remote_tempfile(sandbox: "Sandbox") -> Iterator[str]:
    """Create a uniquely named file on the target and always remove it."""
    path = sandbox.exec("mktemp").strip()
    if not path:
        raise SandboxCommandError("mktemp", exit_code=0, error="mktemp returned no path")
    try:
        yield path
    finally:
        try:
            sandbox.exec("rm -f @path", {"@path": path})
        except Exception as e:
            sandbox.logger.warning("Could not remove remote file %s: %s", path, e)


class RemoteEvaluator:
    """
    Runs RemoteTasks on the sandbox's target in a given dialect.

    ``runner`` takes the remote script path and returns the raw text the
    script printed; decoding is always done here.
    """

    def __init__(
        self,
        sandbox: "Sandbox",
        dialect: ScriptDialect,
        runner: Optional[Callable[[str], str]] = None,
    ):
        self.sandbox = sandbox
        self.dialect = dialect
        self.runner = runner or self._run_interpreter

    def evaluate(self, task: RemoteTask) -> Any:
        script = self.dialect.build_script(task)
        transfer = base64.b64encode(script.encode("utf-8")).decode("ascii")

        with remote_tempfile(self.sandbox) as path:
            self.sandbox.exec(
                "echo @transfer | base64 --decode > @path",
                {"@transfer": transfer, "@path": path},
            )
            if self.sandbox.config.echo_remote_script:
                content = self.sandbox.exec("cat @path", {"@path": path})
                self.sandbox.logger.debug("Remote script %s:\n%s", path, content)

            output = self.runner(path)

        return decode_json(output, f"remote {self.dialect.name} evaluation")

    def _run_interpreter(self, path: str) -> str:
        return self.sandbox.exec(self.dialect.command(), {"@path": path})
