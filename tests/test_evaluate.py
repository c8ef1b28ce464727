"""
Tests for site_audit.remote.evaluate module.
"""

import base64
import logging
import shlex
import shutil
import socket
import sys

import pytest

from site_audit.audit.engine import Audit
from site_audit.audit.sandbox import Sandbox
from site_audit.core.config import EngineConfig
from site_audit.core.exceptions import RemoteDecodeError, SandboxCommandError
from site_audit.remote.evaluate import (
    PhpDialect,
    PythonDialect,
    RemoteEvaluator,
    RemoteTask,
    remote_tempfile,
)
from site_audit.targets.local import LocalTarget

TMPFILE = "/tmp/tmp.Xy12ab"


class EvaluatingAudit(Audit):
    def audit(self, sandbox):
        return True


def _transferred_script(command: str) -> str:
    """Extract and decode the payload from an ``echo <b64> | base64 ...`` command."""
    payload = command.split(" ")[1]
    return base64.b64decode(payload).decode("utf-8")


class TestRemoteTask:
    """Test cases for RemoteTask."""

    def test_build_keeps_argument_order(self):
        """Test keyword arguments keep their declared order."""
        task = RemoteTask.build("return a+b", b=3, a=2)
        assert task.names == ["b", "a"]
        assert task.values == [3, 2]

    def test_invalid_argument_name(self):
        """Test argument names must be identifiers."""
        with pytest.raises(ValueError, match="Invalid remote argument name"):
            RemoteTask(body="return 1", arguments=[("not valid", 1)])


class TestPythonDialect:
    """Test cases for generated Python scripts."""

    def test_script_layout(self):
        """Test the exact layout of a generated Python script."""
        script = PythonDialect().build_script(
            RemoteTask("return a+b", [("a", 2), ("b", 3)])
        )

        assert script == (
            "import json as _json\n"
            "\n"
            "a = 2\n"
            "b = 3\n"
            "\n"
            "def _evaluation(a, b):\n"
            "    return a+b\n"
            "\n"
            "_response = _evaluation(a, b)\n"
            "print(_json.dumps(_response))\n"
        )

    def test_multiline_body_is_reindented(self):
        """Test an indented multi-line body becomes the function body."""
        body = """
            total = 0
            for item in items:
                total += item
            return total
        """
        script = PythonDialect().build_script(RemoteTask(body, [("items", [1, 2])]))

        assert "    total = 0\n    for item in items:\n        total += item\n" in script

    def test_arguments_may_use_common_names(self):
        """Test arguments named like common words leave the script intact."""
        task = RemoteTask(
            "return json + evaluation + response",
            [("json", 1), ("evaluation", 2), ("response", 3)],
        )

        script = PythonDialect().build_script(task)

        assert "json = 1\nevaluation = 2\nresponse = 3\n" in script
        assert "_response = _evaluation(json, evaluation, response)\n" in script
        assert script.endswith("print(_json.dumps(_response))\n")

    def test_script_internal_names_are_rejected(self):
        """Test arguments that would overwrite the script's own names."""
        with pytest.raises(ValueError, match="clash with the script: _json"):
            PythonDialect().build_script(RemoteTask("return 1", [("_json", 1)]))

    def test_literals(self):
        """Test Python literal rendering."""
        dialect = PythonDialect()
        assert dialect.literal(None) == "None"
        assert dialect.literal("it's") == repr("it's")
        assert dialect.literal((1, True)) == "[1, True]"
        assert dialect.literal({"a": [1.5]}) == "{'a': [1.5]}"

    def test_unsupported_literal(self):
        """Test values without a literal form are refused."""
        with pytest.raises(TypeError):
            PythonDialect().literal(object())

    def test_empty_body_returns_none(self):
        """Test an empty body still produces a valid function."""
        script = PythonDialect().build_script(RemoteTask(""))
        assert "def _evaluation():\n    return None\n" in script


class TestPhpDialect:
    """Test cases for generated PHP scripts."""

    def test_script_layout(self):
        """Test the exact layout of a generated PHP script."""
        script = PhpDialect().build_script(
            RemoteTask("return $a + $b;", [("a", 2), ("b", 3)])
        )

        assert script == (
            "<?php\n"
            "$a = 2;\n"
            "$b = 3;\n"
            "$evaluation = function ($a, $b) {\n"
            "return $a + $b;\n"
            "};\n"
            "$response = $evaluation($a, $b);\n"
            "echo json_encode($response);\n"
        )

    def test_script_internal_names_are_rejected(self):
        """Test arguments that would overwrite $evaluation or $response."""
        with pytest.raises(ValueError, match="clash with the script: response"):
            PhpDialect().build_script(RemoteTask("return 1;", [("response", 1)]))

    def test_literals(self):
        """Test PHP literal rendering and escaping."""
        dialect = PhpDialect()
        assert dialect.literal(None) == "NULL"
        assert dialect.literal(False) == "false"
        assert dialect.literal("it's a \\ test") == "'it\\'s a \\\\ test'"
        assert dialect.literal([1, "x"]) == "[1, 'x']"
        assert dialect.literal({"views": True}) == "['views' => true]"


class TestRemoteEvaluator:
    """Test cases for the transfer protocol, against a fake target."""

    def _evaluator(self, sandbox):
        return RemoteEvaluator(sandbox, PythonDialect())

    def test_transfer_sequence(self, sandbox, fake_target):
        """Test mktemp, transfer, run and cleanup happen in order."""
        fake_target.respond("mktemp", TMPFILE + "\n")
        fake_target.respond(f"python3 {TMPFILE}", "5\n")

        result = self._evaluator(sandbox).evaluate(
            RemoteTask("return a+b", [("a", 2), ("b", 3)])
        )

        assert result == 5
        commands = fake_target.commands
        assert commands[0] == "mktemp"
        assert commands[1].startswith("echo ")
        assert commands[1].endswith(f" | base64 --decode > {TMPFILE}")
        assert "return a+b" in _transferred_script(commands[1])
        assert commands[2] == f"python3 {TMPFILE}"
        assert commands[3] == f"rm -f {TMPFILE}"
        assert len(commands) == 4

    def test_arguments_are_embedded_as_values(self, sandbox, fake_target):
        """Test argument values are rendered when the script is built."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("python3", "null")
        threshold = {"max": 10}

        task = RemoteTask("return None", [("threshold", threshold)])
        threshold["max"] = 99
        self._evaluator(sandbox).evaluate(task)

        script = _transferred_script(fake_target.commands[1])
        assert "threshold = {'max': 99}" in script

    def test_null_result_is_none(self, sandbox, fake_target):
        """Test JSON null decodes to None."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("python3", "null\n")

        assert self._evaluator(sandbox).evaluate(RemoteTask("return None")) is None

    def test_invalid_output_raises_decode_error(self, sandbox, fake_target):
        """Test non-JSON output raises RemoteDecodeError after cleanup."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("python3", "Traceback (most recent call last):")

        with pytest.raises(RemoteDecodeError):
            self._evaluator(sandbox).evaluate(RemoteTask("return 1"))

        assert fake_target.commands[-1] == f"rm -f {TMPFILE}"

    def test_empty_output_raises_decode_error(self, sandbox, fake_target):
        """Test empty output is a decode error."""
        fake_target.respond("mktemp", TMPFILE)

        with pytest.raises(RemoteDecodeError, match="Empty output"):
            self._evaluator(sandbox).evaluate(RemoteTask("return 1"))

    def test_interpreter_failure_propagates_and_cleans_up(self, sandbox, fake_target):
        """Test an interpreter failure propagates and the file is removed."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("python3", "", exit_code=1, error="SyntaxError")

        with pytest.raises(SandboxCommandError) as exc_info:
            self._evaluator(sandbox).evaluate(RemoteTask("return 1"))

        assert exc_info.value.exit_code == 1
        assert fake_target.commands[-1] == f"rm -f {TMPFILE}"

    def test_transfer_failure_cleans_up(self, sandbox, fake_target):
        """Test a failed transfer skips the interpreter and removes the file."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("echo", "", exit_code=1)

        with pytest.raises(SandboxCommandError):
            self._evaluator(sandbox).evaluate(RemoteTask("return 1"))

        assert fake_target.commands[-1] == f"rm -f {TMPFILE}"
        assert not any(c.startswith("python3") for c in fake_target.commands)

    def test_clashing_names_fail_before_transfer(self, sandbox, fake_target):
        """Test a rejected argument name issues no remote command."""
        with pytest.raises(ValueError):
            self._evaluator(sandbox).evaluate(RemoteTask("return 1", [("_response", 1)]))

        assert fake_target.commands == []

    def test_echo_script_for_diagnostics(self, fake_target, configured_sandbox):
        """Test the transferred script is read back when configured."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("cat", "print(1)")
        fake_target.respond("python3", "1")
        sandbox = configured_sandbox(EngineConfig(echo_remote_script=True))

        sandbox.python().evaluate(RemoteTask("return 1"))

        assert f"cat {TMPFILE}" in fake_target.commands

    def test_custom_runner_output_is_decoded(self, sandbox, fake_target):
        """Test a custom runner's raw text goes through the JSON decoder."""
        fake_target.respond("mktemp", TMPFILE)
        evaluator = RemoteEvaluator(sandbox, PhpDialect(), runner=lambda path: '{"ok": true}')

        assert evaluator.evaluate(RemoteTask("return 1;")) == {"ok": True}

    def test_custom_runner_string_result(self, sandbox, fake_target):
        """Test a JSON string result is decoded exactly once."""
        fake_target.respond("mktemp", TMPFILE)
        evaluator = RemoteEvaluator(sandbox, PhpDialect(), runner=lambda path: '"abc"')

        assert evaluator.evaluate(RemoteTask("return 'abc';")) == "abc"

    def test_drush_evaluate_uses_php_script(self, sandbox, fake_target):
        """Test drush evaluation runs the script with drush php-script."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond(f"drush php-script {TMPFILE}", '{"enabled": true}')

        result = sandbox.drush().evaluate(
            RemoteTask("return ['enabled' => module_exists($name)];", [("name", "views")])
        )

        assert result == {"enabled": True}
        script = _transferred_script(fake_target.commands[1])
        assert script.startswith("<?php\n$name = 'views';")

    def test_drush_evaluate_ignores_pending_json_format(self, sandbox, fake_target):
        """Test a pending --format=json does not decode a string result twice."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("drush php-script", '"abc"')
        drush = sandbox.drush()

        result = drush.options(format="json").evaluate(RemoteTask("return 'abc';"))

        assert result == "abc"
        assert f"drush php-script {TMPFILE}" in fake_target.commands
        assert drush.pending_options == []

    def test_drush_evaluate_keeps_other_options(self, sandbox, fake_target):
        """Test options other than the JSON format reach php-script."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("drush -y php-script", "1")

        result = sandbox.drush().options(y=None, format="json").evaluate(
            RemoteTask("return 1;")
        )

        assert result == 1
        assert f"drush -y php-script {TMPFILE}" in fake_target.commands


class TestRemoteTempfile:
    """Test cases for remote temp file handling."""

    def test_removed_when_body_raises(self, sandbox, fake_target):
        """Test the file is removed when the block raises."""
        fake_target.respond("mktemp", TMPFILE)

        with pytest.raises(RuntimeError):
            with remote_tempfile(sandbox) as path:
                assert path == TMPFILE
                raise RuntimeError("boom")

        assert fake_target.commands == ["mktemp", f"rm -f {TMPFILE}"]

    def test_failed_removal_does_not_mask_result(self, sandbox, fake_target):
        """Test a failing rm is tolerated."""
        fake_target.respond("mktemp", TMPFILE)
        fake_target.respond("rm", "", exit_code=1, error="Permission denied")

        with remote_tempfile(sandbox) as path:
            assert path == TMPFILE

    def test_transport_error_during_removal_keeps_original_error(
        self, sandbox, fake_target, caplog
    ):
        """Test a connection error while removing the file is only logged."""
        fake_target.respond("mktemp", TMPFILE)
        original_run = fake_target.run

        def run(command, timeout=None):
            if command.startswith("rm "):
                raise socket.timeout("timed out")
            return original_run(command, timeout)

        fake_target.run = run

        with caplog.at_level(logging.WARNING):
            with pytest.raises(RuntimeError, match="boom"):
                with remote_tempfile(sandbox):
                    raise RuntimeError("boom")

        assert f"Could not remove remote file {TMPFILE}" in caplog.text
        assert "timed out" in caplog.text

    def test_mktemp_without_output(self, sandbox, fake_target):
        """Test an empty mktemp answer is an error."""
        with pytest.raises(SandboxCommandError):
            with remote_tempfile(sandbox):
                pass


@pytest.mark.skipif(
    shutil.which("mktemp") is None or shutil.which("base64") is None,
    reason="needs mktemp and base64",
)
class TestLocalRoundTrip:
    """End-to-end evaluation through a real shell and interpreter."""

    def _sandbox(self):
        config = EngineConfig(python_interpreter=shlex.quote(sys.executable))
        return Sandbox(EvaluatingAudit(LocalTarget(), config))

    def test_round_trip(self):
        """Test a scalar result comes back from a real interpreter."""
        result = self._sandbox().python().evaluate(
            RemoteTask("return a+b", [("a", 2), ("b", 3)])
        )

        assert result == 5

    def test_structured_round_trip(self):
        """Test nested arguments and results survive the round trip."""
        result = self._sandbox().python().evaluate(
            RemoteTask.build(
                "return {name: len(values) for name, values in groups.items()}",
                groups={"a": [1, 2], "b": []},
            )
        )

        assert result == {"a": 2, "b": 0}

    def test_arguments_named_like_script_names(self):
        """Test arguments named json, evaluation and response keep their values."""
        result = self._sandbox().python().evaluate(
            RemoteTask(
                "return json + evaluation + response",
                [("json", 1), ("evaluation", 2), ("response", 3)],
            )
        )

        assert result == 6


if __name__ == "__main__":
    pytest.main([__file__])
