"""
Audits for Drupal sites reached through drush.
"""

from typing import Any

from ..audit.engine import Audit, RemediableAudit
from ..audit.parameters import ParameterMode
from ..audit.sandbox import Sandbox
from ..core.exceptions import AuditValidationError
from ..core.policy import Outcome
from ..remote.evaluate import RemoteTask


class ModuleEnabled(RemediableAudit):
    """Checks that a module is enabled; remediation enables it."""

    def configure(self):
        self.add_parameter("module", ParameterMode.REQUIRED, "The module to check.")

    def audit(self, sandbox: Sandbox):
        module = self.get_parameter("module")
        info = sandbox.drush().options(format="json").pm_info(module)
        if not isinstance(info, dict) or module not in info:
            raise AuditValidationError(f"Module {module} is not present on the site.")

        status = str(info[module].get("status", "")).lower()
        self.set("status", status)
        return status == "enabled"

    def remediate(self, sandbox: Sandbox):
        module = self.get_parameter("module")
        sandbox.drush().options(y=None).call("pmEnable", module)
        return self.audit(sandbox)


class ConfigValue(Audit):
    """Compares one configuration value against an expected value."""

    def configure(self):
        self.add_parameter("collection", ParameterMode.REQUIRED, "Config object name, e.g. system.performance.")
        self.add_parameter("key", ParameterMode.REQUIRED, "Key within the config object.")
        self.add_parameter("value", ParameterMode.OPTIONAL, "Expected value.")

    def audit(self, sandbox: Sandbox):
        collection = self.get_parameter("collection")
        key = self.get_parameter("key")
        config = sandbox.drush().options(format="json").config_get(collection, key)

        # drush answers {"collection:key": value}
        actual: Any = config
        if isinstance(config, dict):
            actual = config.get(f"{collection}:{key}", config.get(key))
        self.set("actual", actual)

        expected = self.get_parameter("value")
        return actual == expected


class QueryCount(Audit):
    """Runs a counting SQL query and checks the result against a maximum."""

    def configure(self):
        self.add_parameter("query", ParameterMode.REQUIRED, "SQL query returning a single number.")
        self.add_parameter("max", ParameterMode.OPTIONAL, "Largest acceptable count.", 0)
        self.add_parameter("warn", ParameterMode.OPTIONAL, "Count above which to warn instead of pass.")

    def audit(self, sandbox: Sandbox):
        output = sandbox.drush().sqlq(self.get_parameter("query"))
        try:
            count = int(output.splitlines()[-1]) if output else 0
        except ValueError:
            raise AuditValidationError(f"Query did not return a number: {output}") from None
        self.set("count", count)

        if count > self.get_parameter("max"):
            return Outcome.FAILURE
        warn = self.get_parameter("warn")
        if warn is not None and count > warn:
            return Outcome.WARNING
        return Outcome.SUCCESS


class PhpExpression(Audit):
    """Evaluates a PHP function body on the site and compares the result."""

    def configure(self):
        self.add_parameter("code", ParameterMode.REQUIRED, "PHP function body; must return a JSON encodable value.")
        self.add_parameter("expected", ParameterMode.OPTIONAL, "Value the code must return.", True)

    def audit(self, sandbox: Sandbox):
        result = sandbox.drush().evaluate(RemoteTask(body=self.get_parameter("code")))
        self.set("result", result)
        return result == self.get_parameter("expected")
