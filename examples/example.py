#!/usr/bin/env python3
"""
Example script demonstrating the SiteAudit framework.

This script shows how to:
1. Write an audit that runs shell commands and remote Python
2. Describe it with a policy, dependencies included
3. Run it against the local machine
4. Read the outcome and tokens from the response
"""

import shlex
import sys

from site_audit import Audit, EngineConfig, LocalTarget, Outcome, Policy, RemoteTask
from site_audit.audit.parameters import ParameterMode


class DiskUsage(Audit):
    """Checks that no mounted filesystem is fuller than a threshold."""

    def configure(self):
        self.add_parameter("max_percent", ParameterMode.OPTIONAL, "Highest acceptable usage.", 90)
        self.add_parameter("warn_percent", ParameterMode.OPTIONAL, "Usage that warns.", 75)

    def audit(self, sandbox):
        self.set("kernel", sandbox.exec("uname -sr").strip())

        usage = sandbox.python().evaluate(
            RemoteTask.build(
                """
                import shutil
                result = {}
                for path in paths:
                    total, used, free = shutil.disk_usage(path)
                    result[path] = round(used * 100 / total, 1)
                return result
                """,
                paths=["/"],
            )
        )
        self.set("usage", usage)

        worst = max(usage.values())
        self.set("worst", worst)
        if worst > self.get_parameter("max_percent"):
            return Outcome.FAILURE
        if worst > self.get_parameter("warn_percent"):
            return Outcome.WARNING
        return Outcome.SUCCESS


def main():
    """Main example function."""

    print("SiteAudit Example - Disk usage on the local machine")
    print("=" * 52)

    policy = Policy.from_dict(
        {
            "name": "Example:DiskUsage",
            "title": "Disks have free space",
            "parameters": {"max_percent": 95},
            "depends": [{"expression": "os == 'linux'", "on_fail": "omit"}],
        }
    )
    print(f"\nPolicy: {policy.title} ({policy.name})")

    target = LocalTarget(properties={"os": sys.platform})
    config = EngineConfig(python_interpreter=shlex.quote(sys.executable))

    with target:
        audit = DiskUsage(target, config)
        response = audit.execute(policy)

    print(f"Outcome: {response.outcome.value}")
    if response.exception:
        print(f"Reason: {response.exception}")
    else:
        print(audit.interpolate("Worst usage {worst}% on {kernel}"))

    print("\nTokens:")
    for name, value in response.tokens.items():
        print(f"  {name}: {value}")

    print("\nNext steps:")
    print("  1. Edit examples/targets/*.yml to point at your sites")
    print("  2. Run: site-audit policy-info examples/policies/module_enabled.yml")
    print("  3. Run: site-audit audit examples/policies/module_enabled.yml examples/targets/ssh.yml")


if __name__ == "__main__":
    main()
