"""
Tests for site_audit.core.policy module.
"""

import pytest

from site_audit.audits.drupal import ModuleEnabled
from site_audit.core.exceptions import DependencyError, PolicyLoadError
from site_audit.core.policy import Dependency, Outcome, Policy


class TestOutcome:
    """Test cases for Outcome."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("success", Outcome.SUCCESS),
            ("FAILURE", Outcome.FAILURE),
            ("fail", Outcome.FAILURE),
            ("omit", Outcome.NOT_APPLICABLE),
            ("not-applicable", Outcome.NOT_APPLICABLE),
            ("warn", Outcome.WARNING),
            ("pass", Outcome.SUCCESS),
        ],
    )
    def test_aliases(self, value, expected):
        """Test outcome aliases."""
        assert Outcome(value) is expected

    def test_unknown_value(self):
        """Test an unknown outcome value."""
        with pytest.raises(ValueError):
            Outcome("sometimes")

    def test_coerce(self):
        """Test coercing check results into outcomes."""
        assert Outcome.coerce(True) is Outcome.SUCCESS
        assert Outcome.coerce(False) is Outcome.FAILURE
        assert Outcome.coerce(Outcome.WARNING) is Outcome.WARNING

    def test_coerce_rejects_other_values(self):
        """Test coerce rejects other values."""
        with pytest.raises(ValueError, match="Unknown audit outcome"):
            Outcome.coerce(1)


class TestDependency:
    """Test cases for Dependency."""

    def test_needs_exactly_one_condition(self):
        """Test needs exactly one condition."""
        with pytest.raises(ValueError):
            Dependency()
        with pytest.raises(ValueError):
            Dependency(expression="True", check=lambda audit: True)

    def test_default_fail_behaviour(self):
        """Test default fail behaviour."""
        assert Dependency(expression="True").get_fail_behaviour() is Outcome.FAILURE

    def test_on_fail_alias(self):
        """Test on fail alias."""
        dependency = Dependency(expression="True", on_fail="omit")
        assert dependency.get_fail_behaviour() is Outcome.NOT_APPLICABLE

    def test_check_receives_audit(self):
        """Test check receives audit."""
        received = []
        dependency = Dependency(check=lambda audit: received.append(audit) or True)

        assert dependency.execute("the audit") is True
        assert received == ["the audit"]

    def test_unmet_check_raises(self):
        """Test unmet check raises."""
        dependency = Dependency(check=lambda audit: Outcome.WARNING, on_fail=Outcome.ERROR)

        with pytest.raises(DependencyError) as exc_info:
            dependency.execute(None)

        assert exc_info.value.dependency is dependency

    def test_str(self):
        """Test dependency string representation."""
        assert str(Dependency(expression="a > 1")) == "a > 1"
        assert str(Dependency(expression="a > 1", description="A is big")) == "A is big"

        def drupal_site(audit):
            return True

        assert str(Dependency(check=drupal_site)) == "drupal_site"

    def test_check_is_not_serialised(self):
        """Test check is not serialised."""
        dumped = Dependency(check=lambda audit: True).model_dump()
        assert "check" not in dumped


class TestPolicy:
    """Test cases for Policy."""

    POLICY_YAML = """
name: Drupal:ModuleEnabled
title: Views is enabled
class: site_audit.audits.drupal:ModuleEnabled
parameters:
  module: views
depends:
  - "drupal_version >= 8"
  - expression: "environment == 'prod'"
    on_fail: omit
tags:
  - drupal
"""

    def test_from_yaml(self):
        """Test policy loading from YAML text."""
        policy = Policy.from_yaml(self.POLICY_YAML)

        assert policy.name == "Drupal:ModuleEnabled"
        assert policy.audit_class == "site_audit.audits.drupal:ModuleEnabled"
        assert policy.get_all_parameters() == {"module": "views"}
        assert policy.tags == ["drupal"]

        depends = policy.get_depends()
        assert [d.expression for d in depends] == ["drupal_version >= 8", "environment == 'prod'"]
        assert depends[0].on_fail is Outcome.FAILURE
        assert depends[1].on_fail is Outcome.NOT_APPLICABLE

    def test_from_file(self, tmp_path):
        """Test policy loading from a YAML file."""
        path = tmp_path / "policy.yml"
        path.write_text(self.POLICY_YAML)

        assert Policy.from_file(path).title == "Views is enabled"

    def test_from_json_file(self, tmp_path):
        """Test from json file."""
        path = tmp_path / "policy.json"
        path.write_text('{"name": "json:policy", "parameters": {"max": 3}}')

        assert Policy.from_file(path).parameters == {"max": 3}

    def test_missing_file(self, tmp_path):
        """Test loading a missing policy file."""
        with pytest.raises(PolicyLoadError, match="Cannot read policy file"):
            Policy.from_file(tmp_path / "missing.yml")

    def test_invalid_yaml(self):
        """Test loading invalid YAML."""
        with pytest.raises(PolicyLoadError):
            Policy.from_yaml("name: [unclosed")

    def test_yaml_must_be_mapping(self):
        """Test yaml must be mapping."""
        with pytest.raises(PolicyLoadError, match="mapping"):
            Policy.from_yaml("- just\n- a list\n")

    def test_name_is_required(self):
        """Test name is required."""
        with pytest.raises(PolicyLoadError, match="Invalid policy definition"):
            Policy.from_dict({"title": "No name"})

    def test_with_parameters(self):
        """Test policy creation with parameters."""
        policy = Policy(name="p", parameters={"module": "views", "max": 1})

        updated = policy.with_parameters({"max": 5})

        assert updated.parameters == {"module": "views", "max": 5}
        assert policy.parameters == {"module": "views", "max": 1}

    def test_get_all_parameters_is_a_copy(self):
        """Test get all parameters is a copy."""
        policy = Policy(name="p", parameters={"a": 1})
        policy.get_all_parameters()["a"] = 2

        assert policy.parameters == {"a": 1}

    @pytest.mark.parametrize(
        "name",
        ["site_audit.audits.drupal:ModuleEnabled", "site_audit.audits.drupal.ModuleEnabled"],
    )
    def test_load_audit_class(self, name):
        """Test load audit class."""
        assert Policy(name="p", audit_class=name).load_audit_class() is ModuleEnabled

    def test_load_audit_class_missing(self):
        """Test load audit class missing."""
        with pytest.raises(PolicyLoadError, match="does not name an audit class"):
            Policy(name="p").load_audit_class()

    @pytest.mark.parametrize(
        "name",
        ["site_audit.audits.drupal:Nope", "no_such_module:Audit", "Audit"],
    )
    def test_load_audit_class_unresolvable(self, name):
        """Test load audit class unresolvable."""
        with pytest.raises(PolicyLoadError):
            Policy(name="p", audit_class=name).load_audit_class()

    def test_load_audit_class_not_an_audit(self):
        """Test load audit class not an audit."""
        policy = Policy(name="p", audit_class="site_audit.core.policy:Policy")

        with pytest.raises(PolicyLoadError, match="not an Audit subclass"):
            policy.load_audit_class()


if __name__ == "__main__":
    pytest.main([__file__])
