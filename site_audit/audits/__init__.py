"""
Built-in audits.
"""

from .drupal import ConfigValue, ModuleEnabled, PhpExpression, QueryCount

__all__ = ["ModuleEnabled", "ConfigValue", "QueryCount", "PhpExpression"]
