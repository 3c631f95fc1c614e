"""Declarative route rules stored in YAML files."""

from route_validator.rules.loader import RulesLoader
from route_validator.rules.schema import RuleIssue, validate_rules_file

__all__ = ["RuleIssue", "RulesLoader", "validate_rules_file"]
