"""Parameter validation: the closed rule vocabulary and its engine."""

from plugrest.validation.engine import RuleSet, check_params, parse_rules
from plugrest.validation.rules import Check, Rule, validator_for

__all__ = [
    "Check",
    "Rule",
    "RuleSet",
    "check_params",
    "parse_rules",
    "validator_for",
]
