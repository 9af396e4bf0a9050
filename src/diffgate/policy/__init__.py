"""Rule catalogue, evaluation and policy management.

- A closed set of rule kinds, one dataclass per kind
- A default catalogue with one production-tuned rule per kind
- File-major, rule-minor evaluation reduced to an allow/warn/block decision
- Policy documents: create, load, merge, validate, export
"""

from __future__ import annotations

from diffgate.policy.catalogue import DEFAULT_RULE_SPECS, default_rules
from diffgate.policy.evaluator import RuleEvaluator, evaluate_policy, evaluate_rules
from diffgate.policy.manager import (
    PolicyLoader,
    create_default_policy,
    create_policy,
    export_policy,
    load_policy,
    merge_policies,
    parse_policy_document,
    read_policy_file,
    validate_policy,
    write_policy_file,
)
from diffgate.policy.models import (
    FileSizeRule,
    LargeChangeRule,
    LargeMigrationRule,
    LinePatternRule,
    LineScope,
    PathMatchType,
    PathPatternRule,
    Policy,
    PolicyFormatError,
    PotentialSecretRule,
    Rule,
    RuleKind,
    RuleResult,
    RuleViolation,
    SensitiveFileRule,
    SuspiciousKeywordsRule,
    UnknownRule,
    rule_from_dict,
)
from diffgate.policy.validator import PolicyValidationError, PolicyValidator

__all__ = [
    "Rule",
    "RuleKind",
    "SensitiveFileRule",
    "LargeChangeRule",
    "SuspiciousKeywordsRule",
    "PotentialSecretRule",
    "LargeMigrationRule",
    "PathPatternRule",
    "PathMatchType",
    "LinePatternRule",
    "LineScope",
    "FileSizeRule",
    "UnknownRule",
    "rule_from_dict",
    "Policy",
    "PolicyFormatError",
    "RuleViolation",
    "RuleResult",
    "DEFAULT_RULE_SPECS",
    "default_rules",
    "RuleEvaluator",
    "evaluate_rules",
    "evaluate_policy",
    "PolicyLoader",
    "create_policy",
    "create_default_policy",
    "load_policy",
    "parse_policy_document",
    "merge_policies",
    "validate_policy",
    "export_policy",
    "read_policy_file",
    "write_policy_file",
    "PolicyValidator",
    "PolicyValidationError",
]
