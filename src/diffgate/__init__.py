"""Diffgate - governance decisions for unified diffs.

Parse ``git diff`` output into structured file changes and evaluate them
against a policy of rules, producing an allow/warn/block decision.
"""

from __future__ import annotations

from diffgate.diff import (
    ChangeType,
    DiffFile,
    DiffHunk,
    DiffLine,
    DiffSummary,
    LineKind,
    diff_summary,
    parse_diff,
)
from diffgate.policy import (
    Policy,
    Rule,
    RuleResult,
    RuleViolation,
    create_default_policy,
    create_policy,
    default_rules,
    evaluate_policy,
    evaluate_rules,
    export_policy,
    load_policy,
    merge_policies,
    validate_policy,
)
from diffgate.severity import Decision, Severity

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ChangeType",
    "LineKind",
    "DiffLine",
    "DiffHunk",
    "DiffFile",
    "DiffSummary",
    "parse_diff",
    "diff_summary",
    "Severity",
    "Decision",
    "Rule",
    "Policy",
    "RuleViolation",
    "RuleResult",
    "default_rules",
    "evaluate_rules",
    "evaluate_policy",
    "create_policy",
    "create_default_policy",
    "load_policy",
    "merge_policies",
    "validate_policy",
    "export_policy",
]
