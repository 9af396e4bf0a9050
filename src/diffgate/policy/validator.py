"""Structural validation for policy documents."""

from __future__ import annotations

import re
from typing import Any

from diffgate.policy.models import Policy, RuleKind
from diffgate.severity import Severity

# Per-kind configuration fields and their expected types
RULE_CONFIG_SCHEMA: dict[RuleKind, dict[str, str]] = {
    RuleKind.SENSITIVE_FILE: {"patterns": "regex_array"},
    RuleKind.LARGE_CHANGE: {"threshold": "integer"},
    RuleKind.SUSPICIOUS_KEYWORDS: {"keywords": "string_array"},
    RuleKind.POTENTIAL_SECRET: {"patterns": "regex_array"},
    RuleKind.LARGE_MIGRATION: {"threshold": "integer", "migrationPatterns": "regex_array"},
    RuleKind.PATH_PATTERN: {"pattern": "regex", "matchType": "include|exclude"},
    RuleKind.LINE_PATTERN: {"pattern": "regex", "matchType": "added|removed|both"},
    RuleKind.FILE_SIZE: {"maxSize": "integer"},
}


class PolicyValidationError(Exception):
    """Policy validation error."""

    def __init__(self, message: str, path: str | None = None):
        self.message = message
        self.path = path
        super().__init__(f"Validation error{f' at {path}' if path else ''}: {message}")


class PolicyValidator:
    """Validator for policy documents.

    Collects every problem instead of stopping at the first one. Rules of
    unknown kinds are accepted; only their common fields are checked.
    """

    def __init__(self) -> None:
        self.errors: list[PolicyValidationError] = []

    def validate(self, policy: Policy | dict[str, Any]) -> list[PolicyValidationError]:
        """Validate a policy object or its persisted form.

        Returns:
            List of validation errors (empty if valid)
        """
        data = policy.to_dict() if isinstance(policy, Policy) else policy
        self.errors = []
        self._validate_policy(data)
        return self.errors

    def _error(self, message: str, path: str | None = None) -> None:
        self.errors.append(PolicyValidationError(message, path))

    def _validate_policy(self, data: Any) -> None:
        if not isinstance(data, dict):
            self._error(f"Expected object, got {type(data).__name__}")
            return

        if not data.get("id"):
            self._error("Policy must have an id")
        if not data.get("name"):
            self._error("Policy must have a name")
        if not data.get("version"):
            self._error("Policy must have a version")

        rules = data.get("rules")
        if not isinstance(rules, list):
            self._error("Policy must have a rules array")
            return

        seen: set[str] = set()
        for i, rule in enumerate(rules):
            path = f"rules[{i}]"
            self._validate_rule(rule, i, path)
            if not isinstance(rule, dict) or not rule.get("id"):
                continue
            if not isinstance(rule["id"], str):
                self._error("id must be a string", f"{path}.id")
            elif rule["id"] in seen:
                self._error(f"Duplicate rule id: {rule['id']}", path)
            else:
                seen.add(rule["id"])

    def _validate_rule(self, data: Any, index: int, path: str) -> None:
        if not isinstance(data, dict):
            self._error(f"Expected object, got {type(data).__name__}", path)
            return

        if not data.get("id"):
            self._error(f"Rule at index {index} must have an id", path)
        if not data.get("name"):
            self._error(f"Rule at index {index} must have a name", path)
        kind = data.get("kind", data.get("type"))
        if not kind:
            self._error(f"Rule at index {index} must have a kind", path)
        if not data.get("severity"):
            self._error(f"Rule at index {index} must have a severity", path)
        else:
            allowed = [s.value for s in Severity]
            if not isinstance(data["severity"], str) or data["severity"].lower() not in allowed:
                self._error(
                    f"Invalid severity: {data['severity']}. Must be one of: {allowed}",
                    f"{path}.severity",
                )

        if "enabled" in data and not isinstance(data["enabled"], bool):
            self._error("enabled must be a boolean", f"{path}.enabled")

        try:
            rule_kind = RuleKind(kind)
        except ValueError:
            return
        for key, expected in RULE_CONFIG_SCHEMA[rule_kind].items():
            self._validate_config_value(data, key, expected, f"{path}.{key}")

    def _validate_config_value(self, data: dict[str, Any], key: str, expected: str, path: str) -> None:
        if key not in data:
            self._error(f"Missing required field: {key}", path)
            return
        value = data[key]

        if expected == "integer":
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                self._error(f"{key} must be a non-negative integer", path)
        elif expected == "string_array":
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                self._error(f"{key} must be an array of strings", path)
        elif expected == "regex_array":
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                self._error(f"{key} must be an array of strings", path)
                return
            for i, pattern in enumerate(value):
                self._validate_regex(pattern, f"{path}[{i}]")
        elif expected == "regex":
            if not isinstance(value, str):
                self._error(f"{key} must be a string", path)
                return
            self._validate_regex(value, path)
        else:
            allowed = expected.split("|")
            if value not in allowed:
                self._error(f"Invalid {key}: {value}. Must be one of: {allowed}", path)

    def _validate_regex(self, pattern: str, path: str) -> None:
        try:
            re.compile(pattern)
        except re.error as e:
            self._error(f"Invalid regex pattern: {e}", path)
