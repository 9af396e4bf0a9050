"""Policy document management: create, load, merge, validate, export.

These are pure data operations; evaluation lives in
``diffgate.policy.evaluator``.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from diffgate.policy.catalogue import default_rules
from diffgate.policy.models import Policy, PolicyFormatError, Rule
from diffgate.policy.validator import PolicyValidationError, PolicyValidator

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def _now() -> str:
    return datetime.now(UTC).isoformat()


def create_policy(
    id: str,
    name: str,
    rules: list[Rule],
    description: str | None = None,
    version: str = "1.0.0",
    timestamps: bool = True,
) -> Policy:
    """Create a policy from rules.

    Args:
        id: Policy identifier
        name: Policy name
        rules: Rules in evaluation order
        description: Optional description
        version: Policy version
        timestamps: Stamp created_at/updated_at with the current UTC time
    """
    now = _now() if timestamps else None
    return Policy(
        id=id,
        name=name,
        version=version,
        rules=list(rules),
        description=description,
        created_at=now,
        updated_at=now,
    )


def create_default_policy(project_id: str | None = None) -> Policy:
    """Create a policy holding a fresh copy of the default rules."""
    return create_policy(
        f"default-{project_id}" if project_id else "default",
        "Default Diffgate Policy",
        default_rules(),
        "Default policy with built-in security and quality rules",
        "1.0.0",
    )


def load_policy(source: str | bytes | dict[str, Any]) -> Policy:
    """Load a policy from a mapping or a JSON/YAML document.

    Raises:
        PolicyFormatError: If the document is not a valid policy
    """
    if isinstance(source, (str, bytes)):
        data = parse_policy_document(source)
    else:
        data = source
    return Policy.from_dict(data)


def parse_policy_document(text: str | bytes) -> Any:
    """Parse JSON or YAML text without validating its structure."""
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PolicyFormatError(f"document is neither JSON nor YAML: {e}") from e


def merge_policies(*policies: Policy) -> Policy:
    """Merge policies; a later rule with the same id replaces an earlier one.

    Replaced rules keep the position where their id was first seen. Policy
    metadata comes from the first policy. With no policies the default
    policy is returned.
    """
    if not policies:
        return create_default_policy()

    merged: dict[str, Rule] = {}
    for policy in policies:
        for rule in policy.rules:
            if rule.id in merged:
                logger.debug("Rule %s overridden by policy %s", rule.id, policy.id)
            merged[rule.id] = rule

    return replace(
        policies[0],
        rules=[copy.deepcopy(rule) for rule in merged.values()],
        updated_at=_now(),
    )


def validate_policy(policy: Policy | dict[str, Any]) -> list[PolicyValidationError]:
    """Return structural errors in a policy; never raises."""
    return PolicyValidator().validate(policy)


def export_policy(policy: Policy, fmt: str = "json") -> str:
    """Serialize a policy to its persisted JSON or YAML form."""
    data = policy.to_dict()
    if fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False)
    if fmt == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported export format: {fmt}")


def read_policy_file(path: Path) -> Policy:
    """Load a policy from a JSON or YAML file."""
    with open(path, encoding="utf-8") as f:
        text = f.read()
    try:
        return load_policy(text)
    except PolicyFormatError as e:
        raise PolicyFormatError(e.message, str(path)) from e


def write_policy_file(policy: Policy, path: Path) -> None:
    """Write a policy to file, as YAML for .yaml/.yml paths, else JSON."""
    fmt = "yaml" if path.suffix.lower() in YAML_SUFFIXES else "json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(export_policy(policy, fmt))
        if fmt == "json":
            f.write("\n")


class PolicyLoader:
    """Loader for built-in and file-based policies."""

    BUILT_IN_POLICIES = {
        "default": create_default_policy,
    }

    @classmethod
    def load(cls, name_or_path: str | Path) -> Policy:
        """Load a policy by built-in name or path.

        Raises:
            FileNotFoundError: If the policy file does not exist
            PolicyFormatError: If the policy is invalid
        """
        if isinstance(name_or_path, str) and name_or_path in cls.BUILT_IN_POLICIES:
            return cls.BUILT_IN_POLICIES[name_or_path]()

        path = Path(name_or_path)
        if not path.exists():
            raise FileNotFoundError(f"Policy not found: {name_or_path}")
        return read_policy_file(path)

    @classmethod
    def load_merged(cls, names_or_paths: list[str | Path]) -> Policy:
        """Load several policies and merge them in order."""
        return merge_policies(*(cls.load(p) for p in names_or_paths))

    @classmethod
    def list_built_in(cls) -> list[str]:
        """List available built-in policy names."""
        return list(cls.BUILT_IN_POLICIES.keys())
