"""Rule, policy and evaluation result models.

Rules form a closed family: one dataclass per rule kind, each carrying its
own configuration. Documents naming a kind this build does not know load as
UnknownRule so they stay readable and round-trip unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from diffgate.severity import Decision, Severity


class PolicyFormatError(ValueError):
    """Policy document is structurally invalid."""

    def __init__(self, message: str, path: str | None = None):
        self.message = message
        self.path = path
        super().__init__(f"Invalid policy format{f' at {path}' if path else ''}: {message}")


class RuleKind(Enum):
    """The rule kinds understood by the evaluator."""

    SENSITIVE_FILE = "sensitive-file"
    LARGE_CHANGE = "large-change"
    SUSPICIOUS_KEYWORDS = "suspicious-keywords"
    POTENTIAL_SECRET = "potential-secret"
    LARGE_MIGRATION = "large-migration"
    PATH_PATTERN = "path-pattern"
    LINE_PATTERN = "line-pattern"
    FILE_SIZE = "file-size"


class PathMatchType(Enum):
    """Whether a path-pattern rule fires on matching or non-matching paths."""

    INCLUDE = "include"
    EXCLUDE = "exclude"


class LineScope(Enum):
    """Which lines a line-pattern rule inspects."""

    ADDED = "added"
    REMOVED = "removed"
    BOTH = "both"


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise TypeError(f"{key} must be an array of strings")
    return list(value)


def _string(data: dict[str, Any], key: str) -> str:
    value = data.get(key, "")
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string")
    return value


def _non_negative_int(data: dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    # bool is an int subclass
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise TypeError(f"{key} must be a non-negative integer")
    return value


@dataclass
class Rule:
    """Fields shared by every rule kind.

    Attributes:
        id: Rule identifier, unique within a policy
        name: Human-readable name
        severity: Severity given to violations of this rule
        enabled: Disabled rules are never evaluated
        description: Optional description, used as violation message
    """

    KIND: ClassVar[RuleKind | None] = None

    id: str
    name: str
    severity: Severity = Severity.WARN
    enabled: bool = True
    description: str | None = None

    @property
    def kind(self) -> str:
        if self.KIND is None:
            raise TypeError(f"{type(self).__name__} does not define a rule kind")
        return self.KIND.value

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted rule form."""
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "severity": self.severity.value,
            "kind": self.kind,
        }
        if self.description is not None:
            result["description"] = self.description
        result.update(self.config_to_dict())
        return result

    def config_to_dict(self) -> dict[str, Any]:
        return {}

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Rule:
        """Create from the persisted rule form, dispatching on ``kind``."""
        return rule_from_dict(data)


@dataclass
class SensitiveFileRule(Rule):
    """Flags changes to files whose path matches any pattern."""

    KIND: ClassVar[RuleKind] = RuleKind.SENSITIVE_FILE

    patterns: list[str] = field(default_factory=list)

    def config_to_dict(self) -> dict[str, Any]:
        return {"patterns": list(self.patterns)}

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"patterns": _string_list(data, "patterns")}


@dataclass
class LargeChangeRule(Rule):
    """Flags files whose added plus removed lines exceed a threshold."""

    KIND: ClassVar[RuleKind] = RuleKind.LARGE_CHANGE

    threshold: int = 0

    def config_to_dict(self) -> dict[str, Any]:
        return {"threshold": self.threshold}

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"threshold": _non_negative_int(data, "threshold")}


@dataclass
class SuspiciousKeywordsRule(Rule):
    """Flags added lines containing any keyword (case-insensitive)."""

    KIND: ClassVar[RuleKind] = RuleKind.SUSPICIOUS_KEYWORDS

    keywords: list[str] = field(default_factory=list)

    def config_to_dict(self) -> dict[str, Any]:
        return {"keywords": list(self.keywords)}

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"keywords": _string_list(data, "keywords")}


@dataclass
class PotentialSecretRule(Rule):
    """Flags added lines matching any secret pattern."""

    KIND: ClassVar[RuleKind] = RuleKind.POTENTIAL_SECRET

    patterns: list[str] = field(default_factory=list)

    def config_to_dict(self) -> dict[str, Any]:
        return {"patterns": list(self.patterns)}

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"patterns": _string_list(data, "patterns")}


@dataclass
class LargeMigrationRule(Rule):
    """Flags migration files whose total changes exceed a threshold."""

    KIND: ClassVar[RuleKind] = RuleKind.LARGE_MIGRATION

    threshold: int = 0
    migration_patterns: list[str] = field(default_factory=list)

    def config_to_dict(self) -> dict[str, Any]:
        return {
            "threshold": self.threshold,
            "migrationPatterns": list(self.migration_patterns),
        }

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "threshold": _non_negative_int(data, "threshold"),
            "migration_patterns": _string_list(data, "migrationPatterns"),
        }


@dataclass
class PathPatternRule(Rule):
    """Flags paths that match (include) or do not match (exclude) a pattern."""

    KIND: ClassVar[RuleKind] = RuleKind.PATH_PATTERN

    pattern: str = ""
    match_type: PathMatchType = PathMatchType.INCLUDE

    def config_to_dict(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "matchType": self.match_type.value}

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "pattern": _string(data, "pattern"),
            "match_type": PathMatchType(data.get("matchType", "include")),
        }


@dataclass
class LinePatternRule(Rule):
    """Flags files where any added, removed or either line matches a pattern."""

    KIND: ClassVar[RuleKind] = RuleKind.LINE_PATTERN

    pattern: str = ""
    match_type: LineScope = LineScope.ADDED

    def config_to_dict(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "matchType": self.match_type.value}

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "pattern": _string(data, "pattern"),
            "match_type": LineScope(data.get("matchType", "added")),
        }


@dataclass
class FileSizeRule(Rule):
    """Flags files whose added content exceeds a byte budget."""

    KIND: ClassVar[RuleKind] = RuleKind.FILE_SIZE

    max_size: int = 0

    def config_to_dict(self) -> dict[str, Any]:
        return {"maxSize": self.max_size}

    @classmethod
    def config_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"max_size": _non_negative_int(data, "maxSize")}


@dataclass
class UnknownRule(Rule):
    """A rule of a kind this build does not understand. Never matches."""

    unknown_kind: str = ""
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return self.unknown_kind

    def config_to_dict(self) -> dict[str, Any]:
        return dict(self.config)


RULE_TYPES: dict[RuleKind, type[Rule]] = {
    RuleKind.SENSITIVE_FILE: SensitiveFileRule,
    RuleKind.LARGE_CHANGE: LargeChangeRule,
    RuleKind.SUSPICIOUS_KEYWORDS: SuspiciousKeywordsRule,
    RuleKind.POTENTIAL_SECRET: PotentialSecretRule,
    RuleKind.LARGE_MIGRATION: LargeMigrationRule,
    RuleKind.PATH_PATTERN: PathPatternRule,
    RuleKind.LINE_PATTERN: LinePatternRule,
    RuleKind.FILE_SIZE: FileSizeRule,
}

_COMMON_FIELDS = {"id", "name", "description", "enabled", "severity", "kind", "type"}


def rule_from_dict(data: dict[str, Any]) -> Rule:
    """Build the rule dataclass matching ``data["kind"]``.

    The ``type`` key is accepted as an alias of ``kind``.

    Raises:
        PolicyFormatError: If a common field is missing or malformed
    """
    if not isinstance(data, dict):
        raise PolicyFormatError(f"rule must be an object, got {type(data).__name__}")
    kind = data.get("kind", data.get("type"))
    try:
        common: dict[str, Any] = {
            "id": data["id"],
            "name": data["name"],
            "severity": Severity.from_string(data["severity"]),
            "enabled": bool(data.get("enabled", True)),
            "description": data.get("description"),
        }
    except KeyError as e:
        raise PolicyFormatError(f"rule is missing required field {e.args[0]!r}") from e
    except (AttributeError, ValueError) as e:
        raise PolicyFormatError(f"rule {data.get('id')!r}: {e}") from e
    if not kind:
        raise PolicyFormatError(f"rule {common['id']!r} is missing required field 'kind'")

    try:
        rule_kind = RuleKind(kind)
    except ValueError:
        config = {k: v for k, v in data.items() if k not in _COMMON_FIELDS}
        return UnknownRule(**common, unknown_kind=str(kind), config=config)

    rule_type = RULE_TYPES[rule_kind]
    try:
        config = rule_type.config_from_dict(data)
    except (TypeError, ValueError) as e:
        raise PolicyFormatError(f"rule {common['id']!r}: {e}") from e
    return rule_type(**common, **config)


@dataclass
class Policy:
    """A named, versioned, ordered collection of rules.

    Attributes:
        id: Policy identifier
        name: Human-readable name
        version: Policy version string
        rules: Rules in evaluation order
        description: Optional description
        created_at: ISO-8601 creation timestamp
        updated_at: ISO-8601 last update timestamp
    """

    id: str
    name: str
    version: str = "1.0.0"
    rules: list[Rule] = field(default_factory=list)
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def get_enabled_rules(self) -> list[Rule]:
        """Get all enabled rules."""
        return [r for r in self.rules if r.enabled]

    def get_rule(self, rule_id: str) -> Rule | None:
        """Get rule by ID."""
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted policy form."""
        result: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.description is not None:
            result["description"] = self.description
        result["version"] = self.version
        result["rules"] = [r.to_dict() for r in self.rules]
        if self.created_at is not None:
            result["createdAt"] = self.created_at
        if self.updated_at is not None:
            result["updatedAt"] = self.updated_at
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Policy:
        """Create from the persisted policy form.

        Raises:
            PolicyFormatError: If required fields are missing
        """
        if not isinstance(data, dict):
            raise PolicyFormatError(f"expected an object, got {type(data).__name__}")
        missing = [key for key in ("id", "name", "version") if not data.get(key)]
        if missing:
            raise PolicyFormatError(f"missing required fields: {', '.join(missing)}")
        if not isinstance(data.get("rules"), list):
            raise PolicyFormatError("rules must be an array")

        rules = []
        for i, entry in enumerate(data["rules"]):
            try:
                rules.append(rule_from_dict(entry))
            except PolicyFormatError as e:
                raise PolicyFormatError(e.message, f"rules[{i}]") from e
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            version=str(data["version"]),
            rules=rules,
            description=data.get("description"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class RuleViolation:
    """A single rule match recorded against one file."""

    rule_id: str
    file_path: str
    severity: Severity
    message: str | None = None
    line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "rule_id": self.rule_id,
            "file_path": self.file_path,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.line is not None:
            result["line"] = self.line
        return result


@dataclass
class RuleResult:
    """Outcome of evaluating rules over a set of files."""

    decision: Decision
    violations: list[RuleViolation] = field(default_factory=list)

    @property
    def blocking(self) -> list[RuleViolation]:
        return [v for v in self.violations if v.severity is Severity.BLOCK]

    @property
    def warnings(self) -> list[RuleViolation]:
        return [v for v in self.violations if v.severity is Severity.WARN]

    def has_blocking(self) -> bool:
        """Check if any violation is blocking."""
        return self.decision is Severity.BLOCK

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.value,
            "violations_count": len(self.violations),
            "violations": [v.to_dict() for v in self.violations],
        }
