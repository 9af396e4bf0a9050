"""Rule evaluation over parsed diff files.

Every enabled rule is applied to every file. Each (file, rule) pair yields at
most one violation, and violations are reported file-major, rule-minor in the
order the caller supplied. The decision is the highest violation severity.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence

from diffgate.diff import DiffFile, LineKind
from diffgate.policy.models import (
    FileSizeRule,
    LargeChangeRule,
    LargeMigrationRule,
    LinePatternRule,
    LineScope,
    PathMatchType,
    PathPatternRule,
    Policy,
    PotentialSecretRule,
    Rule,
    RuleKind,
    RuleResult,
    RuleViolation,
    SensitiveFileRule,
    SuspiciousKeywordsRule,
)
from diffgate.severity import reduce_decision

logger = logging.getLogger(__name__)

# (default message, line number of first matching line)
Match = tuple[str, int | None]


class InvalidRuleConfig(Exception):
    """A rule's configuration cannot be applied (e.g. a bad regex)."""


class RuleEvaluator:
    """Evaluate a fixed list of rules against diff files.

    Compiled patterns are cached on the instance, so one evaluator serves a
    single evaluation; nothing is shared between instances.
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        self.rules = list(rules)
        self._patterns: dict[str, re.Pattern[str]] = {}
        self._failed: set[str] = set()

    def evaluate(self, files: Sequence[DiffFile]) -> RuleResult:
        """Evaluate all enabled rules against all files."""
        active = [r for r in self.rules if r.enabled]
        violations: list[RuleViolation] = []
        for diff_file in files:
            for rule in active:
                violation = self.evaluate_rule(rule, diff_file)
                if violation is not None:
                    violations.append(violation)

        decision = reduce_decision(v.severity for v in violations)
        logger.debug(
            "Evaluated %d rules over %d files: %d violations, decision=%s",
            len(active), len(files), len(violations), decision.value,
        )
        return RuleResult(decision=decision, violations=violations)

    def evaluate_rule(self, rule: Rule, diff_file: DiffFile) -> RuleViolation | None:
        """Evaluate a single rule against a single file."""
        if not rule.enabled:
            return None

        matcher = _MATCHERS.get(rule.KIND) if rule.KIND is not None else None
        if matcher is None:
            logger.debug("Skipping rule %s of unsupported kind %r", rule.id, rule.kind)
            return None

        try:
            match = matcher(self, rule, diff_file)
        except (InvalidRuleConfig, TypeError, AttributeError) as e:
            # one warning per rule, however many files it is applied to
            if rule.id not in self._failed:
                self._failed.add(rule.id)
                logger.warning("Rule %s skipped: %s", rule.id, e)
            return None

        if match is None:
            return None
        message, line = match
        return RuleViolation(
            rule_id=rule.id,
            file_path=diff_file.path,
            severity=rule.severity,
            message=rule.description or message,
            line=line,
        )

    def _compile(self, pattern: str) -> re.Pattern[str]:
        compiled = self._patterns.get(pattern)
        if compiled is None:
            try:
                compiled = re.compile(pattern, re.IGNORECASE)
            except (re.error, TypeError) as e:
                raise InvalidRuleConfig(f"invalid pattern {pattern!r}: {e}") from e
            self._patterns[pattern] = compiled
        return compiled

    def _compile_all(self, patterns: Iterable[str]) -> list[re.Pattern[str]]:
        return [self._compile(p) for p in patterns]

    def _match_sensitive_file(self, rule: SensitiveFileRule, diff_file: DiffFile) -> Match | None:
        patterns = self._compile_all(rule.patterns)
        if any(p.search(diff_file.path) for p in patterns):
            return "Modification of sensitive file detected", None
        return None

    def _match_large_change(self, rule: LargeChangeRule, diff_file: DiffFile) -> Match | None:
        total = diff_file.total_changes
        if total > rule.threshold:
            return (
                f"Large change detected: {total} lines modified (threshold: {rule.threshold})",
                None,
            )
        return None

    def _match_suspicious_keywords(
        self, rule: SuspiciousKeywordsRule, diff_file: DiffFile
    ) -> Match | None:
        added = [
            (line.content.lower(), line.line_number)
            for line in diff_file.iter_lines(LineKind.ADDED)
        ]
        found = [
            keyword for keyword in rule.keywords
            if any(keyword.lower() in content for content, _ in added)
        ]
        if not found:
            return None
        needles = [keyword.lower() for keyword in found]
        first_line = next(
            (number for content, number in added if any(n in content for n in needles)),
            None,
        )
        return f"Suspicious keywords found: {', '.join(found)}", first_line

    def _match_potential_secret(self, rule: PotentialSecretRule, diff_file: DiffFile) -> Match | None:
        patterns = self._compile_all(rule.patterns)
        count = 0
        first_line: int | None = None
        for line in diff_file.iter_lines(LineKind.ADDED):
            # count each line once, however many patterns hit it
            if any(p.search(line.content) for p in patterns):
                count += 1
                if first_line is None:
                    first_line = line.line_number
        if count:
            return f"Potential secrets detected: {count} occurrence(s)", first_line
        return None

    def _match_large_migration(self, rule: LargeMigrationRule, diff_file: DiffFile) -> Match | None:
        patterns = self._compile_all(rule.migration_patterns)
        if not any(p.search(diff_file.path) for p in patterns):
            return None
        total = diff_file.total_changes
        if total > rule.threshold:
            return (
                f"Large database migration detected: {total} lines (threshold: {rule.threshold})",
                None,
            )
        return None

    def _match_path_pattern(self, rule: PathPatternRule, diff_file: DiffFile) -> Match | None:
        matches = self._compile(rule.pattern).search(diff_file.path) is not None
        if rule.match_type is PathMatchType.INCLUDE and matches:
            return f"File path matches pattern: {rule.pattern}", None
        if rule.match_type is PathMatchType.EXCLUDE and not matches:
            return f"File path does not match pattern: {rule.pattern}", None
        return None

    def _match_line_pattern(self, rule: LinePatternRule, diff_file: DiffFile) -> Match | None:
        pattern = self._compile(rule.pattern)
        if rule.match_type is LineScope.ADDED:
            lines = diff_file.iter_lines(LineKind.ADDED)
        elif rule.match_type is LineScope.REMOVED:
            lines = diff_file.iter_lines(LineKind.REMOVED)
        else:
            lines = diff_file.iter_lines()

        count = 0
        first_line: int | None = None
        for line in lines:
            if pattern.search(line.content):
                count += 1
                if first_line is None:
                    first_line = line.line_number
        if count:
            return f"Line pattern matched: {count} occurrence(s)", first_line
        return None

    def _match_file_size(self, rule: FileSizeRule, diff_file: DiffFile) -> Match | None:
        # +1 per line for the newline the diff strips
        size = sum(len(content) + 1 for content in diff_file.added_content())
        if size > rule.max_size:
            return f"File size exceeds limit: {size} bytes (max: {rule.max_size} bytes)", None
        return None


_MATCHERS: dict[RuleKind, Callable[..., Match | None]] = {
    RuleKind.SENSITIVE_FILE: RuleEvaluator._match_sensitive_file,
    RuleKind.LARGE_CHANGE: RuleEvaluator._match_large_change,
    RuleKind.SUSPICIOUS_KEYWORDS: RuleEvaluator._match_suspicious_keywords,
    RuleKind.POTENTIAL_SECRET: RuleEvaluator._match_potential_secret,
    RuleKind.LARGE_MIGRATION: RuleEvaluator._match_large_migration,
    RuleKind.PATH_PATTERN: RuleEvaluator._match_path_pattern,
    RuleKind.LINE_PATTERN: RuleEvaluator._match_line_pattern,
    RuleKind.FILE_SIZE: RuleEvaluator._match_file_size,
}

_unhandled = set(RuleKind) - set(_MATCHERS)
if _unhandled:
    raise RuntimeError(f"No matcher registered for rule kinds: {sorted(k.value for k in _unhandled)}")


def evaluate_rules(files: Sequence[DiffFile], rules: Iterable[Rule] = ()) -> RuleResult:
    """Evaluate rules against parsed diff files."""
    return RuleEvaluator(rules).evaluate(files)


def evaluate_policy(files: Sequence[DiffFile], policy: Policy) -> RuleResult:
    """Evaluate a policy's rules against parsed diff files."""
    return evaluate_rules(files, policy.rules)
