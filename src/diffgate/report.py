"""Render evaluation results for terminals and machines."""

from __future__ import annotations

import json

from diffgate.diff import ChangeType, DiffSummary
from diffgate.policy.models import Rule, RuleResult
from diffgate.severity import Decision, Severity

EXIT_ALLOW = 0
EXIT_WARN = 1
EXIT_BLOCK = 2

CHANGE_ICONS = {
    ChangeType.ADD: "+",
    ChangeType.DELETE: "-",
    ChangeType.RENAME: "→",
    ChangeType.MODIFY: "~",
}

DECISION_ICONS = {
    Severity.ALLOW: "✓",
    Severity.WARN: "⚠️ ",
    Severity.BLOCK: "🚫",
}

RULE_WIDTH = 50


def exit_code(decision: Decision, fail_on: Severity = Severity.WARN) -> int:
    """Map a decision to a process exit code.

    0 for allow, 1 for warn, 2 for block; decisions below ``fail_on``
    exit 0.
    """
    if decision < fail_on:
        return EXIT_ALLOW
    if decision is Severity.BLOCK:
        return EXIT_BLOCK
    if decision is Severity.WARN:
        return EXIT_WARN
    return EXIT_ALLOW


def render_summary(summary: DiffSummary) -> str:
    """Render the diff summary block."""
    net = summary.net_change
    lines = [
        "Diff Analysis Summary",
        "─" * RULE_WIDTH,
        f"Files changed: {summary.total_files}",
        f"Lines added: {summary.total_added}",
        f"Lines removed: {summary.total_removed}",
        f"Net change: {'+' if net > 0 else ''}{net}",
    ]
    if summary.files:
        lines.extend(["", "Changed Files:"])
        for f in summary.files:
            icon = CHANGE_ICONS[f.change_type]
            lines.append(f"  {icon} {f.path} ({f.change_type.value}, +{f.added}/-{f.removed})")
    return "\n".join(lines)


def render_text(summary: DiffSummary, result: RuleResult) -> str:
    """Render summary, violations and decision as terminal text."""
    lines = [render_summary(summary), ""]

    if result.violations:
        lines.append("Rule Violations:")
        for v in result.violations:
            location = f"{v.file_path}:{v.line}" if v.line is not None else v.file_path
            lines.append(f"  [{v.severity.value.upper()}] {v.rule_id}")
            lines.append(f"     File: {location}")
            if v.message:
                lines.append(f"     {v.message}")
    else:
        lines.append("✓ No rule violations detected")

    lines.extend([
        "",
        "─" * RULE_WIDTH,
        f"Decision: {DECISION_ICONS[result.decision]} {result.decision.value.upper()}",
    ])
    return "\n".join(lines)


def render_json(summary: DiffSummary, result: RuleResult) -> str:
    """Render summary and result as a JSON document."""
    return json.dumps(
        {"summary": summary.to_dict(), "result": result.to_dict()},
        indent=2,
        ensure_ascii=False,
    )


def explain_rule(rule: Rule) -> str:
    """Generate human-readable explanation of a rule."""
    lines = [
        f"# Rule: {rule.id}",
        "",
        f"**Name:** {rule.name}",
        f"**Kind:** {rule.kind}",
        f"**Severity:** {rule.severity.value}",
        f"**Enabled:** {'yes' if rule.enabled else 'no'}",
        "",
    ]
    if rule.description:
        lines.extend(["## Description", "", rule.description, ""])

    config = rule.config_to_dict()
    if config:
        lines.extend(["## Configuration", ""])
        for key, value in config.items():
            if isinstance(value, list):
                lines.append(f"- {key}:")
                lines.extend(f"  - `{item}`" for item in value)
            else:
                lines.append(f"- {key}: `{value}`")
        lines.append("")

    return "\n".join(lines)
