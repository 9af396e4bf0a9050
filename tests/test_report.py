"""Tests for severity ordering and result rendering."""

from __future__ import annotations

import json

import pytest

from diffgate.diff import diff_summary, parse_diff
from diffgate.policy import LargeChangeRule, RuleResult, RuleViolation, default_rules
from diffgate.report import (
    EXIT_ALLOW,
    EXIT_BLOCK,
    EXIT_WARN,
    exit_code,
    explain_rule,
    render_json,
    render_summary,
    render_text,
)
from diffgate.severity import Severity, reduce_decision, severity_order

DIFF = """diff --git a/app.js b/app.js
--- a/app.js
+++ b/app.js
@@ -1,2 +1,3 @@
 const a = 1;
-const b = 2;
+const b = 3;
+const c = 4;
diff --git a/old.txt b/new.txt
similarity index 100%
rename from old.txt
rename to new.txt
"""


@pytest.fixture
def summary():
    return diff_summary(parse_diff(DIFF))


class TestSeverity:
    """Test severity ordering."""

    def test_ordering(self):
        """Test allow < warn < block."""
        assert Severity.ALLOW < Severity.WARN < Severity.BLOCK
        assert Severity.BLOCK >= Severity.BLOCK
        assert not Severity.WARN > Severity.BLOCK

    def test_from_string(self):
        """Test case-insensitive parsing."""
        assert Severity.from_string("Block") == Severity.BLOCK
        with pytest.raises(ValueError):
            Severity.from_string("fatal")

    def test_severity_order(self):
        """Test numeric order from members and strings."""
        assert severity_order(Severity.ALLOW) == 0
        assert severity_order("warn") == 1
        assert severity_order("BLOCK") == 2

    @pytest.mark.parametrize("severities,expected", [
        ([], Severity.ALLOW),
        ([Severity.ALLOW, Severity.ALLOW], Severity.ALLOW),
        ([Severity.WARN, Severity.ALLOW], Severity.WARN),
        ([Severity.WARN, Severity.BLOCK, Severity.WARN], Severity.BLOCK),
    ])
    def test_reduce_decision(self, severities, expected):
        """Test the decision is the highest severity."""
        assert reduce_decision(severities) == expected
        assert reduce_decision(reversed(severities)) == expected


class TestExitCode:
    """Test decision to exit code mapping."""

    def test_default_threshold(self):
        """Test 0/1/2 for allow/warn/block."""
        assert exit_code(Severity.ALLOW) == EXIT_ALLOW == 0
        assert exit_code(Severity.WARN) == EXIT_WARN == 1
        assert exit_code(Severity.BLOCK) == EXIT_BLOCK == 2

    def test_fail_on_block(self):
        """Test warn passes when failing only on block."""
        assert exit_code(Severity.WARN, Severity.BLOCK) == 0
        assert exit_code(Severity.BLOCK, Severity.BLOCK) == 2


class TestRendering:
    """Test text and JSON output."""

    def test_render_summary(self, summary):
        """Test the summary block."""
        text = render_summary(summary)

        assert text.startswith("Diff Analysis Summary")
        assert "Files changed: 2" in text
        assert "Lines added: 2" in text
        assert "Lines removed: 1" in text
        assert "Net change: +1" in text
        assert "~ app.js (modify, +2/-1)" in text
        assert "→ new.txt (rename, +0/-0)" in text

    def test_render_text_with_violations(self, summary):
        """Test violations show severity, location and message."""
        result = RuleResult(
            decision=Severity.BLOCK,
            violations=[
                RuleViolation("secret", "app.js", Severity.BLOCK, "Potential secrets detected", 2),
                RuleViolation("big", "new.txt", Severity.WARN, None),
            ],
        )

        text = render_text(summary, result)

        assert "Rule Violations:" in text
        assert "[BLOCK] secret" in text
        assert "File: app.js:2" in text
        assert "Potential secrets detected" in text
        assert "File: new.txt\n" in text
        assert text.endswith("BLOCK")

    def test_render_text_clean(self, summary):
        """Test a clean result."""
        text = render_text(summary, RuleResult(decision=Severity.ALLOW))

        assert "✓ No rule violations detected" in text
        assert text.endswith("ALLOW")

    def test_render_json(self, summary):
        """Test the JSON document shape."""
        result = RuleResult(
            decision=Severity.WARN,
            violations=[RuleViolation("big", "app.js", Severity.WARN, "Too big")],
        )

        data = json.loads(render_json(summary, result))

        assert data["summary"]["total_files"] == 2
        assert data["summary"]["files"][1]["change_type"] == "rename"
        assert data["result"]["decision"] == "warn"
        assert data["result"]["violations"][0]["message"] == "Too big"


class TestExplainRule:
    """Test rule explanations."""

    def test_explain_default_rule(self):
        """Test explanation of a list-configured rule."""
        rule = default_rules()[0]

        text = explain_rule(rule)

        assert text.startswith("# Rule: sensitive-file-default")
        assert "**Kind:** sensitive-file" in text
        assert "## Description" in text
        assert "- patterns:" in text
        assert "  - `\\.env$`" in text

    def test_explain_scalar_config(self):
        """Test explanation of a scalar-configured rule without description."""
        rule = LargeChangeRule(id="big", name="Big", threshold=10, enabled=False)

        text = explain_rule(rule)

        assert "**Enabled:** no" in text
        assert "## Description" not in text
        assert "- threshold: `10`" in text
