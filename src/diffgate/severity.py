"""Severity scale shared by rules, violations and decisions.

A rule carries a severity, every violation inherits it, and the overall
decision for a change set is the highest severity among the violations.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class Severity(Enum):
    """Governance severity levels, ordered allow < warn < block."""

    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"

    @classmethod
    def from_string(cls, value: str) -> Severity:
        """Parse severity from string (case-insensitive)."""
        value = value.lower()
        for member in cls:
            if member.value == value:
                return member
        raise ValueError(f"Unknown severity: {value}")

    @property
    def rank(self) -> int:
        return _ORDER[self]

    def __lt__(self, other: Severity) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: Severity) -> bool:
        return self < other or self == other

    def __gt__(self, other: Severity) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return not (self <= other)

    def __ge__(self, other: Severity) -> bool:
        return not (self < other)


_ORDER = {
    Severity.ALLOW: 0,
    Severity.WARN: 1,
    Severity.BLOCK: 2,
}

# The decision scale is the severity scale.
Decision = Severity


def severity_order(severity: Severity | str) -> int:
    """Get numeric order for severity (higher = more severe)."""
    if isinstance(severity, str):
        severity = Severity.from_string(severity)
    return severity.rank


def reduce_decision(severities: Iterable[Severity]) -> Decision:
    """Reduce violation severities to a single decision.

    ``block`` if any severity is block, else ``warn`` if any is warn,
    else ``allow``. Order of the input does not matter.
    """
    return max(severities, default=Severity.ALLOW)
