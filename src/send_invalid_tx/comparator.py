"""
Outcome comparison for admission scenarios.
"""

from dataclasses import dataclass
from typing import List, Optional

from .types import Outcome


@dataclass
class Divergence:
    """A scenario whose observed outcome differs from the expected literal."""
    field: str
    expected: str
    actual: str
    scenario: str
    details: Optional[str] = None


@dataclass
class ComparisonResult:
    """Result of checking one outcome."""
    success: bool
    divergences: List[Divergence]

    @property
    def has_divergences(self) -> bool:
        return len(self.divergences) > 0


def _describe(message: str) -> str:
    return "<accepted>" if message == "" else repr(message)


class OutcomeComparator:
    """Compares observed outcomes against expected literals, byte for byte."""

    def compare(self, scenario: str, expected: str, outcome: Outcome) -> ComparisonResult:
        """
        Compare one outcome.

        Args:
            scenario: Name of the scenario
            expected: Expected message ("" for acceptance)
            outcome: What the controller returned

        Returns:
            ComparisonResult with at most one divergence
        """
        divergences = []

        if outcome.message != expected:
            if outcome.accepted != (expected == ""):
                details = (
                    "transaction accepted but a rejection was expected"
                    if outcome.accepted
                    else "transaction rejected but acceptance was expected"
                )
            else:
                details = "rejection message mismatch"
            divergences.append(Divergence(
                field="outcome",
                expected=expected,
                actual=outcome.message,
                scenario=scenario,
                details=f"{details}: expected {_describe(expected)}, got {_describe(outcome.message)}",
            ))

        return ComparisonResult(
            success=len(divergences) == 0,
            divergences=divergences,
        )
