"""
Report generation for admission runs.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .comparator import Divergence


@dataclass
class ScenarioResult:
    """Result of a single scenario."""
    scenario: str
    expected: str
    actual: Optional[str]
    passed: bool
    execution_time_ms: float
    divergence: Optional[Divergence] = None


@dataclass
class RunReport:
    """Complete report of one run."""
    timestamp: str
    kms_endpoint: str
    controller_endpoint: str
    key_id: Optional[int]
    start_height: Optional[int]
    total_scenarios: int
    total_passed: int
    total_failed: int
    total_skipped: int
    execution_time_ms: float
    results: List[ScenarioResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.total_failed == 0 and self.total_skipped == 0


class ReportGenerator:
    """Builds and prints run reports."""

    def generate_report(
        self,
        results: List[ScenarioResult],
        total_scenarios: int,
        kms_endpoint: str,
        controller_endpoint: str,
        key_id: Optional[int],
        start_height: Optional[int],
        execution_time_ms: float,
    ) -> RunReport:
        """
        Generate a run report.

        Args:
            results: Results of the scenarios that ran, in order
            total_scenarios: Number of scenarios in the table
            kms_endpoint: kms service target
            controller_endpoint: controller service target
            key_id: Signing key used, if one was generated
            start_height: Block height observed before the first scenario
            execution_time_ms: Total execution time

        Returns:
            RunReport object
        """
        total_passed = sum(1 for r in results if r.passed)
        total_failed = sum(1 for r in results if not r.passed)

        return RunReport(
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            kms_endpoint=kms_endpoint,
            controller_endpoint=controller_endpoint,
            key_id=key_id,
            start_height=start_height,
            total_scenarios=total_scenarios,
            total_passed=total_passed,
            total_failed=total_failed,
            total_skipped=total_scenarios - len(results),
            execution_time_ms=execution_time_ms,
            results=results,
        )

    def print_summary(self, report: RunReport) -> None:
        """Print summary to console."""
        print("\n" + "=" * 60)
        print("Transaction Admission Results")
        print("=" * 60)
        print(f"kms:        {report.kms_endpoint}")
        print(f"controller: {report.controller_endpoint}")
        if report.start_height is not None:
            print(f"Height:     {report.start_height}")
        print()
        for r in report.results:
            status = "PASS" if r.passed else "FAIL"
            print(f"  [{status}] {r.scenario}")
            if r.divergence and r.divergence.details:
                print(f"      {r.divergence.details}")
        print()
        print(f"Passed:     {report.total_passed}/{report.total_scenarios}")
        print(f"Failed:     {report.total_failed}")
        print(f"Skipped:    {report.total_skipped}")

        status = "PASSED" if report.passed else "FAILED"
        print()
        print(f"Overall: {status}")
        print("=" * 60)

    def report_to_dict(self, report: RunReport) -> Dict[str, Any]:
        """Convert report to dictionary for JSON serialization."""
        return {
            "timestamp": report.timestamp,
            "kms_endpoint": report.kms_endpoint,
            "controller_endpoint": report.controller_endpoint,
            "key_id": report.key_id,
            "start_height": report.start_height,
            "total_scenarios": report.total_scenarios,
            "total_passed": report.total_passed,
            "total_failed": report.total_failed,
            "total_skipped": report.total_skipped,
            "execution_time_ms": report.execution_time_ms,
            "passed": report.passed,
            "results": [
                {
                    "scenario": r.scenario,
                    "expected": r.expected,
                    "actual": r.actual,
                    "passed": r.passed,
                    "execution_time_ms": r.execution_time_ms,
                    "details": r.divergence.details if r.divergence else None,
                }
                for r in report.results
            ],
        }
