"""
Report generation for Agent Trials.

Generates human-readable and machine-readable reports
from test runs.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional
import json
from statistics import mean

from ..models.result import RunStatus, TestRun
from ..models.test_case import TestCase


@dataclass
class Report:
    """Summary report of test runs.

    Contains aggregate statistics and individual runs.
    """

    timestamp: datetime
    total_tests: int
    passed: int
    failed: int
    errors: int
    pass_rate: float
    avg_score: Optional[float]
    avg_duration_seconds: float
    total_duration_seconds: float
    runs: List[TestRun]
    test_names: Dict[str, str]

    def name_for(self, run: TestRun) -> str:
        return self.test_names.get(run.test_case_id, run.test_case_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "summary": {
                "total": self.total_tests,
                "passed": self.passed,
                "failed": self.failed,
                "errors": self.errors,
                "pass_rate": round(self.pass_rate, 2),
                "avg_score": round(self.avg_score, 2) if self.avg_score is not None else None,
                "avg_duration_seconds": round(self.avg_duration_seconds, 2),
                "total_duration_seconds": round(self.total_duration_seconds, 2),
            },
            "results": [
                dict(r.to_dict(), test_name=self.name_for(r)) for r in self.runs
            ],
        }


class Reporter:
    """Generates reports from test runs.

    Supports multiple output formats:
    - JSON (for programmatic consumption)
    - Markdown (for human reading)
    - Summary (brief console output)

    Usage:
        reporter = Reporter()
        report = reporter.generate(batch.runs, test_cases)
        print(reporter.to_markdown(report))
    """

    def generate(self, runs: List[TestRun], test_cases: Optional[List[TestCase]] = None) -> Report:
        """Generate a summary report.

        Args:
            runs: Terminal test runs
            test_cases: Definitions, used for display names

        Returns:
            Report with aggregate statistics
        """
        names = {tc.id: tc.name for tc in test_cases or []}
        total = len(runs)

        passed = sum(1 for r in runs if r.status == RunStatus.PASSED)
        failed = sum(1 for r in runs if r.status == RunStatus.FAILED)
        errors = sum(1 for r in runs if r.status == RunStatus.ERROR)

        durations = [(r.duration_ms or 0) / 1000 for r in runs]
        scores = [r.score for r in runs if r.score is not None]

        return Report(
            timestamp=datetime.now(),
            total_tests=total,
            passed=passed,
            failed=failed,
            errors=errors,
            pass_rate=(passed / total * 100) if total > 0 else 0.0,
            avg_score=mean(scores) if scores else None,
            avg_duration_seconds=mean(durations) if durations else 0.0,
            total_duration_seconds=sum(durations),
            runs=list(runs),
            test_names=names,
        )

    def to_json(self, report: Report, indent: int = 2) -> str:
        """Export report as JSON."""
        return json.dumps(report.to_dict(), indent=indent, default=str)

    def to_markdown(self, report: Report) -> str:
        """Export report as Markdown."""
        avg_score = f"{report.avg_score:.1f}/10" if report.avg_score is not None else "n/a"
        md = f"""# Agent Trials Report

**Generated:** {report.timestamp.strftime("%Y-%m-%d %H:%M:%S")}

## Summary

| Metric | Value |
|--------|-------|
| Total Tests | {report.total_tests} |
| Passed | {report.passed} |
| Failed | {report.failed} |
| Errors | {report.errors} |
| **Pass Rate** | **{report.pass_rate:.1f}%** |
| Avg Score | {avg_score} |
| Avg Duration | {report.avg_duration_seconds:.1f}s |
| Total Duration | {report.total_duration_seconds:.1f}s |

## Results by Test

| ID | Name | Status | Score | Duration | Agent |
|----|------|--------|-------|----------|-------|
"""
        for r in report.runs:
            score = f"{r.score}/10" if r.score is not None else "-"
            agent = r.selected_agent_name or r.selected_agent_id or "-"
            md += (
                f"| {r.test_case_id} | {report.name_for(r)} | "
                f"{_STATUS_EMOJI.get(r.status, '❓')} {r.status.value} | "
                f"{score} | {(r.duration_ms or 0) / 1000:.1f}s | {agent} |\n"
            )

        not_passed = [r for r in report.runs if not r.passed]
        if not_passed:
            md += """
## Failure Details

"""
            for r in not_passed:
                md += f"### {r.test_case_id}: {report.name_for(r)}\n\n"
                if r.error:
                    md += f"**Error:** {r.error}\n\n"
                if r.generated_message:
                    md += f"**Generated message:** {r.generated_message}\n\n"
                if r.planner_reasoning:
                    md += f"**Planner reasoning:** {r.planner_reasoning}\n\n"
                if r.judge_reasoning:
                    md += f"**Judge reasoning:** {r.judge_reasoning}\n\n"

        md += """
---
*Generated by Agent Trials*
"""
        return md

    def to_summary(self, report: Report) -> str:
        """Generate brief summary for console output."""
        status_emoji = "✅" if report.passed == report.total_tests else "❌"

        lines = [
            f"\n{status_emoji} Agent Trials Results",
            f"   Passed: {report.passed}/{report.total_tests} ({report.pass_rate:.1f}%)",
        ]

        if report.failed > 0:
            lines.append(f"   Failed: {report.failed}")
        if report.errors > 0:
            lines.append(f"   Errors: {report.errors}")
        if report.avg_score is not None:
            lines.append(f"   Avg score: {report.avg_score:.1f}/10")

        lines.append(f"   Duration: {report.total_duration_seconds:.1f}s")

        for r in report.runs:
            if r.status == RunStatus.ERROR and r.error:
                lines.append(f"   💥 {report.name_for(r)}: {r.error[:60]}")

        return "\n".join(lines)


_STATUS_EMOJI = {
    RunStatus.PASSED: "✅",
    RunStatus.FAILED: "❌",
    RunStatus.ERROR: "💥",
    RunStatus.RUNNING: "⏳",
}
