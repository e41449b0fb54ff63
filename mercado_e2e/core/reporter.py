"""
Run reporting
A hub receives one record per test plus the orchestrators' operation timings,
and hands them to every registered reporter; end() finalizes each reporter once.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from mercado_e2e.core.orchestrator import OperationResult
from mercado_e2e.core.performance_tracker import PerformanceTracker

logger = logging.getLogger(__name__)

OUTCOMES = ("passed", "failed", "skipped")


@dataclass
class TestRecord:
    """Outcome of one collected test"""
    __test__ = False

    nodeid: str
    outcome: str
    duration: float
    markers: List[str] = field(default_factory=list)
    message: Optional[str] = None


@dataclass
class RunSummary:
    """Everything a reporter sees at the end of a run"""
    started_at: str
    finished_at: str
    tests: List[TestRecord]
    operations: List[OperationResult]
    leftover_market_ids: List[str] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)

    def ran_live_tests(self) -> bool:
        return any("live" in record.markers and record.outcome != "skipped" for record in self.tests)

    def totals(self) -> Dict[str, int]:
        counts = {outcome: 0 for outcome in OUTCOMES}
        for record in self.tests:
            counts[record.outcome] = counts.get(record.outcome, 0) + 1
        counts["total"] = len(self.tests)
        return counts

    def operation_stats(self) -> Dict[str, Dict[str, Any]]:
        by_operation: Dict[str, List[OperationResult]] = {}
        for result in self.operations:
            by_operation.setdefault(result.operation, []).append(result)

        stats = {}
        for operation, results in sorted(by_operation.items()):
            durations = [r.duration for r in results]
            stats[operation] = {
                "count": len(results),
                "avg_duration": sum(durations) / len(durations),
                "max_duration": max(durations),
                "status_codes": sorted({r.status_code for r in results}),
            }
        return stats


class BaseReporter(ABC):
    """A sink for run results"""

    def after_test(self, record: TestRecord):
        """Called once per test as soon as its outcome is known"""

    @abstractmethod
    def end(self, summary: RunSummary):
        """Called once after all tests complete"""


class ConsoleReporter(BaseReporter):
    """Prints a run summary"""

    def __init__(self, title: str = "MERCADO E2E SUITE SUMMARY", stream=None):
        self.title = title
        self.stream = stream

    def _print(self, text: str = ""):
        print(text, file=self.stream)

    def end(self, summary: RunSummary):
        totals = summary.totals()

        self._print("\n" + "=" * 60)
        self._print(f"🧪 {self.title}")
        self._print("=" * 60)

        for operation, stats in summary.operation_stats().items():
            codes = ", ".join(str(code) for code in stats["status_codes"])
            self._print(f"   {operation:<7} {stats['count']:>3} ops, avg {stats['avg_duration']:.2f}s, "
                        f"max {stats['max_duration']:.2f}s, status [{codes}]")

        self._print("-" * 60)
        self._print(f"📈 OVERALL: {totals['passed']}/{totals['total']} tests passed, "
                    f"{totals['failed']} failed, {totals['skipped']} skipped")

        if summary.leftover_market_ids:
            self._print(f"⚠️  {len(summary.leftover_market_ids)} markets left behind: "
                        f"{', '.join(summary.leftover_market_ids)}")

        if totals["failed"] == 0:
            self._print("🎉 ALL EXECUTED TESTS PASSED")
        else:
            for record in summary.tests:
                if record.outcome == "failed":
                    self._print(f"❌ {record.nodeid}")
        self._print("=" * 60)


class JsonReporter(BaseReporter):
    """Writes a machine-readable report file"""

    def __init__(self, path: str, live_only: bool = False):
        self.path = Path(path)
        self.live_only = live_only

    def build_payload(self, summary: RunSummary) -> Dict[str, Any]:
        return {
            "started_at": summary.started_at,
            "finished_at": summary.finished_at,
            "config": summary.config,
            "totals": summary.totals(),
            "operations": summary.operation_stats(),
            "tests": [asdict(record) for record in summary.tests],
            "leftover_market_ids": summary.leftover_market_ids,
        }

    def end(self, summary: RunSummary):
        if self.live_only and not summary.ran_live_tests():
            logger.info("No live test ran, keeping %s", self.path)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.build_payload(summary), indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Report written to %s", self.path)


class PerformanceReporter(BaseReporter):
    """Feeds operation timings into the SQLite performance history"""

    def __init__(self, tracker: PerformanceTracker):
        self.tracker = tracker
        self.analysis: Optional[Dict[str, Any]] = None

    def end(self, summary: RunSummary):
        timings = [
            {"operation": r.operation, "duration": r.duration, "success": r.success}
            for r in summary.operations
        ]
        self.analysis = self.tracker.analyze_run(timings)
        for detail in self.analysis["regression_details"]:
            print(f"⚠️  {detail['recommendation']}")


class ReporterHub:
    """Registry of reporters for one run"""

    def __init__(self):
        self.reporters: List[BaseReporter] = []
        self.records: Dict[str, TestRecord] = {}
        self.operations: List[OperationResult] = []
        self.started_at = datetime.now(timezone.utc).isoformat()
        self.ended = False

    def add(self, reporter: BaseReporter):
        self.reporters.append(reporter)

    def after_test(self, record: TestRecord):
        # One record per test; a failing teardown overrides a passed call
        previous = self.records.get(record.nodeid)
        if previous is not None and record.outcome == "passed":
            return
        self.records[record.nodeid] = record
        for reporter in self.reporters:
            reporter.after_test(record)

    def record_operations(self, results: Iterable[OperationResult]):
        self.operations.extend(results)

    def end(self, leftover_market_ids: Optional[List[str]] = None, config: Optional[Dict[str, Any]] = None) -> Optional[RunSummary]:
        """Finalize every reporter exactly once"""
        if self.ended:
            return None
        self.ended = True

        summary = RunSummary(
            started_at=self.started_at,
            finished_at=datetime.now(timezone.utc).isoformat(),
            tests=list(self.records.values()),
            operations=list(self.operations),
            leftover_market_ids=list(leftover_market_ids or []),
            config=dict(config or {}),
        )
        for reporter in self.reporters:
            try:
                reporter.end(summary)
            except Exception:
                logger.exception("%s failed to finalize", type(reporter).__name__)
        return summary
