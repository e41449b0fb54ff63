"""
Performance history and regression detection
Stores operation timings in SQLite and compares new runs against a rolling baseline
"""

import logging
import sqlite3
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from pathlib import Path
from statistics import mean
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

MIN_BASELINE_SAMPLES = 5
BASELINE_WINDOW_DAYS = 30


@dataclass
class PerformanceMetric:
    """Individual timing of one operation"""
    timestamp: str
    operation: str  # CREATE, LIST, READ, UPDATE, DELETE
    duration: float
    success: bool
    environment: str = "local"


@dataclass
class PerformanceBaseline:
    operation: str
    environment: str
    avg_duration: float
    p95_duration: float
    p99_duration: float
    sample_count: int
    last_updated: str


@dataclass
class RegressionResult:
    """Result of comparing one timing with its baseline"""
    operation: str
    current_duration: float
    baseline_avg: float
    baseline_p95: float
    regression_detected: bool
    severity: str  # "none", "minor", "major", "critical"
    change_percent: float
    recommendation: str


def calculate_percentile(values: List[float], percentile: int) -> float:
    """Linear-interpolated percentile"""
    if not values:
        return 0.0

    values_sorted = sorted(values)
    k = (len(values_sorted) - 1) * percentile / 100
    f = int(k)
    c = k - f

    if f == len(values_sorted) - 1:
        return values_sorted[f]

    return values_sorted[f] * (1 - c) + values_sorted[f + 1] * c


class PerformanceTracker:
    """Tracks operation timings across runs"""

    def __init__(self, db_path: str, environment: str = "local"):
        self.db_path = Path(db_path)
        self.environment = environment
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_database(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS operation_metrics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    duration REAL NOT NULL,
                    success INTEGER NOT NULL,
                    environment TEXT NOT NULL DEFAULT 'local'
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS operation_baselines (
                    operation TEXT NOT NULL,
                    environment TEXT NOT NULL,
                    avg_duration REAL NOT NULL,
                    p95_duration REAL NOT NULL,
                    p99_duration REAL NOT NULL,
                    sample_count INTEGER NOT NULL,
                    last_updated TEXT NOT NULL,
                    PRIMARY KEY (operation, environment)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_metrics_op_time
                ON operation_metrics(operation, timestamp)
            """)

    def record_metric(self, metric: PerformanceMetric):
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO operation_metrics (timestamp, operation, duration, success, environment) "
                "VALUES (?, ?, ?, ?, ?)",
                (metric.timestamp, metric.operation, metric.duration, int(metric.success), metric.environment),
            )

    def record(self, operation: str, duration: float, success: bool):
        """Convenience method to record one timing now"""
        self.record_metric(PerformanceMetric(
            timestamp=datetime.now().isoformat(),
            operation=operation,
            duration=duration,
            success=success,
            environment=self.environment,
        ))

    def get_recent_metrics(self, operation: str, days: int = BASELINE_WINDOW_DAYS) -> List[PerformanceMetric]:
        """Successful timings of one operation within the window"""
        cutoff_date = (datetime.now() - timedelta(days=days)).isoformat()

        with self._connect() as conn:
            rows = conn.execute("""
                SELECT timestamp, operation, duration, success, environment
                FROM operation_metrics
                WHERE operation = ? AND environment = ? AND timestamp >= ? AND success = 1
                ORDER BY timestamp DESC
            """, (operation, self.environment, cutoff_date)).fetchall()

        return [PerformanceMetric(row[0], row[1], row[2], bool(row[3]), row[4]) for row in rows]

    def update_baseline(self, operation: str) -> Optional[PerformanceBaseline]:
        """Recompute the baseline; needs MIN_BASELINE_SAMPLES successful timings"""
        durations = [m.duration for m in self.get_recent_metrics(operation)]
        if len(durations) < MIN_BASELINE_SAMPLES:
            return None

        baseline = PerformanceBaseline(
            operation=operation,
            environment=self.environment,
            avg_duration=mean(durations),
            p95_duration=calculate_percentile(durations, 95),
            p99_duration=calculate_percentile(durations, 99),
            sample_count=len(durations),
            last_updated=datetime.now().isoformat(),
        )

        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO operation_baselines
                (operation, environment, avg_duration, p95_duration, p99_duration, sample_count, last_updated)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                baseline.operation,
                baseline.environment,
                baseline.avg_duration,
                baseline.p95_duration,
                baseline.p99_duration,
                baseline.sample_count,
                baseline.last_updated,
            ))
        return baseline

    def get_baseline(self, operation: str) -> Optional[PerformanceBaseline]:
        with self._connect() as conn:
            row = conn.execute("""
                SELECT operation, environment, avg_duration, p95_duration, p99_duration, sample_count, last_updated
                FROM operation_baselines
                WHERE operation = ? AND environment = ?
            """, (operation, self.environment)).fetchone()

        return PerformanceBaseline(*row) if row else None

    def detect_regression(self, operation: str, current_duration: float) -> RegressionResult:
        """Compare a timing against the stored baseline"""
        baseline = self.get_baseline(operation)

        if baseline is None:
            return RegressionResult(
                operation=operation,
                current_duration=current_duration,
                baseline_avg=current_duration,
                baseline_p95=current_duration,
                regression_detected=False,
                severity="none",
                change_percent=0.0,
                recommendation="No baseline yet",
            )

        if baseline.avg_duration > 0:
            change_percent = ((current_duration - baseline.avg_duration) / baseline.avg_duration) * 100
        else:
            change_percent = 0.0

        regression_detected = True
        if current_duration > baseline.p99_duration:
            severity = "critical"
            recommendation = f"CRITICAL: {operation} degraded by {change_percent:.1f}%. Investigate immediately."
        elif current_duration > baseline.p95_duration:
            severity = "major"
            recommendation = f"MAJOR: {operation} degraded by {change_percent:.1f}%. Review recent changes."
        elif change_percent > 25:
            severity = "minor"
            recommendation = f"Minor degradation of {operation} ({change_percent:.1f}%). Monitor trend."
        else:
            regression_detected = False
            severity = "none"
            recommendation = "Performance within normal range."

        return RegressionResult(
            operation=operation,
            current_duration=current_duration,
            baseline_avg=baseline.avg_duration,
            baseline_p95=baseline.p95_duration,
            regression_detected=regression_detected,
            severity=severity,
            change_percent=change_percent,
            recommendation=recommendation,
        )

    def analyze_run(self, timings: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """Record a run's timings, detect regressions and refresh baselines

        Each timing is a dict with ``operation``, ``duration`` and ``success``.
        Failed operations are recorded but never compared.
        """
        regressions: List[RegressionResult] = []
        touched = set()

        for timing in timings:
            operation = timing.get("operation", "unknown")
            duration = float(timing.get("duration", 0.0))
            success = bool(timing.get("success", False))

            if success:
                regressions.append(self.detect_regression(operation, duration))
            self.record(operation, duration, success)
            touched.add(operation)

        for operation in touched:
            self.update_baseline(operation)

        counts = {severity: len([r for r in regressions if r.severity == severity])
                  for severity in ("critical", "major", "minor")}
        counts["total"] = len([r for r in regressions if r.regression_detected])

        if counts["total"]:
            logger.warning("%d performance regressions detected", counts["total"])

        return {
            "total_analyzed": len(regressions),
            "regressions": counts,
            "regression_details": [asdict(r) for r in regressions if r.regression_detected],
        }
