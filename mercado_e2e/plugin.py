"""
Pytest reporting plugin
Registers the reporters before any test runs, feeds them one record per test
and finalizes them once all tests are done
"""

from typing import Optional

from mercado_e2e.config import E2EConfig
from mercado_e2e.core.data_factory import DataFactory
from mercado_e2e.core.performance_tracker import PerformanceTracker
from mercado_e2e.core.reporter import (
    ConsoleReporter,
    JsonReporter,
    PerformanceReporter,
    ReporterHub,
    TestRecord,
)

KNOWN_MARKERS = {"unit", "live", "smoke", "crud", "negative", "concurrency", "performance", "slow"}


class MercadoReportingPlugin:
    """Owns the ReporterHub for one pytest session"""

    def __init__(self, config, e2e_config: E2EConfig):
        self.config = config
        self.e2e_config = e2e_config
        self.hub = ReporterHub()

    def _is_xdist_worker(self) -> bool:
        return hasattr(self.config, "workerinput")

    def pytest_sessionstart(self, session):
        # Under xdist only the controller reports; worker results reach it via logreport
        if not self._is_xdist_worker():
            self.hub.add(ConsoleReporter())
            # Offline runs must not clobber the leftover ids of the last live run
            self.hub.add(JsonReporter(self.e2e_config.report_path, live_only=True))
            if self.e2e_config.performance_db_path:
                self.hub.add(PerformanceReporter(PerformanceTracker(self.e2e_config.performance_db_path)))
        self.config._mercado_hub = self.hub

    def pytest_runtest_logreport(self, report):
        # The call phase, or a setup/teardown phase that did not pass
        if report.when != "call" and report.outcome == "passed":
            return

        message = None
        if report.skipped and isinstance(report.longrepr, tuple):
            message = str(report.longrepr[2])
        elif report.failed and report.longreprtext:
            message = report.longreprtext.strip().splitlines()[-1]

        markers = sorted(name for name in report.keywords if name in KNOWN_MARKERS)
        self.hub.after_test(TestRecord(report.nodeid, report.outcome, report.duration, markers, message))

    def pytest_sessionfinish(self, session, exitstatus):
        if self._is_xdist_worker():
            return

        factory: Optional[DataFactory] = getattr(self.config, "_mercado_factory", None)
        leftovers = factory.get_tracked_ids() if factory else []
        self.hub.end(leftover_market_ids=leftovers, config=self.e2e_config.as_dict())
