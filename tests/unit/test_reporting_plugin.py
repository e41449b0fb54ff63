"""MercadoReportingPlugin driven through a real pytest session"""

import json
from types import SimpleNamespace

from mercado_e2e.config import E2EConfig
from mercado_e2e.plugin import MercadoReportingPlugin

PLUGIN_CONFTEST = """
from pathlib import Path

from mercado_e2e.config import E2EConfig
from mercado_e2e.core.reporter import BaseReporter
from mercado_e2e.plugin import MercadoReportingPlugin


class EndCounter(BaseReporter):

    def end(self, summary):
        with Path({ends!r}).open("a", encoding="utf-8") as handle:
            handle.write(f"{{summary.totals()['total']}}\\n")


def pytest_configure(config):
    e2e_config = E2EConfig(api_base_url="http://mercado.test", report_path={report!r})
    plugin = MercadoReportingPlugin(config, e2e_config)
    plugin.hub.add(EndCounter())
    config.pluginmanager.register(plugin, "mercado-reporting")
"""

LIVE_SAMPLE = """
import pytest


@pytest.fixture
def broken_teardown():
    yield
    raise RuntimeError("teardown broke")


@pytest.mark.live
def test_passes():
    pass


@pytest.mark.live
def test_fails():
    assert 1 == 2


@pytest.mark.live
def test_skipped():
    pytest.skip("API down")


@pytest.mark.live
def test_teardown_error(broken_teardown):
    pass
"""

OFFLINE_SAMPLE = """
import pytest


@pytest.mark.unit
def test_offline():
    pass
"""


def _prepare(pytester, sample: str):
    report = pytester.path / "reports" / "run.json"
    ends = pytester.path / "ends.txt"
    pytester.makeini("[pytest]\nmarkers =\n    live: live API\n    unit: offline\n")
    pytester.makeconftest(PLUGIN_CONFTEST.format(report=str(report), ends=str(ends)))
    pytester.makepyfile(test_reporting_sample=sample)
    return report, ends


class TestReportingSession:

    def test_report_after_live_run(self, pytester):
        report, ends = _prepare(pytester, LIVE_SAMPLE)

        result = pytester.runpytest()

        result.assert_outcomes(passed=2, failed=1, skipped=1, errors=1)
        payload = json.loads(report.read_text(encoding="utf-8"))
        assert payload["totals"] == {"passed": 1, "failed": 2, "skipped": 1, "total": 4}
        assert payload["leftover_market_ids"] == []
        assert payload["config"]["api_base_url"] == "http://mercado.test"

        by_name = {test["nodeid"].split("::")[-1]: test for test in payload["tests"]}
        assert by_name["test_skipped"]["outcome"] == "skipped"
        assert "API down" in by_name["test_skipped"]["message"]
        assert by_name["test_fails"]["message"]
        assert by_name["test_teardown_error"]["outcome"] == "failed"
        assert by_name["test_passes"]["markers"] == ["live"]

        assert ends.read_text(encoding="utf-8").splitlines() == ["4"]

    def test_offline_run_keeps_previous_report(self, pytester):
        report, ends = _prepare(pytester, OFFLINE_SAMPLE)
        report.parent.mkdir(parents=True)
        report.write_text(json.dumps({"leftover_market_ids": ["17"]}), encoding="utf-8")

        result = pytester.runpytest()

        result.assert_outcomes(passed=1)
        assert json.loads(report.read_text(encoding="utf-8"))["leftover_market_ids"] == ["17"]
        assert ends.read_text(encoding="utf-8").splitlines() == ["1"]


class TestXdistWorker:

    def test_worker_neither_registers_nor_ends(self, tmp_path):
        config = SimpleNamespace(workerinput={"workerid": "gw0"})
        plugin = MercadoReportingPlugin(config, E2EConfig(report_path=str(tmp_path / "run.json")))

        plugin.pytest_sessionstart(session=None)
        plugin.pytest_sessionfinish(session=None, exitstatus=0)

        assert plugin.hub.reporters == []
        assert not plugin.hub.ended
        assert config._mercado_hub is plugin.hub
        assert not (tmp_path / "run.json").exists()
