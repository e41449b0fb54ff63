"""
Pytest configuration, reporting hooks and fixtures for the mercado E2E suite
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional

import pytest

from mercado_e2e.config import E2EConfig, get_config
from mercado_e2e.core.data_factory import DataFactory
from mercado_e2e.core.orchestrator import APITestOrchestrator
from mercado_e2e.core.rest_client import RestClient
from mercado_e2e.plugin import MercadoReportingPlugin


# === COMMAND LINE OPTIONS ===

def pytest_addoption(parser):
    """Add custom command line options"""
    parser.addoption(
        "--mercado-base-url",
        action="store",
        default=None,
        help="Override MERCADO_API_BASE_URL for this run"
    )
    parser.addoption(
        "--smoke-only",
        action="store_true",
        default=False,
        help="Run only smoke tests"
    )
    parser.addoption(
        "--skip-slow",
        action="store_true",
        default=False,
        help="Skip slow running tests"
    )
    parser.addoption(
        "--no-cleanup",
        action="store_true",
        default=False,
        help="Leave created markets in place after the run"
    )


def pytest_configure(config):
    """Load suite configuration and logging once per process"""
    base_url = config.getoption("--mercado-base-url")
    if base_url:
        os.environ["MERCADO_API_BASE_URL"] = base_url

    try:
        e2e_config = get_config()
    except ValueError as e:
        raise pytest.UsageError(str(e)) from None

    if config.getoption("--no-cleanup"):
        e2e_config.cleanup_after = False

    logging.basicConfig(level=getattr(logging, e2e_config.log_level, logging.INFO))
    config._mercado_config = e2e_config
    config._mercado_factory = None
    config.pluginmanager.register(MercadoReportingPlugin(config, e2e_config), "mercado-reporting")


def pytest_collection_modifyitems(config, items):
    """Add markers based on location and test names"""
    for item in items:
        path = str(item.fspath)
        name = item.name.lower()

        if f"{os.sep}unit{os.sep}" in path:
            item.add_marker(pytest.mark.unit)
            continue

        item.add_marker(pytest.mark.live)

        if any(word in name for word in ["invalid", "missing", "unnamed", "nonexistent", "removed", "again"]):
            item.add_marker(pytest.mark.negative)
        elif any(word in name for word in ["concurrent", "bulk", "multiple"]):
            item.add_marker(pytest.mark.concurrency)
            item.add_marker(pytest.mark.slow)
        elif any(word in name for word in ["performance", "threshold"]):
            item.add_marker(pytest.mark.performance)
            item.add_marker(pytest.mark.slow)
        elif any(word in name for word in ["register", "list"]):
            item.add_marker(pytest.mark.smoke)
            item.add_marker(pytest.mark.crud)
        else:
            item.add_marker(pytest.mark.crud)


def pytest_runtest_setup(item):
    """Honor --skip-slow and --smoke-only"""
    if item.config.getoption("--skip-slow") and item.get_closest_marker("slow"):
        pytest.skip("Skipping slow test")

    if item.config.getoption("--smoke-only") and not item.get_closest_marker("smoke"):
        pytest.skip("Skipping non-smoke test")


# === FIXTURES ===

@dataclass
class MarketState:
    """The one value shared between ordered live tests: the last created market"""
    market_id: Optional[str] = None
    deleted: bool = False

    def require_market_id(self) -> str:
        if self.market_id is None:
            pytest.skip("No market was registered earlier in this run")
        return self.market_id


@pytest.fixture(scope="session")
def e2e_config(pytestconfig) -> E2EConfig:
    return pytestconfig._mercado_config


@pytest.fixture(scope="session")
def rest_client(e2e_config) -> RestClient:
    """Shared REST client (the API needs no authentication)"""
    return RestClient(e2e_config)


@pytest.fixture(scope="session")
def live_api(e2e_config, rest_client) -> str:
    """Skip live tests when the mercado API cannot be reached"""
    print(f"\n📡 Verifying mercado API at {e2e_config.api_base_url}...")
    if rest_client.probe():
        print("✅ Mercado API reachable")
        return e2e_config.api_base_url

    message = f"Mercado API not reachable at {e2e_config.api_base_url}"
    if e2e_config.require_api:
        pytest.fail(message)
    pytest.skip(message)


@pytest.fixture(scope="session")
def data_factory(pytestconfig, e2e_config, rest_client, live_api):
    """Session-wide payload factory; deletes leftover markets at the end"""
    factory = DataFactory(e2e_config)
    pytestconfig._mercado_factory = factory
    yield factory

    if e2e_config.cleanup_after and factory.get_tracked_ids():
        print(f"\n🧹 Cleaning up {len(factory.get_tracked_ids())} markets...")
        cleaner = APITestOrchestrator(e2e_config, rest_client, factory)
        outcome = asyncio.run(cleaner.cleanup_created())
        pytestconfig._mercado_hub.record_operations(cleaner.results)
        if outcome["failed"]:
            print(f"⚠️  Could not remove: {', '.join(outcome['failed'])}")
        else:
            print("✅ All test markets removed")


@pytest.fixture
def orchestrator(pytestconfig, e2e_config, rest_client, data_factory):
    """Function-scoped orchestrator; its timings feed the run report"""
    orch = APITestOrchestrator(e2e_config, rest_client, data_factory)
    yield orch
    pytestconfig._mercado_hub.record_operations(orch.results)


@pytest.fixture(scope="session")
def market_state() -> MarketState:
    return MarketState()
