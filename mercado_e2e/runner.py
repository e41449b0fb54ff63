#!/usr/bin/env python3
"""
Unified Test Runner
Checks connectivity to the mercado API, then runs the pytest suite in the requested mode
"""

import argparse
import os
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from mercado_e2e.config import get_config
from mercado_e2e.core.rest_client import RestClient

MODES = ("full", "smoke", "live", "unit")

# Repository checkout holding pyproject.toml and tests/
PROJECT_ROOT = Path(__file__).resolve().parent.parent


@dataclass
class RunnerConfig:
    """Configuration for test runner execution"""
    mode: str = "full"
    parallel: int = 0
    timeout: int = 300
    verbose: bool = False
    fail_fast: bool = False
    junit_path: Optional[str] = None
    test_pattern: Optional[str] = None
    base_url: Optional[str] = None
    skip_connectivity: bool = False
    tests_dir: Optional[str] = None


class UnifiedTestRunner:
    """Builds and executes the pytest command for a run"""

    def __init__(self, config: RunnerConfig):
        self.config = config

    @property
    def tests_dir(self) -> Path:
        return Path(self.config.tests_dir).resolve() if self.config.tests_dir else PROJECT_ROOT / "tests"

    def run_connectivity_test(self) -> bool:
        """Probe the API before spending time on a live run"""
        print("🔍 Testing connectivity...")
        try:
            test_config = get_config()
        except ValueError as e:
            print(f"   ❌ {e}")
            return False

        print(f"   API Base URL: {test_config.api_base_url}")
        if RestClient(test_config).probe():
            print("   ✅ Mercado API reachable")
            return True

        print("   ❌ Mercado API not reachable")
        return False

    def build_pytest_command(self) -> List[str]:
        """Build pytest command based on configuration"""
        cmd = [sys.executable, "-m", "pytest"]

        # Test selection based on mode
        if self.config.mode == "smoke":
            cmd.extend(["-m", "smoke"])
        elif self.config.mode == "live":
            cmd.extend(["-m", "live"])
        elif self.config.mode == "unit":
            cmd.extend(["-m", "unit"])

        # Parallel execution; loadfile keeps each chained module on one worker
        if self.config.parallel > 0:
            cmd.extend(["-n", str(self.config.parallel), "--dist=loadfile"])

        cmd.append(f"--timeout={self.config.timeout}")
        cmd.append("-v" if self.config.verbose else "-q")

        if self.config.fail_fast:
            cmd.extend(["-x"])

        if self.config.junit_path:
            cmd.append(f"--junit-xml={self.config.junit_path}")

        if self.config.test_pattern:
            cmd.extend(["-k", self.config.test_pattern])

        cmd.extend(["--tb=short", "--strict-markers"])
        cmd.append(str(self.tests_dir))
        return cmd

    def build_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        if self.config.base_url:
            env["MERCADO_API_BASE_URL"] = self.config.base_url
        if self.config.mode in ("live", "smoke"):
            # An explicit live run should fail, not skip, when the API is down
            env.setdefault("MERCADO_REQUIRE_API", "true")
        return env

    def run(self) -> int:
        print("=" * 60)
        print(f"🚀 MERCADO E2E SUITE - {self.config.mode.upper()}")
        print("=" * 60)

        if self.config.base_url:
            os.environ["MERCADO_API_BASE_URL"] = self.config.base_url

        if not self.tests_dir.is_dir():
            print(f"❌ Test directory not found: {self.tests_dir} (use --tests-dir)")
            return 2

        needs_api = self.config.mode != "unit"
        if needs_api and not self.config.skip_connectivity and not self.run_connectivity_test():
            print("\n❌ Connectivity test failed - check MERCADO_API_BASE_URL")
            return 2

        cmd = self.build_pytest_command()
        if self.config.verbose:
            print(f"   Command: {' '.join(cmd)}")

        start_time = time.time()
        try:
            result = subprocess.run(
                cmd,
                env=self.build_env(),
                cwd=self.tests_dir.parent,
                timeout=self.config.timeout + 60,
            )
        except subprocess.TimeoutExpired:
            print(f"   ❌ Tests timed out after {self.config.timeout}s")
            return 124

        duration = time.time() - start_time
        status = "✅" if result.returncode == 0 else "❌"
        print(f"\n{status} pytest exited with {result.returncode} ({duration:.2f}s)")
        return result.returncode


def parse_args(argv: Optional[List[str]] = None) -> RunnerConfig:
    parser = argparse.ArgumentParser(description="Run the mercado E2E suite")
    parser.add_argument("--mode", choices=MODES, default="full", help="Which tests to run")
    parser.add_argument("--parallel", type=int, default=0, metavar="N", help="pytest-xdist workers (0 = serial)")
    parser.add_argument("--timeout", type=int, default=300, help="Per-test timeout in seconds")
    parser.add_argument("--junit", dest="junit_path", help="Write JUnit XML to this path")
    parser.add_argument("--fail-fast", action="store_true", help="Stop on first failure")
    parser.add_argument("-k", dest="test_pattern", help="Only run tests matching this expression")
    parser.add_argument("--base-url", help="Override MERCADO_API_BASE_URL")
    parser.add_argument("--skip-connectivity", action="store_true", help="Do not probe the API first")
    parser.add_argument("--tests-dir", help="Test directory to run (defaults to the checkout's tests/)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    return RunnerConfig(
        mode=args.mode,
        parallel=args.parallel,
        timeout=args.timeout,
        verbose=args.verbose,
        fail_fast=args.fail_fast,
        junit_path=args.junit_path,
        test_pattern=args.test_pattern,
        base_url=args.base_url,
        skip_connectivity=args.skip_connectivity,
        tests_dir=args.tests_dir,
    )


def main(argv: Optional[List[str]] = None) -> int:
    return UnifiedTestRunner(parse_args(argv)).run()


if __name__ == "__main__":
    sys.exit(main())
