#!/usr/bin/env python3
"""
Test Data Cleanup Script
Deletes markets that a previous run reported as left behind
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from mercado_e2e.config import get_config
from mercado_e2e.core.orchestrator import APITestOrchestrator


def load_leftover_ids(report_path: Path) -> List[str]:
    """Read leftover market ids from a JSON run report"""
    if not report_path.exists():
        raise FileNotFoundError(f"Report not found: {report_path}")

    payload = json.loads(report_path.read_text(encoding="utf-8"))
    return [str(market_id) for market_id in payload.get("leftover_market_ids", [])]


async def cleanup_markets(market_ids: List[str], dry_run: bool = False) -> int:
    """Delete each market; returns number of markets that could not be removed"""
    if not market_ids:
        print("✅ Nothing to clean up")
        return 0

    if dry_run:
        for market_id in market_ids:
            print(f"   🔍 Would delete mercado {market_id}")
        return 0

    orch = APITestOrchestrator(get_config())
    for market_id in market_ids:
        orch.data_factory.track_market(market_id)

    outcome = await orch.cleanup_created()
    for market_id in outcome["deleted"]:
        print(f"   🗑️  mercado {market_id} removed")
    for market_id in outcome["failed"]:
        print(f"   ❌ mercado {market_id} could not be removed")
    return len(outcome["failed"])


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Delete markets left behind by a test run")
    parser.add_argument("--report", help="JSON report path (defaults to MERCADO_REPORT_PATH)")
    parser.add_argument("--dry-run", action="store_true", help="List markets without deleting them")
    args = parser.parse_args(argv)

    report_path = Path(args.report or get_config().report_path)
    try:
        market_ids = load_leftover_ids(report_path)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        print(f"❌ {e}")
        return 2

    print(f"🧹 {len(market_ids)} leftover markets in {report_path}")
    failed = asyncio.run(cleanup_markets(market_ids, dry_run=args.dry_run))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
