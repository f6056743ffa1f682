#!/usr/bin/env python3

import argparse
import asyncio
import os
import sys
from datetime import datetime
from pathlib import Path

from config import Timeouts, headless_from_env, load_journey_file
from journey import run_journeys
from report import print_summary, write_results
from scenarios import DEFAULT_BASE_URL, JOURNEY_DEADLINES_MS, build_journey, demo_credentials, journey_from_file


def build_configs(args: argparse.Namespace, run_dir: Path) -> list:
    configs = []
    timeouts = Timeouts.from_env()
    for name in args.journey or []:
        configs.append(build_journey(
            name,
            base_url=args.base_url or DEFAULT_BASE_URL,
            credentials=demo_credentials(),
            artifacts_dir=run_dir / "screenshots",
            timeouts=timeouts,
            overall_timeout_ms=args.timeout_ms,
            first_name=args.first_name,
            last_name=args.last_name,
            verbose=args.verbose,
        ))
    for path in args.journey_file or []:
        config = journey_from_file(load_journey_file(path), artifacts_dir=run_dir / "screenshots", base_url=args.base_url, verbose=args.verbose)
        if args.timeout_ms:
            config.overall_timeout_ms = args.timeout_ms
        configs.append(config)
    return configs


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run browser journeys (login → scenario) with failure screenshots")
    parser.add_argument("--journey", action="append", choices=sorted(JOURNEY_DEADLINES_MS), help="Built-in journey to run (repeatable)")
    parser.add_argument("--journey-file", action="append", help="Path to a JSON journey definition (repeatable)")
    parser.add_argument("--base-url", default=os.environ.get("ORANGEHRM_BASE_URL"), help=f"Application root (env ORANGEHRM_BASE_URL, default: {DEFAULT_BASE_URL})")
    parser.add_argument("--timeout-ms", type=int, help="Override the overall journey deadline")
    parser.add_argument("--first-name", default="Akshay", help="First name for pim-add-employee")
    parser.add_argument("--last-name", default="Tester", help="Last name for pim-add-employee")
    parser.add_argument("--run-dir", help="Output directory (default: data/runs/run_<timestamp>)")
    parser.add_argument("--headful", action="store_true", help="Run browser headful for debugging")
    parser.add_argument("--verbose", action="store_true", help="Print every step and wait")

    args = parser.parse_args(argv)
    if not args.journey and not args.journey_file:
        parser.error("Provide --journey and/or --journey-file")

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(args.run_dir) if args.run_dir else Path(f"data/runs/run_{timestamp}")
    (run_dir / "screenshots").mkdir(parents=True, exist_ok=True)

    configs = build_configs(args, run_dir)
    headless = headless_from_env() and not args.headful

    print("🏃 Running journeys with Playwright...")
    results = asyncio.run(run_journeys(configs, headless=headless))

    results_path = write_results(run_dir / "results.json", results)
    print(f"📊 Results written: {results_path}")
    print_summary(results)
    return 0 if all(r.passed for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
