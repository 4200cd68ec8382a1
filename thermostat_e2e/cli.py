"""
Thermostat Dashboard — E2E Scenario Runner

Drives the dashboard through a remote WebDriver server (Appium or Selenium)
and cross-checks the REST backend. Requires the app and the automation server
to be running.

Configuration: tests/e2e_config.json (gitignored) or env vars
    THERMOSTAT_APP_URL, THERMOSTAT_AUTOMATION_URL, ...

Usage:
    thermostat-e2e                          # run all scenarios
    thermostat-e2e --group system_mode      # run one group
    thermostat-e2e --test clamp             # run scenarios matching substring
    thermostat-e2e --list                   # show registered scenarios
    thermostat-e2e --restore 70 cool        # write a known state to the backend
    thermostat-e2e -v                       # verbose request/response logging
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import requests

from thermostat_e2e.api import (
    MAX_TARGET_TEMP,
    MIN_TARGET_TEMP,
    SYSTEM_MODES,
    ThermostatApiClient,
)
from thermostat_e2e.config import load_config
from thermostat_e2e.errors import E2EError, RestoreFailed
from thermostat_e2e.scenarios import ScenarioRunner, select_scenarios


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Thermostat Dashboard E2E Scenarios")
    parser.add_argument("--config", type=Path, help="Path to a JSON config file")
    parser.add_argument("--test", help="Run scenarios matching this substring")
    parser.add_argument("--group", help="Run only this scenario group")
    parser.add_argument("--list", action="store_true",
                        help="List registered scenarios and exit")
    parser.add_argument("--base-url", help="Application base URL")
    parser.add_argument("--server-url", help="Automation (WebDriver) server URL")
    parser.add_argument("--headless", action="store_true", default=None,
                        help="Run the browser headless")
    parser.add_argument("--restore", nargs=2, metavar=("TEMP", "MODE"),
                        help="Write targetTemp/systemMode to the backend and exit")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show request/response details")
    return parser


def _print_scenarios(filter_group: Optional[str], filter_test: Optional[str]) -> None:
    current_group = None
    for group, name, _, mutates in select_scenarios(filter_group, filter_test):
        if group != current_group:
            current_group = group
            print(f"[{group}]")
        print(f"  {name}{'  (restores backend)' if mutates else ''}")


def _restore(client: ThermostatApiClient, temp: str, mode: str) -> int:
    try:
        target = int(temp)
    except ValueError:
        print(f"ERROR: TEMP must be an integer, got '{temp}'")
        return 1
    if not MIN_TARGET_TEMP <= target <= MAX_TARGET_TEMP:
        print(f"ERROR: TEMP must be between {MIN_TARGET_TEMP} and {MAX_TARGET_TEMP}, got {target}")
        return 1
    if mode not in SYSTEM_MODES:
        print(f"ERROR: MODE must be one of {', '.join(SYSTEM_MODES)}, got '{mode}'")
        return 1
    try:
        client.apply_state(target, mode)
    except RestoreFailed as exc:
        print(f"ERROR: {exc}")
        return 1
    print(f"Backend set to targetTemp={target}, systemMode='{mode}'.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    if args.list:
        _print_scenarios(args.group, args.test)
        sys.exit(0)

    try:
        config = load_config(args.config, overrides={
            "app_base_url": args.base_url,
            "automation_server_url": args.server_url,
            "headless": args.headless,
        })
    except E2EError as exc:
        print(f"ERROR: {exc}")
        print("  Set via tests/e2e_config.json or THERMOSTAT_* env vars.")
        sys.exit(1)

    print("=" * 60)
    print("Thermostat Dashboard — E2E Scenario Runner")
    print("=" * 60)
    print(f"  App:      {config.app_base_url}")
    print(f"  Driver:   {config.driver_endpoint}")
    print(f"  Headless: {config.headless}")
    print()

    client = ThermostatApiClient(config, verbose=args.verbose)

    if args.restore:
        sys.exit(_restore(client, *args.restore))

    # Verify the backend answers before opening any browser
    print("Verifying backend connectivity...")
    try:
        client.fetch_body()
        print("  Backend is reachable. GET /api/thermostats returned 200.\n")
    except requests.exceptions.ConnectionError:
        print(f"  ERROR: Cannot connect to backend at {config.app_base_url}")
        print("  Check that the app is running and the URL is correct.")
        sys.exit(1)
    except Exception as exc:
        print(f"  ERROR: Backend check failed: {exc}")
        sys.exit(1)

    runner = ScenarioRunner(config, client, verbose=args.verbose)
    all_passed = runner.run(filter_group=args.group, filter_test=args.test)
    sys.exit(0 if all_passed else 1)


if __name__ == "__main__":
    main()
