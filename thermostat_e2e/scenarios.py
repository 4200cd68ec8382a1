"""
Scenario registry and runner.

Every scenario gets its own browser session. Scenarios registered with
mutates=True also run inside a StateGuard, so the backend record is written
back to its starting targetTemp/systemMode whatever the outcome. Teardown
(session release, wait for the app's pending writes, then restore) never
replaces the scenario's result.
"""

from __future__ import annotations

import time
from collections import Counter
from typing import Callable, Optional

from selenium.webdriver.remote.webdriver import WebDriver

from thermostat_e2e.api import (
    MAX_TARGET_TEMP,
    MIN_TARGET_TEMP,
    SYSTEM_MODES,
    ThermostatApiClient,
)
from thermostat_e2e.config import E2EConfig
from thermostat_e2e.errors import SkipScenario
from thermostat_e2e.page import DashboardPage
from thermostat_e2e.session import close_session, open_session
from thermostat_e2e.snapshot import GuardState, StateGuard
from thermostat_e2e.waiting import poll_until

STATUS_TAGS = {"pass": "[PASS]", "fail": "[FAIL]", "skip": "[SKIP]"}

# ---------------------------------------------------------------------------
# Scenario registry
# ---------------------------------------------------------------------------

# (group, display_name, method_name, mutates)
SCENARIO_REGISTRY: list[tuple[str, str, str, bool]] = []


def scenario(group: str, mutates: bool = False):
    """Decorator that registers a ScenarioRunner method in a named group."""
    def decorator(func):
        SCENARIO_REGISTRY.append((group, func.__name__, func.__name__, mutates))
        return func
    return decorator


def clamp_target(value: int) -> int:
    return max(MIN_TARGET_TEMP, min(MAX_TARGET_TEMP, value))


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class ScenarioRunner:
    def __init__(self, config: E2EConfig, client: ThermostatApiClient, verbose: bool = False):
        self.config = config
        self.client = client
        self.verbose = verbose
        self.results: list[dict] = []  # {name, group, status, message, duration, restored}

        # Live only while a scenario runs
        self.driver: Optional[WebDriver] = None
        self.page: Optional[DashboardPage] = None

    # -- Helpers -------------------------------------------------------------

    def _log(self, msg: str) -> None:
        if self.verbose:
            print(f"    [DEBUG] {msg}")

    def _open_dashboard(self) -> DashboardPage:
        return self.page.wait_until_loaded()

    def _ensure_system_on(self, page: DashboardPage) -> None:
        """+/- controls are not rendered in off mode; switch to heat first."""
        if page.system_mode_label() == "off":
            print("    System is OFF -- switching to heat for this scenario")
            page.click_system_mode("heat")
            assert page.wait_for_controls(True), "Controls did not appear after switching to heat"

    def _expect_backend(self, read: Callable[[], object], expected: object) -> object:
        """Poll the backend until read() returns expected, after the app's debounce."""
        return poll_until(
            read,
            lambda value: value == expected,
            timeout=self.config.api_poll_timeout_seconds,
            initial_delay=self.config.api_debounce_seconds,
        )

    def _wait_for_pending_writes(self) -> None:
        """Let PATCHes the app queued before the session closed reach the backend.

        The dashboard debounces +/- clicks before writing, so the displayed
        value can be final while the write is still pending. Waits one debounce
        period, then until two consecutive reads agree.
        """
        if self.config.api_debounce_seconds > 0:
            time.sleep(self.config.api_debounce_seconds)
        reads: list = []

        def read() -> list:
            reads.append(self.client.fetch_state())
            return reads[-2:]

        try:
            poll_until(read, lambda last: len(last) == 2 and last[0] == last[1],
                       timeout=self.config.api_poll_timeout_seconds)
        except Exception as exc:
            print(f"    [WARN] Could not confirm the backend is idle: {exc}")

    def _record(self, result: dict) -> None:
        line = f"  {STATUS_TAGS[result['status']]} {result['name']} ({result['duration']:.1f}s)"
        if result["message"]:
            line += f": {result['message']}"
        if result["restored"] is False:
            line += "  [backend NOT restored]"
        print(line)
        self.results.append(result)

    def _run_one(self, group: str, name: str, method_name: str, mutates: bool) -> None:
        method = getattr(self, method_name)
        guard: Optional[StateGuard] = None
        status, message = "pass", ""
        restored: Optional[bool] = None
        t0 = time.monotonic()
        try:
            self.driver = open_session(self.config)
            self.page = DashboardPage(self.driver, self.config)
            if mutates:
                guard = StateGuard(self.client)
                guard.arm()
            method()
        except SkipScenario as exc:
            status, message = "skip", str(exc)
        except Exception as exc:
            status, message = "fail", (str(exc) or type(exc).__name__)[:200]
        finally:
            # Close first so the page can queue no further writes
            close_session(self.driver)
            self.driver = None
            self.page = None
            if guard is not None and guard.state is GuardState.ARMED:
                self._wait_for_pending_writes()
                restored = guard.settle()
        self._record({
            "name": name,
            "group": group,
            "status": status,
            "message": message,
            "duration": time.monotonic() - t0,
            "restored": restored,  # None when nothing needed restoring
        })

    # -----------------------------------------------------------------------
    # GROUP 1: dashboard_load (8 scenarios, read-only)
    # -----------------------------------------------------------------------

    @scenario("dashboard_load")
    def test_dashboard_is_visible(self) -> None:
        page = self._open_dashboard()
        assert page.is_dashboard_visible(), "Dashboard container should be visible after load"

    @scenario("dashboard_load")
    def test_thermostat_name_displayed(self) -> None:
        name = self._open_dashboard().thermostat_name()
        assert name and name.strip(), "Thermostat name should not be blank"
        self._log(f"Thermostat name shown: '{name}'")

    @scenario("dashboard_load")
    def test_online_status_shown(self) -> None:
        status = self._open_dashboard().status_text()
        assert "online" in status.lower(), f"Status should show 'Online' but was: {status}"

    @scenario("dashboard_load")
    def test_current_temp_displayed(self) -> None:
        current = self._open_dashboard().current_temp_text()
        assert "°" in current, \
            f"Current temperature should include degree symbol, but was: {current}"

    @scenario("dashboard_load")
    def test_target_temp_is_realistic(self) -> None:
        target = self._open_dashboard().target_temp()
        assert MIN_TARGET_TEMP <= target <= MAX_TARGET_TEMP, \
            f"Target temp should be between {MIN_TARGET_TEMP} and {MAX_TARGET_TEMP}, but was: {target}"

    @scenario("dashboard_load")
    def test_humidity_displayed(self) -> None:
        humidity = self._open_dashboard().humidity_text()
        assert "%" in humidity, f"Humidity should include '%', but was: {humidity}"

    @scenario("dashboard_load")
    def test_system_mode_label_visible(self) -> None:
        mode = self._open_dashboard().system_mode_label()
        assert mode in SYSTEM_MODES, \
            f"System mode should be one of {'/'.join(SYSTEM_MODES)}, but was: '{mode}'"

    @scenario("dashboard_load")
    def test_temperature_controls_visible_when_on(self) -> None:
        page = self._open_dashboard()
        if page.system_mode_label() == "off":
            raise SkipScenario("System is OFF -- controls are hidden by design")
        assert page.is_increase_button_visible(), "+ button should be visible when system is on"
        assert page.is_decrease_button_visible(), "- button should be visible when system is on"
        assert page.is_slider_visible(), "Temperature slider should be visible when system is on"

    # -----------------------------------------------------------------------
    # GROUP 2: temperature_control (6 scenarios)
    # -----------------------------------------------------------------------

    @scenario("temperature_control", mutates=True)
    def test_increase_temp_by_one(self) -> None:
        page = self._open_dashboard()
        self._ensure_system_on(page)
        before = page.target_temp()
        expected = clamp_target(before + 1)
        page.click_increase_temp()
        after = page.wait_for_target_temp(expected)
        assert after == expected, f"Target temp {before} -> {after}, expected {expected} after +"

    @scenario("temperature_control", mutates=True)
    def test_decrease_temp_by_one(self) -> None:
        page = self._open_dashboard()
        self._ensure_system_on(page)
        before = page.target_temp()
        expected = clamp_target(before - 1)
        page.click_decrease_temp()
        after = page.wait_for_target_temp(expected)
        assert after == expected, f"Target temp {before} -> {after}, expected {expected} after -"

    @scenario("temperature_control", mutates=True)
    def test_increase_by_three(self) -> None:
        page = self._open_dashboard()
        self._ensure_system_on(page)
        before = page.target_temp()
        expected = clamp_target(before + 3)
        for _ in range(3):
            page.click_increase_temp()
        after = page.wait_for_target_temp(expected)
        assert after == expected, \
            f"Target temp {before} -> {after}, expected {expected} after three clicks of +"

    @scenario("temperature_control", mutates=True)
    def test_temperature_max_clamp(self) -> None:
        page = self._open_dashboard()
        self._ensure_system_on(page)
        for _ in range(50):
            page.click_increase_temp()
        after = page.wait_for_target_temp(MAX_TARGET_TEMP)
        assert after == MAX_TARGET_TEMP, \
            f"Target temp should stop at {MAX_TARGET_TEMP} after 50 clicks of +, but was: {after}"

    @scenario("temperature_control", mutates=True)
    def test_temperature_min_clamp(self) -> None:
        page = self._open_dashboard()
        self._ensure_system_on(page)
        for _ in range(50):
            page.click_decrease_temp()
        after = page.wait_for_target_temp(MIN_TARGET_TEMP)
        assert after == MIN_TARGET_TEMP, \
            f"Target temp should stop at {MIN_TARGET_TEMP} after 50 clicks of -, but was: {after}"

    @scenario("temperature_control", mutates=True)
    def test_increase_then_decrease(self) -> None:
        page = self._open_dashboard()
        self._ensure_system_on(page)
        original = page.target_temp()
        # At the upper bound + is a no-op, so go down first
        if original < MAX_TARGET_TEMP:
            first, second, midway = page.click_increase_temp, page.click_decrease_temp, original + 1
        else:
            first, second, midway = page.click_decrease_temp, page.click_increase_temp, original - 1
        first()
        assert page.wait_for_target_temp(midway) == midway, f"Target temp never reached {midway}"
        second()
        result = page.wait_for_target_temp(original)
        assert result == original, \
            f"After a click each way, target temp should return to {original} but was {result}"

    # -----------------------------------------------------------------------
    # GROUP 3: system_mode (8 scenarios)
    # -----------------------------------------------------------------------

    def _switch_and_check(self, page: DashboardPage, mode: str) -> None:
        page.click_system_mode(mode)
        shown = page.wait_for_system_mode(mode)
        assert shown == mode, f"After clicking {mode}, label should be '{mode}' but was '{shown}'"

    @scenario("system_mode", mutates=True)
    def test_switch_to_heat(self) -> None:
        self._switch_and_check(self._open_dashboard(), "heat")

    @scenario("system_mode", mutates=True)
    def test_switch_to_cool(self) -> None:
        self._switch_and_check(self._open_dashboard(), "cool")

    @scenario("system_mode", mutates=True)
    def test_switch_to_auto(self) -> None:
        self._switch_and_check(self._open_dashboard(), "auto")

    @scenario("system_mode", mutates=True)
    def test_switch_to_off(self) -> None:
        self._switch_and_check(self._open_dashboard(), "off")

    @scenario("system_mode", mutates=True)
    def test_off_mode_hides_controls(self) -> None:
        page = self._open_dashboard()
        self._switch_and_check(page, "off")
        page.wait_for_controls(False)
        assert not page.is_increase_button_visible(), "+ button should NOT be visible when system is off"
        assert not page.is_decrease_button_visible(), "- button should NOT be visible when system is off"
        assert not page.is_slider_visible(), "Slider should NOT be visible when system is off"

    @scenario("system_mode", mutates=True)
    def test_leaving_off_restores_controls(self) -> None:
        page = self._open_dashboard()
        self._switch_and_check(page, "off")
        assert not page.wait_for_controls(False), "Controls should be hidden in off mode"
        self._switch_and_check(page, "heat")
        assert page.wait_for_controls(True), "Controls should reappear after switching from off to heat"

    @scenario("system_mode", mutates=True)
    def test_cycle_through_all_modes(self) -> None:
        page = self._open_dashboard()
        for mode in SYSTEM_MODES:
            self._switch_and_check(page, mode)
            self._log(f"Switched to mode: {mode}")

    @scenario("system_mode", mutates=True)
    def test_rapid_mode_switching(self) -> None:
        page = self._open_dashboard()
        # No waiting between clicks
        page.click_system_mode("heat")
        page.click_system_mode("cool")
        page.click_system_mode("auto")
        shown = page.wait_for_system_mode("auto")
        assert shown == "auto", f"After rapid switching ending on auto, mode was '{shown}'"

    # -----------------------------------------------------------------------
    # GROUP 4: fan_mode (4 scenarios)
    # -----------------------------------------------------------------------

    @scenario("fan_mode")
    def test_fan_auto_clickable(self) -> None:
        page = self._open_dashboard()
        page.click_fan_mode("auto")
        page.settle()

    @scenario("fan_mode")
    def test_fan_on_clickable(self) -> None:
        page = self._open_dashboard()
        page.click_fan_mode("on")
        page.settle()

    @scenario("fan_mode")
    def test_toggle_fan_mode(self) -> None:
        page = self._open_dashboard()
        # Fan mode is not shown on the ring; passing means every click landed
        for mode in ("auto", "on", "auto"):
            page.click_fan_mode(mode)
            page.settle()

    @scenario("fan_mode", mutates=True)
    def test_fan_controls_visible_in_all_system_modes(self) -> None:
        page = self._open_dashboard()
        for mode in SYSTEM_MODES:
            self._switch_and_check(page, mode)
            assert page.is_fan_button_visible("auto"), \
                f"Fan Auto button should be visible in system mode: {mode}"
            assert page.is_fan_button_visible("on"), \
                f"Fan On button should be visible in system mode: {mode}"

    # -----------------------------------------------------------------------
    # GROUP 5: api_integration (5 scenarios)
    # -----------------------------------------------------------------------

    @scenario("api_integration", mutates=True)
    def test_increase_persists_to_api(self) -> None:
        page = self._open_dashboard()
        self._ensure_system_on(page)
        before = self.client.fetch_target_temp()
        expected = clamp_target(before + 1)
        page.click_increase_temp()
        after = self._expect_backend(self.client.fetch_target_temp, expected)
        assert after == expected, \
            f"API targetTemp {before} -> {after}, expected {expected} after clicking +"

    @scenario("api_integration", mutates=True)
    def test_decrease_persists_to_api(self) -> None:
        page = self._open_dashboard()
        self._ensure_system_on(page)
        before = self.client.fetch_target_temp()
        expected = clamp_target(before - 1)
        page.click_decrease_temp()
        after = self._expect_backend(self.client.fetch_target_temp, expected)
        assert after == expected, \
            f"API targetTemp {before} -> {after}, expected {expected} after clicking -"

    @scenario("api_integration", mutates=True)
    def test_heat_mode_persists_to_api(self) -> None:
        self._open_dashboard().click_system_mode("heat")
        mode = self._expect_backend(self.client.fetch_system_mode, "heat")
        assert mode == "heat", f"API systemMode should be 'heat' after clicking Heat, was '{mode}'"

    @scenario("api_integration", mutates=True)
    def test_cool_mode_persists_to_api(self) -> None:
        self._open_dashboard().click_system_mode("cool")
        mode = self._expect_backend(self.client.fetch_system_mode, "cool")
        assert mode == "cool", f"API systemMode should be 'cool' after clicking Cool, was '{mode}'"

    @scenario("api_integration")
    def test_api_health_check(self) -> None:
        body = self.client.fetch_body()
        for field in ("currentTemp", "targetTemp", "systemMode"):
            assert field in body, f"Response should contain '{field}': {body[:200]}"
        self._log(f"API health check passed. Response: {body[:500]}")

    # -----------------------------------------------------------------------
    # Run
    # -----------------------------------------------------------------------

    def run(self, filter_group: Optional[str] = None,
            filter_test: Optional[str] = None) -> bool:
        """Run scenarios. Returns True if none failed."""
        to_run = select_scenarios(filter_group, filter_test)
        if not to_run:
            print("No scenarios matched the filter criteria.")
            return True

        current_group = None
        for group, display_name, method_name, mutates in to_run:
            if group != current_group:
                current_group = group
                print(f"\n[{group}]")
            self._run_one(group, display_name, method_name, mutates)

        return self._print_summary()

    def _print_summary(self) -> bool:
        """Print results table. Returns True if nothing failed."""
        print("\n" + "=" * 68)
        print("E2E Scenario Results")
        print("=" * 68)
        print(f"  {'group':<22s} {'pass':>5s} {'fail':>5s} {'skip':>5s} {'restored':>9s} {'time':>8s}")

        by_group: dict[str, list[dict]] = {}
        for r in self.results:
            by_group.setdefault(r["group"], []).append(r)

        for group, rows in by_group.items():
            counts = Counter(r["status"] for r in rows)
            guarded = [r for r in rows if r["restored"] is not None]
            restored = f"{sum(1 for r in guarded if r['restored'])}/{len(guarded)}" if guarded else "-"
            elapsed = sum(r["duration"] for r in rows)
            print(f"  {group:<22s} {counts['pass']:>5d} {counts['fail']:>5d} {counts['skip']:>5d} "
                  f"{restored:>9s} {elapsed:>7.1f}s")

        print("-" * 68)
        totals = Counter(r["status"] for r in self.results)
        print(f"  Total: {totals['pass']}/{len(self.results)} passed, "
              f"{totals['fail']} failed, {totals['skip']} skipped  "
              f"({sum(r['duration'] for r in self.results):.1f}s)")
        if self.results:
            slowest = max(self.results, key=lambda r: r["duration"])
            print(f"  Slowest: {slowest['name']} ({slowest['duration']:.1f}s)")

        failures = [r for r in self.results if r["status"] == "fail"]
        if failures:
            print("\nFailures:")
            for r in failures:
                print(f"  - {r['group']}/{r['name']}: {r['message']}")

        unrestored = [r for r in self.results if r["restored"] is False]
        if unrestored:
            print("\nBackend NOT restored after (check targetTemp/systemMode by hand):")
            for r in unrestored:
                print(f"  - {r['group']}/{r['name']}")

        print("=" * 68)
        return totals["fail"] == 0


def select_scenarios(filter_group: Optional[str] = None,
                     filter_test: Optional[str] = None) -> list[tuple[str, str, str, bool]]:
    selected = []
    for entry in SCENARIO_REGISTRY:
        group, display_name = entry[0], entry[1]
        if filter_group and group != filter_group:
            continue
        if filter_test and filter_test not in display_name:
            continue
        selected.append(entry)
    return selected
