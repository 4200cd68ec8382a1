"""
Page object for the thermostat dashboard.

All locators live here; scenarios never contain raw selectors. Every locator
targets a data-testid attribute, which stays stable across styling changes.
"""

from __future__ import annotations

import time
from typing import Optional

from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from thermostat_e2e.api import FAN_MODES, SYSTEM_MODES
from thermostat_e2e.config import E2EConfig
from thermostat_e2e.errors import ElementNotFound, ElementNotInteractable

Locator = tuple[str, str]


def by_test_id(test_id: str) -> Locator:
    return (By.CSS_SELECTOR, f"[data-testid='{test_id}']")


DASHBOARD = by_test_id("dashboard")
THERMOSTAT_NAME = by_test_id("text-thermostat-name")
STATUS_ONLINE = by_test_id("status-online")
CURRENT_TEMP = by_test_id("text-current-temp")
TARGET_TEMP = by_test_id("text-target-temp")
SYSTEM_MODE_LABEL = by_test_id("text-system-mode")
HUMIDITY = by_test_id("text-humidity")
BTN_INCREASE = by_test_id("button-increase-temp")
BTN_DECREASE = by_test_id("button-decrease-temp")
SLIDER = by_test_id("input-temp-slider")
SYSTEM_MODE_GROUP = by_test_id("control-system-mode")
FAN_MODE_GROUP = by_test_id("control-fan-mode")

DEGREE = "°"


def system_mode_button(mode: str) -> Locator:
    if mode not in SYSTEM_MODES:
        raise ValueError(f"Unknown system mode '{mode}', expected one of {SYSTEM_MODES}")
    return by_test_id(f"button-mode-{mode}")


def fan_mode_button(mode: str) -> Locator:
    if mode not in FAN_MODES:
        raise ValueError(f"Unknown fan mode '{mode}', expected one of {FAN_MODES}")
    return by_test_id(f"button-fan-{mode}")


def parse_temperature(text: str) -> int:
    """'72°' -> 72"""
    cleaned = text.strip().replace(DEGREE, "").strip()
    try:
        return int(cleaned)
    except ValueError as exc:
        raise ValueError(f"Not a temperature reading: {text!r}") from exc


class DashboardPage:
    def __init__(self, driver: WebDriver, config: E2EConfig):
        self.driver = driver
        self.config = config
        self.timeout = config.element_wait_seconds

    def _wait(self, timeout: Optional[float] = None) -> WebDriverWait:
        return WebDriverWait(
            self.driver,
            timeout if timeout is not None else self.timeout,
            # ValueError: a temperature read while the ring is mid re-render
            ignored_exceptions=(StaleElementReferenceException, ValueError),
        )

    def _find(self, locator: Locator) -> WebElement:
        try:
            return self.driver.find_element(*locator)
        except NoSuchElementException as exc:
            raise ElementNotFound(f"No element matches {locator[1]}") from exc

    def _text(self, locator: Locator) -> str:
        return self._find(locator).text

    def _is_present(self, locator: Locator) -> bool:
        """Presence check that answers immediately when the element is absent."""
        self.driver.implicitly_wait(0)
        try:
            return len(self.driver.find_elements(*locator)) > 0
        finally:
            self.driver.implicitly_wait(self.timeout)

    def _click_when_ready(self, locator: Locator) -> None:
        try:
            element = self._wait().until(EC.element_to_be_clickable(locator))
        except TimeoutException as exc:
            raise ElementNotInteractable(
                f"{locator[1]} not clickable within {self.timeout}s"
            ) from exc
        element.click()

    # -- Waits ---------------------------------------------------------------

    def wait_until_loaded(self) -> "DashboardPage":
        """Block until the dashboard is rendered (thermostat name visible)."""
        try:
            self._wait().until(EC.visibility_of_element_located(THERMOSTAT_NAME))
        except TimeoutException as exc:
            raise ElementNotFound(
                f"Dashboard did not load within {self.timeout}s "
                f"({THERMOSTAT_NAME[1]} never became visible)"
            ) from exc
        return self

    def wait_for_target_temp(self, expected: int, timeout: Optional[float] = None) -> int:
        """Wait for the displayed target to equal expected; return the last reading."""
        try:
            self._wait(timeout).until(lambda _: self.target_temp() == expected)
        except TimeoutException:
            pass
        return self.target_temp()

    def wait_for_system_mode(self, expected: str, timeout: Optional[float] = None) -> str:
        try:
            self._wait(timeout).until(lambda _: self.system_mode_label() == expected)
        except TimeoutException:
            pass
        return self.system_mode_label()

    def wait_for_controls(self, visible: bool, timeout: Optional[float] = None) -> bool:
        """Wait for the +/- buttons and slider to all appear (or all vanish)."""
        try:
            self._wait(timeout).until(lambda _: self.controls_visible() == visible)
        except TimeoutException:
            pass
        return self.controls_visible()

    def settle(self) -> None:
        """Fixed pause for UI actions with nothing observable to wait on."""
        time.sleep(self.config.ui_settle_seconds)

    # -- Read state ----------------------------------------------------------

    def is_dashboard_visible(self) -> bool:
        return self._is_present(DASHBOARD)

    def thermostat_name(self) -> str:
        return self._text(THERMOSTAT_NAME)

    def status_text(self) -> str:
        return self._text(STATUS_ONLINE).strip()

    def current_temp_text(self) -> str:
        return self._text(CURRENT_TEMP)

    def target_temp(self) -> int:
        return parse_temperature(self._text(TARGET_TEMP))

    def system_mode_label(self) -> str:
        return self._text(SYSTEM_MODE_LABEL).strip().lower()

    def humidity_text(self) -> str:
        return self._text(HUMIDITY)

    def is_increase_button_visible(self) -> bool:
        return self._is_present(BTN_INCREASE)

    def is_decrease_button_visible(self) -> bool:
        return self._is_present(BTN_DECREASE)

    def is_slider_visible(self) -> bool:
        return self._is_present(SLIDER)

    def controls_visible(self) -> bool:
        return (self.is_increase_button_visible()
                and self.is_decrease_button_visible()
                and self.is_slider_visible())

    def is_fan_button_visible(self, mode: str) -> bool:
        return self._is_present(fan_mode_button(mode))

    # -- Actions -------------------------------------------------------------

    def click_increase_temp(self) -> "DashboardPage":
        """Click + once to raise the target by 1°."""
        self._click_when_ready(BTN_INCREASE)
        return self

    def click_decrease_temp(self) -> "DashboardPage":
        """Click − once to lower the target by 1°."""
        self._click_when_ready(BTN_DECREASE)
        return self

    def click_system_mode(self, mode: str) -> "DashboardPage":
        """Click a system mode button: heat, cool, auto or off."""
        self._click_when_ready(system_mode_button(mode))
        return self

    def click_fan_mode(self, mode: str) -> "DashboardPage":
        """Click a fan mode button: auto or on."""
        self._click_when_ready(fan_mode_button(mode))
        return self
