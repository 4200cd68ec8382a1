import unittest
from unittest.mock import MagicMock, call, patch

from selenium.common.exceptions import NoSuchElementException, TimeoutException
from selenium.webdriver.common.by import By

from thermostat_e2e.config import E2EConfig
from thermostat_e2e.errors import ElementNotFound, ElementNotInteractable
from thermostat_e2e.page import (
    BTN_INCREASE,
    SLIDER,
    DashboardPage,
    fan_mode_button,
    parse_temperature,
    system_mode_button,
)


def _element(text="", displayed=True, enabled=True):
    element = MagicMock()
    element.text = text
    element.is_displayed.return_value = displayed
    element.is_enabled.return_value = enabled
    return element


class TestLocators(unittest.TestCase):
    def test_mode_buttons(self):
        self.assertEqual(system_mode_button("heat"),
                         (By.CSS_SELECTOR, "[data-testid='button-mode-heat']"))
        self.assertEqual(fan_mode_button("on"),
                         (By.CSS_SELECTOR, "[data-testid='button-fan-on']"))

    def test_unknown_modes_rejected(self):
        with self.assertRaises(ValueError):
            system_mode_button("dry")
        with self.assertRaises(ValueError):
            fan_mode_button("circulate")

    def test_parse_temperature(self):
        self.assertEqual(parse_temperature(" 72° "), 72)
        self.assertEqual(parse_temperature("90"), 90)
        with self.assertRaises(ValueError):
            parse_temperature("--")


class TestDashboardPage(unittest.TestCase):
    def setUp(self):
        self.driver = MagicMock()
        self.page = DashboardPage(self.driver, E2EConfig(element_wait_seconds=3, ui_settle_ms=0))

    def test_typed_reads(self):
        self.driver.find_element.return_value = _element(" 68°\n")
        self.assertEqual(self.page.target_temp(), 68)
        self.driver.find_element.return_value = _element("  COOL ")
        self.assertEqual(self.page.system_mode_label(), "cool")
        self.driver.find_element.return_value = _element("45%")
        self.assertEqual(self.page.humidity_text(), "45%")
        self.driver.find_element.return_value = _element(" Online ")
        self.assertEqual(self.page.status_text(), "Online")

    def test_missing_element(self):
        self.driver.find_element.side_effect = NoSuchElementException("gone")
        with self.assertRaises(ElementNotFound):
            self.page.thermostat_name()

    def test_presence_check_suspends_implicit_wait(self):
        self.driver.find_elements.return_value = []
        self.assertFalse(self.page.is_slider_visible())
        self.driver.find_elements.assert_called_once_with(*SLIDER)
        self.assertEqual(self.driver.implicitly_wait.call_args_list, [call(0), call(3)])

    def test_controls_visible(self):
        self.driver.find_elements.return_value = [_element()]
        self.assertTrue(self.page.controls_visible())
        self.driver.find_elements.return_value = []
        self.assertFalse(self.page.controls_visible())

    def test_click_waits_for_clickable_control(self):
        button = _element()
        self.driver.find_element.return_value = button
        result = self.page.click_increase_temp()
        self.assertIs(result, self.page)
        self.driver.find_element.assert_called_with(*BTN_INCREASE)
        button.click.assert_called_once()

    def test_click_system_mode_uses_mode_locator(self):
        button = _element()
        self.driver.find_element.return_value = button
        self.page.click_system_mode("off")
        self.driver.find_element.assert_called_with(
            By.CSS_SELECTOR, "[data-testid='button-mode-off']")
        button.click.assert_called_once()

    @patch("thermostat_e2e.page.WebDriverWait")
    def test_click_not_interactable(self, mock_wait):
        mock_wait.return_value.until.side_effect = TimeoutException()
        with self.assertRaises(ElementNotInteractable):
            self.page.click_fan_mode("auto")

    @patch("thermostat_e2e.page.WebDriverWait")
    def test_dashboard_never_loads(self, mock_wait):
        mock_wait.return_value.until.side_effect = TimeoutException()
        with self.assertRaises(ElementNotFound):
            self.page.wait_until_loaded()

    def test_wait_for_target_temp_returns_reading(self):
        self.driver.find_element.return_value = _element("73°")
        self.assertEqual(self.page.wait_for_target_temp(73), 73)

    @patch("thermostat_e2e.page.WebDriverWait")
    def test_wait_for_target_temp_timeout_returns_last_reading(self, mock_wait):
        mock_wait.return_value.until.side_effect = TimeoutException()
        self.driver.find_element.return_value = _element("71°")
        self.assertEqual(self.page.wait_for_target_temp(73), 71)


if __name__ == "__main__":
    unittest.main()
