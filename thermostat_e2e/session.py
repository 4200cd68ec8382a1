"""Remote browser session lifecycle: one session per scenario."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.remote.webdriver import WebDriver

from thermostat_e2e.config import E2EConfig
from thermostat_e2e.errors import SessionSetupFailure


def build_options(config: E2EConfig) -> Options:
    options = Options()
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--window-size=1280,1024")
    if config.headless:
        options.add_argument("--headless=new")
    return options


def open_session(config: E2EConfig) -> WebDriver:
    """Start a remote session, apply the implicit wait and open the app root.

    Any failure, from a malformed endpoint to an unreachable server, is raised
    as SessionSetupFailure so the scenario is aborted before it runs.
    """
    endpoint = config.driver_endpoint
    driver: Optional[WebDriver] = None
    try:
        driver = webdriver.Remote(command_executor=endpoint, options=build_options(config))
        driver.implicitly_wait(config.element_wait_seconds)
        driver.maximize_window()
        driver.get(config.app_base_url)
    except Exception as exc:
        if driver is not None:
            close_session(driver)
        raise SessionSetupFailure(
            f"Could not start browser session at {endpoint}: {exc}"
        ) from exc
    return driver


def close_session(driver: Optional[WebDriver]) -> None:
    """Quit the session if there is one. Never raises."""
    if driver is None:
        return
    try:
        driver.quit()
    except Exception as exc:
        print(f"    [WARN] Failed to close browser session: {exc}")


@contextmanager
def browser_session(config: E2EConfig) -> Iterator[WebDriver]:
    driver = open_session(config)
    try:
        yield driver
    finally:
        close_session(driver)
