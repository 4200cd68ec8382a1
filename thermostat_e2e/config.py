"""
Configuration for the e2e suite.

Values are resolved once at process start and passed explicitly to every
component. Precedence, lowest to highest: defaults, the JSON config file
(tests/e2e_config.json unless --config is given), environment variables,
then explicit overrides from the command line.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from thermostat_e2e.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("tests") / "e2e_config.json"  # relative to the working directory

# field name -> environment variable
ENV_VARS = {
    "app_base_url": "THERMOSTAT_APP_URL",
    "automation_server_url": "THERMOSTAT_AUTOMATION_URL",
    "automation_path": "THERMOSTAT_AUTOMATION_PATH",
    "element_wait_seconds": "THERMOSTAT_ELEMENT_WAIT",
    "ui_settle_ms": "THERMOSTAT_UI_SETTLE_MS",
    "api_debounce_ms": "THERMOSTAT_API_DEBOUNCE_MS",
    "api_poll_timeout_seconds": "THERMOSTAT_API_POLL_TIMEOUT",
    "http_timeout_seconds": "THERMOSTAT_HTTP_TIMEOUT",
    "thermostat_id": "THERMOSTAT_ID",
    "headless": "THERMOSTAT_HEADLESS",
}

_URL_FIELDS = ("app_base_url", "automation_server_url")
_INT_FIELDS = (
    "element_wait_seconds", "ui_settle_ms", "api_debounce_ms",
    "api_poll_timeout_seconds", "http_timeout_seconds", "thermostat_id",
)
# Must be > 0, not just >= 0
_POSITIVE_FIELDS = (
    "element_wait_seconds", "api_poll_timeout_seconds", "http_timeout_seconds",
)


@dataclass(frozen=True)
class E2EConfig:
    app_base_url: str = "http://localhost:5000"
    automation_server_url: str = "http://127.0.0.1:4723"
    automation_path: str = "/wd/hub"
    element_wait_seconds: int = 15
    ui_settle_ms: int = 600
    api_debounce_ms: int = 1000
    api_poll_timeout_seconds: int = 10
    http_timeout_seconds: int = 15
    thermostat_id: int = 1
    headless: bool = False

    @property
    def driver_endpoint(self) -> str:
        """Full WebDriver command executor URL."""
        path = self.automation_path.strip()
        if path and not path.startswith("/"):
            path = "/" + path
        return self.automation_server_url.rstrip("/") + path.rstrip("/")

    @property
    def api_root(self) -> str:
        return self.app_base_url.rstrip("/") + "/api"

    @property
    def ui_settle_seconds(self) -> float:
        return self.ui_settle_ms / 1000.0

    @property
    def api_debounce_seconds(self) -> float:
        return self.api_debounce_ms / 1000.0


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _coerce(raw: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Convert raw values to field types, collecting every problem."""
    values: dict[str, Any] = {}
    problems: list[str] = []
    for name, value in raw.items():
        if name in _INT_FIELDS:
            # JSON true would read as 1 and 2.5 as 2
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                problems.append(f"{name} must be an integer, got {value!r}")
                continue
            try:
                number = int(value)
            except (TypeError, ValueError):
                problems.append(f"{name} must be an integer, got {value!r}")
                continue
            if number < 0 or (number == 0 and name in _POSITIVE_FIELDS):
                bound = "> 0" if name in _POSITIVE_FIELDS else ">= 0"
                problems.append(f"{name} must be {bound}, got {number}")
                continue
            values[name] = number
        elif name == "headless":
            values[name] = _parse_bool(value)
        else:
            values[name] = str(value).strip()

    for name in _URL_FIELDS:
        if name not in values:
            continue
        parsed = urlparse(values[name])
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            problems.append(f"{name} must be an http(s) URL with a host, got {values[name]!r}")
    return values, problems


def load_config(path: Optional[Path] = None,
                overrides: Optional[dict[str, Any]] = None,
                environ: Optional[dict[str, str]] = None) -> E2EConfig:
    """Load config from e2e_config.json, with env var and explicit overrides."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ
    known = {f.name for f in fields(E2EConfig)}
    raw: dict[str, Any] = {}

    if path and not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                file_values = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file {config_path} is not valid JSON: {exc}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
        if not isinstance(file_values, dict):
            raise ConfigError(f"Config file {config_path} must hold a JSON object")
        unknown = sorted(set(file_values) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")
        raw.update(file_values)

    # Env var overrides
    for name, var in ENV_VARS.items():
        if env.get(var):
            raw[name] = env[var]

    for name, value in (overrides or {}).items():
        if value is None:
            continue
        if name not in known:
            raise ConfigError(f"Unknown config override: {name}")
        raw[name] = value

    values, problems = _coerce(raw)
    if problems:
        raise ConfigError("Invalid configuration: " + "; ".join(problems))
    return replace(E2EConfig(), **values)
