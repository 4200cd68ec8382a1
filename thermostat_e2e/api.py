"""
Thin client for the thermostat REST backend.

Only two scalar fields are ever read (targetTemp, systemMode), so the body is
scanned for fixed literal patterns instead of being parsed. The backend's
responses are flat and controlled; the scanner does not handle escapes or
nested quotes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

import requests

from thermostat_e2e.config import E2EConfig
from thermostat_e2e.errors import FieldNotFound, RestoreFailed, UnexpectedStatus

MIN_TARGET_TEMP = 50
MAX_TARGET_TEMP = 90

SYSTEM_MODES = ("heat", "cool", "auto", "off")
FAN_MODES = ("auto", "on")


@dataclass(frozen=True)
class ThermostatState:
    target_temp: int
    system_mode: str


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def extract_int_field(body: str, field: str) -> int:
    """Read the integer that follows the first `"field":` in body."""
    pattern = f'"{field}":'
    idx = body.find(pattern)
    if idx < 0:
        raise FieldNotFound(field, body)
    rest = body[idx + len(pattern):].lstrip()
    digits = []
    for ch in rest:
        # ASCII only; str.isdigit() also accepts other scripts
        if "0" <= ch <= "9":
            digits.append(ch)
        else:
            break
    if not digits:
        raise FieldNotFound(field, body)
    return int("".join(digits))


def extract_str_field(body: str, field: str) -> str:
    """Read the string that follows the first `"field":"` in body."""
    pattern = f'"{field}":"'
    start = body.find(pattern)
    if start < 0:
        raise FieldNotFound(field, body)
    value_start = start + len(pattern)
    value_end = body.find('"', value_start)
    if value_end < 0:
        raise FieldNotFound(field, body)
    return body[value_start:value_end]


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class ThermostatApiClient:
    """GET/PATCH against the thermostat resource."""

    def __init__(self, config: E2EConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.list_url = f"{config.api_root}/thermostats"
        self.item_url = f"{config.api_root}/thermostats/{config.thermostat_id}"

    def _log(self, msg: str) -> None:
        if self.verbose:
            print(f"    [DEBUG] {msg}")

    def fetch_body(self) -> str:
        """GET the listing and return the raw body. Raises UnexpectedStatus on non-200."""
        self._log(f">> GET {self.list_url}")
        resp = requests.get(self.list_url, timeout=self.config.http_timeout_seconds)
        body = resp.text
        self._log(f"<< {resp.status_code} {body[:500]}")
        if resp.status_code != 200:
            raise UnexpectedStatus(self.list_url, resp.status_code, body)
        return body

    def fetch_state(self) -> ThermostatState:
        body = self.fetch_body()
        return ThermostatState(
            target_temp=extract_int_field(body, "targetTemp"),
            system_mode=extract_str_field(body, "systemMode"),
        )

    def fetch_target_temp(self) -> int:
        return self.fetch_state().target_temp

    def fetch_system_mode(self) -> str:
        return self.fetch_state().system_mode

    def apply_state(self, target_temp: int, system_mode: str) -> None:
        """PATCH targetTemp and systemMode. The response is not inspected."""
        payload = {"targetTemp": int(target_temp), "systemMode": system_mode}
        self._log(f">> PATCH {self.item_url} {json.dumps(payload)}")
        try:
            resp = requests.patch(
                self.item_url,
                json=payload,
                timeout=self.config.http_timeout_seconds,
            )
        except requests.exceptions.RequestException as exc:
            raise RestoreFailed(f"PATCH {self.item_url} failed: {exc}") from exc
        self._log(f"<< {resp.status_code}")
