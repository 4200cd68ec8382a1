"""Exceptions raised by the e2e suite."""

from __future__ import annotations


class E2EError(Exception):
    """Base class for every suite-level error."""


class ConfigError(E2EError):
    """Configuration is missing or invalid."""


class SessionSetupFailure(E2EError):
    """The remote browser session could not be established."""


class ElementNotFound(E2EError):
    """A dashboard element did not appear within the lookup timeout."""


class ElementNotInteractable(E2EError):
    """A dashboard control never became clickable."""


class UnexpectedStatus(E2EError):
    """Backend answered with something other than HTTP 200."""

    def __init__(self, url: str, status_code: int, body: str):
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(f"GET {url} returned HTTP {status_code}: {body[:200]}")


class FieldNotFound(E2EError):
    """An expected JSON field is missing from a backend response."""

    def __init__(self, field: str, body: str):
        self.field = field
        self.body = body
        super().__init__(f"Field '{field}' not found in: {body}")


class RestoreFailed(E2EError):
    """Writing a snapshot back to the backend failed in transport."""


class SkipScenario(Exception):
    """Raised to skip a scenario with a reason."""
