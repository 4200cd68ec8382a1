"""
Thermostat Dashboard — End-to-End Test Suite

Drives the thermostat web dashboard through a remote WebDriver endpoint and
cross-checks what the UI shows against the REST backend.
"""

__version__ = "1.0.0"
