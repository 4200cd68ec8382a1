"""
Snapshot/restore guard for scenarios that mutate the shared thermostat record.

The guard records targetTemp and systemMode before the scenario touches
anything and writes them back afterwards, whether the scenario passed, failed
an assertion, or raised. The restore is a single best-effort attempt: a
transport failure is reported and swallowed so teardown always completes and
the scenario's own outcome is never replaced.

It gives no mutual exclusion against other clients of the backend; it only
returns the record to the values this process observed.
"""

from __future__ import annotations

import enum
from typing import Optional

from thermostat_e2e.api import ThermostatApiClient, ThermostatState
from thermostat_e2e.errors import RestoreFailed

# Snapshots are plain frozen state copies
Snapshot = ThermostatState


class GuardState(enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    SETTLED = "settled"


class StateGuard:
    def __init__(self, client: ThermostatApiClient):
        self.client = client
        self.state = GuardState.IDLE
        self.snapshot: Optional[Snapshot] = None

    def arm(self) -> Snapshot:
        """Take the snapshot. Must happen before any mutating action."""
        if self.state is not GuardState.IDLE:
            raise RuntimeError(f"StateGuard.arm() called in state {self.state.value}")
        self.snapshot = self.client.fetch_state()
        self.state = GuardState.ARMED
        print(f"    Snapshot: targetTemp={self.snapshot.target_temp}, "
              f"systemMode='{self.snapshot.system_mode}'")
        return self.snapshot

    def settle(self) -> bool:
        """Write the snapshot back once. Returns True if the PATCH was sent."""
        if self.state is not GuardState.ARMED:
            return False
        snap = self.snapshot
        self.state = GuardState.SETTLED
        try:
            self.client.apply_state(snap.target_temp, snap.system_mode)
        except RestoreFailed as exc:
            print(f"    [WARN] Restore failed, backend may be left modified: {exc}")
            return False
        print(f"    Restored: targetTemp={snap.target_temp}, systemMode='{snap.system_mode}'")
        return True

    def __enter__(self) -> "StateGuard":
        self.arm()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.settle()
        return False
