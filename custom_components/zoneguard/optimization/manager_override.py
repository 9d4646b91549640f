"""Manager override tracking.

Operators set a temporary offset per zone. The offset is applied on top of
every other layer until started_at + the profile's reset duration, and is
gone from that instant on. Expiry is time-based and checked every cycle.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManagerOverride:
    """Operator-set setpoint offset for one zone."""

    zone_id: str
    offset_f: float
    started_at: datetime

    def expires_at(self, reset_minutes: int) -> datetime:
        """Instant the override stops applying."""
        return self.started_at + timedelta(minutes=reset_minutes)

    def is_active(self, now: datetime, reset_minutes: int) -> bool:
        """Active on [started_at, started_at + reset_minutes)."""
        return self.started_at <= now < self.expires_at(reset_minutes)

    def minutes_remaining(self, now: datetime, reset_minutes: int) -> int:
        """Whole minutes left, rounded up."""
        remaining = (self.expires_at(reset_minutes) - now).total_seconds() / 60
        return max(0, math.ceil(remaining))


def clamp_offset(offset_f: float, max_raise_f: float, max_lower_f: float) -> float:
    """Clamp an offset to [-max_lower, +max_raise]."""
    return max(-max_lower_f, min(max_raise_f, offset_f))


class ManagerOverrideStore:
    """Active manager overrides, keyed by zone."""

    def __init__(self):
        """Initialize empty store."""
        self._overrides: dict[str, ManagerOverride] = {}

    def set(self, zone_id: str, offset_f: float, now: datetime) -> ManagerOverride:
        """Set or replace a zone's override, restarting its timer."""
        override = ManagerOverride(zone_id=zone_id, offset_f=offset_f, started_at=now)
        self._overrides[zone_id] = override
        _LOGGER.info("Manager override set for %s: %+.1f°F", zone_id, offset_f)
        return override

    def clear(self, zone_id: str) -> bool:
        """Remove a zone's override. Returns True if one existed."""
        removed = self._overrides.pop(zone_id, None)
        if removed:
            _LOGGER.info("Manager override cleared for %s", zone_id)
        return removed is not None

    def get(self, zone_id: str) -> ManagerOverride | None:
        """Stored override for a zone, expired or not."""
        return self._overrides.get(zone_id)

    def prune_expired(self, now: datetime, reset_minutes: Mapping[str, int]) -> list[str]:
        """Drop overrides past their reset time.

        Args:
            now: Current time
            reset_minutes: Reset duration per zone id

        Returns:
            Zone ids whose override expired
        """
        expired = [
            zone_id
            for zone_id, override in self._overrides.items()
            if zone_id in reset_minutes and now >= override.expires_at(reset_minutes[zone_id])
        ]
        for zone_id in expired:
            del self._overrides[zone_id]
            _LOGGER.info("Manager override expired for %s, returning to profile", zone_id)
        return expired

    def __len__(self) -> int:
        return len(self._overrides)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for persistence."""
        return {
            zone_id: {"offset_f": o.offset_f, "started_at": o.started_at.isoformat()}
            for zone_id, o in self._overrides.items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ManagerOverrideStore":
        """Restore from to_dict() output."""
        store = cls()
        for zone_id, item in data.items():
            store._overrides[zone_id] = ManagerOverride(
                zone_id=zone_id,
                offset_f=float(item["offset_f"]),
                started_at=datetime.fromisoformat(item["started_at"]),
            )
        return store
