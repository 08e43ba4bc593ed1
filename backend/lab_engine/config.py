"""
config.py — Tunables for the virtual test-tube session.

Every number the session, resolver and effect layer agree on lives in
``LabSettings`` so that Django settings (``LAB_ENGINE``) or a test can
override a single field without touching module constants.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields


@dataclass(frozen=True)
class LabSettings:
    """Defaults for one lab session.

    Quantities are millilitres, temperatures degrees Celsius, pressures
    atmospheres and durations seconds.
    """

    # Ambient conditions restored by a full clear
    default_temperature: float = 25.0
    default_pressure: float = 1.0

    # Pour volume
    default_quantity: float = 2.0
    min_quantity: float = 0.5
    max_quantity: float = 10.0

    # Accepted ranges for the condition sliders
    min_temperature: float = -50.0
    max_temperature: float = 200.0
    min_pressure: float = 0.1
    max_pressure: float = 10.0

    # Break policy: the tube shatters on an explosion or above this intensity
    break_intensity: float = 4.0

    # Pour animation
    pour_duration: float = 2.0
    pour_tick: float = 0.1
    pour_step: float = 5.0

    @classmethod
    def from_mapping(cls, values: dict | None) -> "LabSettings":
        """Build settings from a plain dict, ignoring keys we don't know."""
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in values.items() if k in known})

    def clamp_quantity(self, value: float) -> float:
        return max(self.min_quantity, min(self.max_quantity, value))

    def clamp_temperature(self, value: float) -> float:
        return max(self.min_temperature, min(self.max_temperature, value))

    def clamp_pressure(self, value: float) -> float:
        return max(self.min_pressure, min(self.max_pressure, value))

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_SETTINGS = LabSettings()
