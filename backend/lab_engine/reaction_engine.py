"""
reaction_engine.py — Pure reaction resolver for the virtual test tube.

Centralises:
  • The value types the rest of the engine passes around (charges,
    ambient conditions, reaction results).
  • Rule evaluation against the catalogue's reactive-pair table.
  • The quantity, temperature and pressure modifiers.
  • Colour mixing for unreacted or partially reacted contents.

``resolve`` has no state and does no I/O.  The session calls it whenever
the tube contents or the conditions change while reacting; the REST
preview endpoint calls it directly.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations

import numpy as np

from .catalog import NEUTRAL_GRAY, get_chemical_by_id, get_rule
from .config import DEFAULT_SETTINGS, LabSettings

log = logging.getLogger(__name__)

# ── Modifier constants ───────────────────────────────────────────────────────
HIGH_QUANTITY = 5.0     # ml: above this the mixture is concentrated
LOW_QUANTITY  = 2.0     # ml: below this the reaction is weak
HOT           = 90.0    # °C: boiling, gas and smoke formation
COLD          = 20.0    # °C: sluggish, precipitates form
FREEZING      = 0.0     # °C: result temperature at which the contents freeze
EXOTHERMIC    = 50.0    # °C: result temperature shown as heat-releasing
HIGH_PRESSURE = 2.0     # atm: confined gas intensifies the reaction

QUANTITY_FACTORS    = {"high": 1.5, "low": 0.5, "balanced": 1.0}
TEMPERATURE_FACTORS = {"high": 1.5, "low": 0.5, "normal": 1.0}
PRESSURE_FACTOR     = 1.25
EXTRA_RULE_BONUS    = 0.5   # each additional matched rule on top of the strongest
AGITATION           = 1.0   # intensity of a mixture that doesn't react

DANGER_TEMPERATURE = 100.0

PHENOMENA = (
    "has_gas", "has_bubbles", "has_precipitate", "has_ice",
    "has_fire", "has_explosion", "has_glow", "has_smoke",
)


class Phase(str, Enum):
    """Display state of the tube contents while reacting."""
    GAS    = "gas"
    SOLID  = "solid"
    LIQUID = "liquid"


@dataclass(frozen=True)
class ChemicalCharge:
    """One bottle's worth of a chemical poured into the tube."""
    chemical_id: str
    color: str
    quantity: float

    @property
    def key(self) -> tuple[str, str]:
        return (self.chemical_id, self.color)


@dataclass(frozen=True)
class AmbientConditions:
    temperature: float = DEFAULT_SETTINGS.default_temperature
    pressure: float = DEFAULT_SETTINGS.default_pressure


@dataclass(frozen=True)
class ReactionResult:
    """
    Outcome of one resolution.  Never mutated: every change to the tube
    produces a fresh instance.
    """
    has_gas: bool = False
    has_bubbles: bool = False
    has_precipitate: bool = False
    has_ice: bool = False
    has_fire: bool = False
    has_explosion: bool = False
    has_glow: bool = False
    has_smoke: bool = False
    color: str = NEUTRAL_GRAY
    temperature: float = DEFAULT_SETTINGS.default_temperature
    intensity: float = 0.0
    glow_color: str | None = None
    reactions: tuple[str, ...] = field(default_factory=tuple)
    total_quantity: float = 0.0
    quantity_effect: str = "balanced"
    temperature_effect: str = "normal"

    @property
    def is_dangerous(self) -> bool:
        return self.has_fire or self.has_explosion or self.temperature > DANGER_TEMPERATURE

    @property
    def phase(self) -> Phase:
        if self.has_gas or self.has_bubbles:
            return Phase.GAS
        if self.has_precipitate or self.has_ice:
            return Phase.SOLID
        return Phase.LIQUID

    @property
    def is_exothermic(self) -> bool:
        return self.temperature > EXOTHERMIC

    def phenomena(self) -> tuple[str, ...]:
        """Names of the flags that are set, in declaration order."""
        return tuple(name for name in PHENOMENA if getattr(self, name))

    def explanation_keys(self) -> tuple[str, ...]:
        """
        Translation keys for the explanation panel shown beside the tube.

        Order: quantity effect, temperature effect, state change, heat,
        concentration.  The temperature key is read from the *result*
        temperature, which is what the student sees on the thermometer.
        """
        if self.temperature > HOT:
            temp_key = "reaction.high.temp"
        elif self.temperature < COLD:
            temp_key = "reaction.low.temp"
        else:
            temp_key = "reaction.normal.temp"
        return (
            f"reaction.{self.quantity_effect}.quantity",
            temp_key,
            f"state.{self.phase.value}",
            "reaction.exothermic" if self.is_exothermic else "reaction.endothermic",
            "reaction.concentrated" if self.total_quantity > HIGH_QUANTITY
            else "reaction.diluted",
        )


# ── Helpers ──────────────────────────────────────────────────────────────────

def _hex_to_rgb(value) -> tuple[int, int, int] | None:
    if not isinstance(value, str) or len(value) != 7 or not value.startswith("#"):
        return None
    try:
        return tuple(int(value[i:i + 2], 16) for i in (1, 3, 5))
    except ValueError:
        return None


def _blend_colors(colors: list[str], weights: list[float]) -> str:
    """Quantity-weighted average of hex colours; malformed colours are skipped."""
    rgb, w = [], []
    for color, weight in zip(colors, weights):
        parsed = _hex_to_rgb(color)
        if parsed is not None:
            rgb.append(parsed)
            w.append(max(weight, 0.0))
    if not rgb:
        return NEUTRAL_GRAY
    weights_arr = np.asarray(w, dtype=float)
    if weights_arr.sum() <= 0:
        weights_arr = np.ones_like(weights_arr)
    mixed = np.average(np.asarray(rgb, dtype=float), axis=0, weights=weights_arr)
    return "#{:02x}{:02x}{:02x}".format(*(int(round(c)) for c in mixed))


def _quantity_effect(total: float) -> str:
    if total > HIGH_QUANTITY:
        return "high"
    if total < LOW_QUANTITY:
        return "low"
    return "balanced"


def _temperature_effect(temperature: float) -> str:
    if temperature > HOT:
        return "high"
    if temperature < COLD:
        return "low"
    return "normal"


def _canonical(charges) -> list[tuple[ChemicalCharge, dict]]:
    """Known charges paired with their catalogue entry, in a fixed order."""
    valid = []
    for charge in charges:
        chem = get_chemical_by_id(getattr(charge, "chemical_id", None))
        quantity = getattr(charge, "quantity", None)
        if chem is None or not isinstance(quantity, (int, float)) or not math.isfinite(quantity):
            log.debug("[resolve] skipping unusable charge %r", charge)
            continue
        valid.append((charge, chem))
    valid.sort(key=lambda pair: (pair[0].chemical_id, str(pair[0].color), pair[0].quantity))
    return valid


def neutral_result(conditions: AmbientConditions) -> ReactionResult:
    """What an empty tube 'does': nothing, at ambient temperature."""
    return ReactionResult(temperature=conditions.temperature)


# ── Public API ───────────────────────────────────────────────────────────────

def resolve(charges, conditions: AmbientConditions) -> ReactionResult:
    """
    Compute the reaction outcome for the tube contents.

    Parameters
    ----------
    charges : iterable of ChemicalCharge
        Treated as a multiset: order never changes the result.  Charges
        naming an unknown chemical are skipped.
    conditions : AmbientConditions
        Ambient temperature (°C) and pressure (atm).

    Returns
    -------
    ReactionResult
        A neutral result when nothing usable is in the tube.
    """
    valid = _canonical(charges)
    if not valid:
        return neutral_result(conditions)

    quantities = [charge.quantity for charge, _ in valid]
    total = float(sum(quantities))

    # Reactive pairs between distinct classes present in the tube
    classes = sorted({chem["type"] for _, chem in valid})
    matched = []
    for a, b in combinations(classes, 2):
        rule = get_rule(a, b)
        if rule is not None:
            matched.append(rule)
    matched.sort(key=lambda rule: (-rule["intensity"], rule["name"]))

    flags: set[str] = set()
    heat = 0.0
    fire_at = explosion_at = None
    if matched:
        base = matched[0]["intensity"] + EXTRA_RULE_BONUS * (len(matched) - 1)
        for rule in matched:
            flags |= rule["flags"]
            heat += rule["heat"]
            if rule.get("fire_at") is not None:
                fire_at = rule["fire_at"] if fire_at is None else min(fire_at, rule["fire_at"])
            if rule.get("explosion_at") is not None:
                explosion_at = (rule["explosion_at"] if explosion_at is None
                                else min(explosion_at, rule["explosion_at"]))
    else:
        base = AGITATION

    quantity_effect = _quantity_effect(total)
    temperature_effect = _temperature_effect(conditions.temperature)
    q_factor = QUANTITY_FACTORS[quantity_effect]
    t_factor = TEMPERATURE_FACTORS[temperature_effect]

    if temperature_effect == "high":
        flags |= {"has_gas", "has_bubbles"}
        if matched:
            flags.add("has_smoke")
    elif temperature_effect == "low" and matched:
        flags.add("has_precipitate")

    result_temperature = conditions.temperature + heat * q_factor
    if result_temperature <= FREEZING:
        flags.add("has_ice")
        flags -= {"has_gas", "has_bubbles"}

    intensity = base * q_factor * t_factor
    if "has_gas" in flags and conditions.pressure > HIGH_PRESSURE:
        intensity *= PRESSURE_FACTOR
    intensity = max(0.0, intensity)

    if fire_at is not None and intensity >= fire_at:
        flags.add("has_fire")
    if explosion_at is not None and intensity >= explosion_at:
        flags.add("has_explosion")

    product = next((rule["color"] for rule in matched if rule.get("color")), None)
    color = product or _blend_colors([c.color for c, _ in valid], quantities)
    glow_color = next((rule["glow_color"] for rule in matched if rule.get("glow_color")), None)

    return ReactionResult(
        color=color,
        temperature=result_temperature,
        intensity=intensity,
        glow_color=glow_color if "has_glow" in flags else None,
        reactions=tuple(rule["name"] for rule in matched),
        total_quantity=total,
        quantity_effect=quantity_effect,
        temperature_effect=temperature_effect,
        **{name: name in flags for name in PHENOMENA},
    )


def breaks_tube(result: ReactionResult | None,
                settings: LabSettings = DEFAULT_SETTINGS) -> bool:
    """True when *result* is violent enough to shatter the tube."""
    if result is None:
        return False
    return result.has_explosion or result.intensity > settings.break_intensity
