"""Tests for the pure reaction resolver.

Covers:
- Determinism and order independence
- Neutral results for empty or unusable input
- Quantity, temperature and pressure modifiers
- Fire / explosion thresholds and the break policy
- Ice, precipitate and phase display state
- Product colours versus blended colours
- Explanation keys
"""

import itertools
import math

import pytest

from lab_engine.catalog import NEUTRAL_GRAY, chemical_color
from lab_engine.config import LabSettings
from lab_engine.reaction_engine import (
    AmbientConditions,
    ChemicalCharge,
    Phase,
    ReactionResult,
    breaks_tube,
    resolve,
)

ROOM = AmbientConditions()
HOT = AmbientConditions(temperature=95.0)


def charge(chemical_id: str, quantity: float = 2.0, color: str | None = None) -> ChemicalCharge:
    return ChemicalCharge(chemical_id, color or chemical_color(chemical_id), quantity)


# ---------------------------------------------------------------------------
# Neutral input
# ---------------------------------------------------------------------------

class TestNeutral:
    def test_empty_tube(self):
        result = resolve([], ROOM)
        assert result.intensity == 0.0
        assert result.temperature == 25.0
        assert result.color == NEUTRAL_GRAY
        assert result.reactions == ()
        assert result.phenomena() == ()

    def test_empty_tube_reports_ambient_temperature(self):
        assert resolve([], AmbientConditions(temperature=-5.0)).temperature == -5.0

    def test_unknown_chemicals_are_skipped(self):
        assert resolve([ChemicalCharge("Unobtainium", "#ffffff", 2.0)], ROOM) == resolve([], ROOM)

    def test_non_finite_quantity_is_skipped(self):
        result = resolve([charge("HCl", math.nan), charge("NaOH")], ROOM)
        assert result.reactions == ()
        assert result.total_quantity == 2.0

    def test_unreactive_mixture_at_room_temperature(self):
        result = resolve([charge("Water"), charge("BlueDye")], ROOM)
        assert result.intensity == pytest.approx(1.0)
        assert result.temperature == pytest.approx(25.0)
        assert result.phenomena() == ()
        assert not result.is_dangerous

    def test_unreactive_mixture_boils_when_hot(self):
        result = resolve([charge("Water"), charge("BlueDye")], HOT)
        assert result.intensity == pytest.approx(1.5)
        assert result.has_gas and result.has_bubbles
        assert not result.has_smoke
        assert result.phase is Phase.GAS
        assert not result.is_dangerous


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------

class TestDeterminism:
    def test_same_input_same_result(self):
        charges = [charge("HCl"), charge("Mg"), charge("NaOH", 3.0)]
        assert resolve(charges, HOT) == resolve(list(charges), HOT)

    def test_order_never_matters(self):
        charges = [charge("HCl"), charge("Mg", 1.0), charge("BlueDye", 3.0, "#60a5fa")]
        expected = resolve(charges, ROOM)
        for perm in itertools.permutations(charges):
            assert resolve(list(perm), ROOM) == expected

    def test_accepts_any_iterable(self):
        charges = (charge("HCl"), charge("NaOH"))
        assert resolve(iter(charges), ROOM) == resolve(list(charges), ROOM)


# ---------------------------------------------------------------------------
# Modifiers
# ---------------------------------------------------------------------------

class TestModifiers:
    def test_balanced_neutralization(self):
        result = resolve([charge("HCl"), charge("NaOH")], ROOM)
        assert result.reactions == ("neutralization",)
        assert result.intensity == pytest.approx(1.5)
        assert result.temperature == pytest.approx(40.0)
        assert result.quantity_effect == "balanced"
        assert result.temperature_effect == "normal"

    def test_high_quantity_amplifies(self):
        result = resolve([charge("HCl", 3.0), charge("NaOH", 3.0)], ROOM)
        assert result.quantity_effect == "high"
        assert result.intensity == pytest.approx(2.25)
        assert result.temperature == pytest.approx(47.5)

    def test_low_quantity_dampens(self):
        result = resolve([charge("HCl", 0.5), charge("NaOH", 0.5)], ROOM)
        assert result.quantity_effect == "low"
        assert result.intensity == pytest.approx(0.75)
        assert result.temperature == pytest.approx(32.5)

    def test_heat_adds_smoke_to_a_real_reaction(self):
        result = resolve([charge("HCl"), charge("NaOH")], HOT)
        assert result.intensity == pytest.approx(2.25)
        assert result.has_gas and result.has_bubbles and result.has_smoke

    def test_cold_slows_and_precipitates(self):
        result = resolve([charge("HCl"), charge("NaOH")], AmbientConditions(temperature=10.0))
        assert result.temperature_effect == "low"
        assert result.intensity == pytest.approx(0.75)
        assert result.has_precipitate
        assert not result.has_ice

    def test_pressure_boosts_gas_reactions(self):
        charges = [charge("HCl"), charge("NaHCO3")]
        normal = resolve(charges, AmbientConditions(pressure=1.0))
        pressed = resolve(charges, AmbientConditions(pressure=3.0))
        assert normal.intensity == pytest.approx(1.5)
        assert pressed.intensity == pytest.approx(1.875)

    def test_pressure_ignored_without_gas(self):
        charges = [charge("HCl"), charge("NaOH")]
        assert resolve(charges, AmbientConditions(pressure=5.0)).intensity == pytest.approx(1.5)

    def test_multiple_rules_stack_on_the_strongest(self):
        result = resolve([charge("HCl"), charge("NaOH"), charge("Mg")], ROOM)
        assert result.reactions == ("hydrogen_evolution", "neutralization")
        # (2.0 + 0.5) * 1.5 for the 6 ml total
        assert result.intensity == pytest.approx(3.75)
        assert result.has_fire
        assert result.temperature == pytest.approx(85.0)


# ---------------------------------------------------------------------------
# Fire, explosion and breaking
# ---------------------------------------------------------------------------

class TestViolence:
    def test_alkali_metal_in_water_burns(self):
        result = resolve([charge("Na"), charge("Water")], ROOM)
        assert result.intensity == pytest.approx(2.5)
        assert result.has_fire
        assert not result.has_explosion
        assert result.is_dangerous
        assert not breaks_tube(result)

    def test_alkali_metal_in_hot_water_explodes(self):
        result = resolve([charge("Na"), charge("Water")], HOT)
        assert result.intensity == pytest.approx(3.75)
        assert result.has_fire and result.has_explosion and result.has_smoke
        assert result.temperature == pytest.approx(155.0)
        assert breaks_tube(result)

    def test_threshold_is_inclusive(self):
        # 2.0 * 1.5 lands exactly on the 3.0 fire threshold
        result = resolve([charge("HCl"), charge("Mg")], HOT)
        assert result.intensity == pytest.approx(3.0)
        assert result.has_fire

    def test_just_below_threshold_does_not_burn(self):
        result = resolve([charge("HCl"), charge("Mg")], ROOM)
        assert result.intensity == pytest.approx(2.0)
        assert not result.has_fire

    def test_combustion_keeps_product_color(self):
        result = resolve([charge("KMnO4"), charge("Glycerol")], ROOM)
        assert result.color == "#3f1d0b"
        assert result.has_fire and not result.has_explosion
        assert result.temperature == pytest.approx(115.0)
        assert result.is_dangerous

    def test_heat_alone_is_dangerous(self):
        assert ReactionResult(temperature=100.5).is_dangerous
        assert not ReactionResult(temperature=100.0).is_dangerous


class TestBreaksTube:
    def test_no_result_never_breaks(self):
        assert not breaks_tube(None)

    def test_intensity_must_exceed_threshold(self):
        assert not breaks_tube(ReactionResult(intensity=4.0))
        assert breaks_tube(ReactionResult(intensity=4.01))

    def test_explosion_always_breaks(self):
        assert breaks_tube(ReactionResult(has_explosion=True, intensity=0.1))

    def test_threshold_is_configurable(self):
        result = ReactionResult(intensity=2.5)
        assert not breaks_tube(result)
        assert breaks_tube(result, LabSettings(break_intensity=2.0))


# ---------------------------------------------------------------------------
# Ice, phase and colour
# ---------------------------------------------------------------------------

class TestStateOfMatter:
    def test_freezing_mixture_turns_to_ice(self):
        result = resolve([charge("Water"), charge("BlueDye")], AmbientConditions(temperature=-10.0))
        assert result.has_ice
        assert not result.has_precipitate
        assert result.phase is Phase.SOLID

    def test_ice_suppresses_gas(self):
        # 1 °C ambient, then the endothermic carbonate reaction drops below zero
        result = resolve([charge("HCl"), charge("NaHCO3")], AmbientConditions(temperature=1.0))
        assert result.temperature == pytest.approx(-1.0)
        assert result.has_ice and result.has_precipitate
        assert not result.has_gas and not result.has_bubbles

    def test_gas_wins_the_phase(self):
        result = resolve([charge("HCl"), charge("NaHCO3")], ROOM)
        assert result.phase is Phase.GAS

    def test_plain_liquid(self):
        assert resolve([charge("HCl"), charge("NaOH")], ROOM).phase is Phase.LIQUID


class TestColor:
    def test_single_charge_keeps_its_color(self):
        assert resolve([charge("BlueDye", 2.0, "#60a5fa")], ROOM).color == "#60a5fa"

    def test_unreacted_colors_blend_by_quantity(self):
        result = resolve([charge("Water", 1.0), charge("BlueDye", 3.0)], ROOM)
        assert result.color == "#4680f0"

    def test_product_color_wins(self):
        result = resolve([charge("NaOH"), charge("Phenolphthalein")], ROOM)
        assert result.color == "#ec4899"

    def test_glow(self):
        result = resolve([charge("Luminol"), charge("H2O2")], ROOM)
        assert result.has_glow
        assert result.glow_color == "#38bdf8"

    def test_no_glow_color_without_glow(self):
        assert resolve([charge("HCl"), charge("NaOH")], ROOM).glow_color is None


class TestExplanation:
    def test_mild_reaction(self):
        keys = resolve([charge("HCl"), charge("NaOH")], ROOM).explanation_keys()
        assert keys == (
            "reaction.balanced.quantity",
            "reaction.normal.temp",
            "state.liquid",
            "reaction.endothermic",
            "reaction.diluted",
        )

    def test_violent_reaction(self):
        keys = resolve([charge("Na", 3.0), charge("Water", 3.0)], HOT).explanation_keys()
        assert keys == (
            "reaction.high.quantity",
            "reaction.high.temp",
            "state.gas",
            "reaction.exothermic",
            "reaction.concentrated",
        )
