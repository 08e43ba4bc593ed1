"""
catalog.py — Read-only chemical catalogue and reaction rule table.

Both the resolver and the session look chemicals up here; nothing in the
engine ever writes to these tables.  Adding a chemical is a data change:
give it a reactivity ``type`` that already appears in ``REACTION_RULES``
and it reacts like its peers.
"""

import logging

log = logging.getLogger(__name__)

NEUTRAL_GRAY = "#cccccc"

# ── Chemicals ────────────────────────────────────────────────────────────────
# 'type' is the reactivity class the rule table is keyed on.
# 'variants' lists alternative colours the same bottle may be poured in.
CHEMICALS: dict[str, dict] = {
    "HCl": {
        "label": "Hydrochloric Acid", "label_ar": "حمض الهيدروكلوريك",
        "formula": "HCl", "type": "acid", "color": "#f0f9ff", "state": "liquid",
    },
    "H2SO4": {
        "label": "Sulfuric Acid", "label_ar": "حمض الكبريتيك",
        "formula": "H₂SO₄", "type": "acid", "color": "#fefce8", "state": "liquid",
    },
    "AceticAcid": {
        "label": "Acetic Acid", "label_ar": "حمض الأسيتيك",
        "formula": "CH₃COOH", "type": "acid", "color": "#fafaf9", "state": "liquid",
    },
    "NaOH": {
        "label": "Sodium Hydroxide", "label_ar": "هيدروكسيد الصوديوم",
        "formula": "NaOH", "type": "base", "color": "#f5f5f5", "state": "liquid",
    },
    "KOH": {
        "label": "Potassium Hydroxide", "label_ar": "هيدروكسيد البوتاسيوم",
        "formula": "KOH", "type": "base", "color": "#f4f4f5", "state": "liquid",
    },
    "NaHCO3": {
        "label": "Baking Soda", "label_ar": "بيكربونات الصوديوم",
        "formula": "NaHCO₃", "type": "carbonate", "color": "#ffffff", "state": "solid",
    },
    "CaCO3": {
        "label": "Calcium Carbonate", "label_ar": "كربونات الكالسيوم",
        "formula": "CaCO₃", "type": "carbonate", "color": "#f8fafc", "state": "solid",
    },
    "Mg": {
        "label": "Magnesium Ribbon", "label_ar": "شريط المغنيسيوم",
        "formula": "Mg", "type": "metal", "color": "#d4d4d8", "state": "solid",
    },
    "Na": {
        "label": "Sodium Metal", "label_ar": "فلز الصوديوم",
        "formula": "Na", "type": "alkali_metal", "color": "#c0c0c0", "state": "solid",
    },
    "K": {
        "label": "Potassium Metal", "label_ar": "فلز البوتاسيوم",
        "formula": "K", "type": "alkali_metal", "color": "#b8b8c0", "state": "solid",
    },
    "Water": {
        "label": "Distilled Water", "label_ar": "ماء مقطر",
        "formula": "H₂O", "type": "neutral", "color": "#a8d8ff", "state": "liquid",
    },
    "BlueDye": {
        "label": "Blue Dye Solution", "label_ar": "محلول صبغة زرقاء",
        "formula": "C₃₇H₃₄N₂Na₂O₉S₃(aq)", "type": "neutral", "color": "#2563eb",
        "state": "liquid", "variants": ("#1e3a8a", "#60a5fa"),
    },
    "YellowDye": {
        "label": "Yellow Dye Solution", "label_ar": "محلول صبغة صفراء",
        "formula": "C₁₆H₉N₄Na₃O₉S₂(aq)", "type": "neutral", "color": "#facc15",
        "state": "liquid", "variants": ("#ca8a04",),
    },
    "Glycerol": {
        "label": "Glycerol", "label_ar": "الجلسرين",
        "formula": "C₃H₈O₃", "type": "fuel", "color": "#fafafa", "state": "liquid",
    },
    "KMnO4": {
        "label": "Potassium Permanganate", "label_ar": "برمنجنات البوتاسيوم",
        "formula": "KMnO₄", "type": "oxidizer", "color": "#7e22ce", "state": "solid",
    },
    "H2O2": {
        "label": "Hydrogen Peroxide", "label_ar": "بيروكسيد الهيدروجين",
        "formula": "H₂O₂", "type": "peroxide", "color": "#e0f2fe", "state": "liquid",
    },
    "Luminol": {
        "label": "Luminol Solution", "label_ar": "محلول اللومينول",
        "formula": "C₈H₇N₃O₂(aq)", "type": "luminol", "color": "#f1f5f9", "state": "liquid",
    },
    "AgNO3": {
        "label": "Silver Nitrate", "label_ar": "نترات الفضة",
        "formula": "AgNO₃", "type": "silver_salt", "color": "#f8fafc", "state": "liquid",
    },
    "NaClSol": {
        "label": "Saline Solution", "label_ar": "محلول ملحي",
        "formula": "NaCl(aq)", "type": "halide", "color": "#f0fdfa", "state": "liquid",
    },
    "CuSO4": {
        "label": "Copper Sulfate", "label_ar": "كبريتات النحاس",
        "formula": "CuSO₄", "type": "copper_salt", "color": "#1d4ed8", "state": "liquid",
    },
    "Phenolphthalein": {
        "label": "Phenolphthalein", "label_ar": "الفينولفثالين",
        "formula": "C₂₀H₁₄O₄", "type": "indicator", "color": "#fdf4ff", "state": "liquid",
    },
    "KI": {
        "label": "Potassium Iodide", "label_ar": "يوديد البوتاسيوم",
        "formula": "KI", "type": "iodide", "color": "#fffbeb", "state": "solid",
    },
}

# ── Reaction rules ───────────────────────────────────────────────────────────
# Keyed by the unordered pair of reactivity classes.  'fire_at' and
# 'explosion_at' are intensity thresholds: the flag only appears once the
# modified intensity reaches them.
REACTION_RULES: dict[frozenset, dict] = {
    frozenset({"acid", "base"}): {
        "name": "neutralization", "intensity": 1.5, "heat": 15.0,
        "flags": frozenset(),
    },
    frozenset({"acid", "carbonate"}): {
        "name": "carbon_dioxide_release", "intensity": 1.5, "heat": -2.0,
        "flags": frozenset({"has_gas", "has_bubbles"}),
    },
    frozenset({"acid", "metal"}): {
        "name": "hydrogen_evolution", "intensity": 2.0, "heat": 25.0,
        "flags": frozenset({"has_gas", "has_bubbles"}),
        "fire_at": 3.0,
    },
    frozenset({"alkali_metal", "neutral"}): {
        "name": "alkali_metal_in_water", "intensity": 2.5, "heat": 60.0,
        "flags": frozenset({"has_gas", "has_bubbles", "has_smoke"}),
        "fire_at": 2.0, "explosion_at": 3.5,
    },
    frozenset({"alkali_metal", "acid"}): {
        "name": "violent_acid_attack", "intensity": 3.0, "heat": 80.0,
        "flags": frozenset({"has_gas", "has_bubbles", "has_smoke"}),
        "fire_at": 2.0, "explosion_at": 3.0,
    },
    frozenset({"oxidizer", "fuel"}): {
        "name": "spontaneous_combustion", "intensity": 2.0, "heat": 90.0,
        "flags": frozenset({"has_smoke"}), "color": "#3f1d0b",
        "fire_at": 1.5, "explosion_at": 4.0,
    },
    frozenset({"oxidizer", "peroxide"}): {
        "name": "oxygen_release", "intensity": 1.8, "heat": 20.0,
        "flags": frozenset({"has_gas", "has_bubbles"}), "color": "#fef3c7",
    },
    frozenset({"iodide", "peroxide"}): {
        "name": "catalytic_decomposition", "intensity": 2.0, "heat": 30.0,
        "flags": frozenset({"has_gas", "has_bubbles", "has_smoke"}),
        "color": "#fde68a",
    },
    frozenset({"luminol", "peroxide"}): {
        "name": "chemiluminescence", "intensity": 1.0, "heat": 0.0,
        "flags": frozenset({"has_glow"}), "glow_color": "#38bdf8",
    },
    frozenset({"silver_salt", "halide"}): {
        "name": "silver_chloride_precipitate", "intensity": 1.0, "heat": 0.0,
        "flags": frozenset({"has_precipitate"}), "color": "#f8fafc",
    },
    frozenset({"copper_salt", "base"}): {
        "name": "copper_hydroxide_precipitate", "intensity": 1.0, "heat": 5.0,
        "flags": frozenset({"has_precipitate"}), "color": "#60a5fa",
    },
    frozenset({"indicator", "base"}): {
        "name": "indicator_turns_pink", "intensity": 0.5, "heat": 0.0,
        "flags": frozenset(), "color": "#ec4899",
    },
}


# ── Public API ───────────────────────────────────────────────────────────────

def get_chemical_by_id(chemical_id) -> dict | None:
    """Return the catalogue entry for *chemical_id*, or None when unknown."""
    if not isinstance(chemical_id, str):
        return None
    return CHEMICALS.get(chemical_id)


def chemical_color(chemical_id: str, variant: str | None = None) -> str | None:
    """
    Resolve the colour a charge of *chemical_id* is poured in.

    Returns the catalogue colour when *variant* is None or equals it, the
    variant when the chemical declares it, and None otherwise.
    """
    chem = get_chemical_by_id(chemical_id)
    if chem is None:
        return None
    if variant is None or variant == chem["color"]:
        return chem["color"]
    if variant in chem.get("variants", ()):
        return variant
    log.warning("[catalog] %s has no colour variant %r", chemical_id, variant)
    return None


def get_rule(type_a: str, type_b: str) -> dict | None:
    return REACTION_RULES.get(frozenset({type_a, type_b}))


def catalog_payload() -> list[dict]:
    """Serialisable catalogue for the chemical picker."""
    return [
        {
            "id":       cid,
            "label":    m["label"],
            "label_ar": m["label_ar"],
            "formula":  m["formula"],
            "type":     m["type"],
            "color":    m["color"],
            "state":    m["state"],
            "variants": list(m.get("variants", ())),
        }
        for cid, m in CHEMICALS.items()
    ]
