"""Virtual test-tube engine: catalogue, resolver, session and effect cues."""

from .catalog import CHEMICALS, get_chemical_by_id
from .config import LabSettings
from .effects import EffectOrchestrator, EffectSignal
from .reaction_engine import (
    AmbientConditions,
    ChemicalCharge,
    Phase,
    ReactionResult,
    breaks_tube,
    resolve,
)
from .session import CommandResult, LabSession, RejectReason, SessionState, Transition

__all__ = [
    "CHEMICALS",
    "get_chemical_by_id",
    "LabSettings",
    "EffectOrchestrator",
    "EffectSignal",
    "AmbientConditions",
    "ChemicalCharge",
    "Phase",
    "ReactionResult",
    "breaks_tube",
    "resolve",
    "CommandResult",
    "LabSession",
    "RejectReason",
    "SessionState",
    "Transition",
]
