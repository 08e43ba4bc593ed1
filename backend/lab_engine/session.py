"""
session.py — The test-tube session state machine.

One ``LabSession`` owns everything that changes during a lab: the charges
in the tube, the ambient conditions, the current reaction result and the
explosion snapshot.  Commands come in from the consumer (or a test),
transitions go out to subscribers in the order they happen.

Commands never raise.  A command the current state forbids comes back as
a rejected ``CommandResult`` with a reason code and leaves the session
exactly as it was.

State flow::

    Idle ─begin_select─▶ Selecting ─select─▶ Pouring ─pour_complete─▶ Loaded
    Loaded ─start─▶ Reacting ─stop─▶ Loaded
    Reacting ─(explosion / intensity over break threshold)─▶ Broken
    Broken ─restore_test_tube─▶ Loaded
    Broken ─restore_chemicals─▶ Restoring ─▶ Loaded
    any but Pouring ─clear─▶ Idle
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from .catalog import chemical_color, get_chemical_by_id
from .config import DEFAULT_SETTINGS, LabSettings
from .reaction_engine import (
    AmbientConditions,
    ChemicalCharge,
    ReactionResult,
    breaks_tube,
    resolve,
)

log = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE      = "idle"
    SELECTING = "selecting"
    POURING   = "pouring"
    LOADED    = "loaded"
    REACTING  = "reacting"
    BROKEN    = "broken"
    RESTORING = "restoring"


class RejectReason(str, Enum):
    POUR_IN_PROGRESS     = "pour_in_progress"
    INVALID_STATE        = "invalid_state"
    NOT_ENOUGH_CHEMICALS = "not_enough_chemicals"
    UNKNOWN_CHEMICAL     = "unknown_chemical"
    UNKNOWN_VARIANT      = "unknown_variant"
    NO_SNAPSHOT          = "no_snapshot"
    INVALID_INDEX        = "invalid_index"
    INVALID_VALUE        = "invalid_value"


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    state: SessionState
    reason: RejectReason | None = None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class PendingPour:
    """The bottle currently being poured."""
    chemical_id: str
    color: str


@dataclass(frozen=True)
class Transition:
    previous: SessionState
    current: SessionState
    event: str
    result: ReactionResult | None


Listener = Callable[[Transition], None]

MIN_REACTANTS = 2


def _is_number(value) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints past the float range
        return False


class LabSession:
    """State machine for one virtual test tube."""

    def __init__(self, settings: LabSettings = DEFAULT_SETTINGS):
        self.settings = settings
        self._state = SessionState.IDLE
        self._charges: list[ChemicalCharge] = []
        self._conditions = self._default_conditions()
        self._result: ReactionResult | None = None
        self._snapshot: tuple[ChemicalCharge, ...] | None = None
        self._pending: PendingPour | None = None
        self._global_quantity = settings.default_quantity
        self._listeners: list[Listener] = []

    # ── Queries ──────────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def charges(self) -> tuple[ChemicalCharge, ...]:
        return tuple(self._charges)

    @property
    def conditions(self) -> AmbientConditions:
        return self._conditions

    @property
    def result(self) -> ReactionResult | None:
        return self._result

    @property
    def snapshot(self) -> tuple[ChemicalCharge, ...] | None:
        return self._snapshot

    @property
    def pending(self) -> PendingPour | None:
        return self._pending

    @property
    def global_quantity(self) -> float:
        return self._global_quantity

    @property
    def total_quantity(self) -> float:
        return sum(charge.quantity for charge in self._charges)

    @property
    def is_dangerous_reaction(self) -> bool:
        return self._result is not None and self._result.is_dangerous

    # ── Subscriptions ────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for transitions; returns the unsubscribe call."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Chemical selection and pouring ───────────────────────────────────────

    def begin_select_chemical(self) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("begin_select", RejectReason.POUR_IN_PROGRESS)
        if self._state not in (SessionState.IDLE, SessionState.LOADED):
            return self._reject("begin_select", RejectReason.INVALID_STATE)
        self._move(SessionState.SELECTING, "begin_select")
        return self._accept()

    def cancel_selection(self) -> CommandResult:
        if self._state is not SessionState.SELECTING:
            return self._reject("cancel_selection", RejectReason.INVALID_STATE)
        self._move(self._resting_state(), "cancel_selection")
        return self._accept()

    def select_chemical(self, chemical_id: str, color: str | None = None) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("select_chemical", RejectReason.POUR_IN_PROGRESS)
        if self._state is not SessionState.SELECTING:
            return self._reject("select_chemical", RejectReason.INVALID_STATE)
        if get_chemical_by_id(chemical_id) is None:
            log.warning("[SESSION] Unknown chemical_id: %r", chemical_id)
            return self._reject("select_chemical", RejectReason.UNKNOWN_CHEMICAL)
        resolved = chemical_color(chemical_id, color)
        if resolved is None:
            return self._reject("select_chemical", RejectReason.UNKNOWN_VARIANT)

        self._pending = PendingPour(chemical_id, resolved)
        self._move(SessionState.POURING, "select_chemical")
        log.info("[SESSION] Pouring %s (%s)", chemical_id, resolved)
        return self._accept()

    def add_chemical(self, chemical_id: str) -> CommandResult:
        """
        Land the bottle being poured in the tube.

        This is the pour-completion path: it is only accepted while
        pouring *chemical_id*, and it uses the current global quantity.
        """
        pending = self._pending
        if self._state is not SessionState.POURING or pending is None:
            return self._reject("add_chemical", RejectReason.INVALID_STATE)
        if pending.chemical_id != chemical_id:
            log.warning("[SESSION] Pour of %s completed as %r", pending.chemical_id, chemical_id)
            return self._reject("add_chemical", RejectReason.UNKNOWN_CHEMICAL)

        self._add_charge(pending.chemical_id, pending.color, self._global_quantity)
        self._pending = None
        self._move(SessionState.LOADED, "pour_complete")
        return self._accept()

    def pour_complete(self) -> CommandResult:
        """Fired by the pour timer once the animation has run its course."""
        if self._state is not SessionState.POURING or self._pending is None:
            return self._reject("pour_complete", RejectReason.INVALID_STATE)
        return self.add_chemical(self._pending.chemical_id)

    def cancel_pour(self) -> CommandResult:
        """Abandon the pour in flight; nothing reaches the tube."""
        if self._state is not SessionState.POURING:
            return self._reject("cancel_pour", RejectReason.INVALID_STATE)
        self._pending = None
        self._move(self._resting_state(), "cancel_pour")
        return self._accept()

    # ── Quantities and conditions ────────────────────────────────────────────

    def update_quantity(self, index: int, delta: float) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("update_quantity", RejectReason.POUR_IN_PROGRESS)
        if not isinstance(index, int) or isinstance(index, bool) \
                or not 0 <= index < len(self._charges):
            return self._reject("update_quantity", RejectReason.INVALID_INDEX)
        if not _is_number(delta):
            return self._reject("update_quantity", RejectReason.INVALID_VALUE)

        charge = self._charges[index]
        quantity = self.settings.clamp_quantity(charge.quantity + delta)
        self._charges[index] = replace(charge, quantity=quantity)
        log.debug("[SESSION] %s quantity %.2f → %.2f", charge.chemical_id, charge.quantity, quantity)
        self._after_change("update_quantity")
        return self._accept()

    def set_global_quantity(self, value: float) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("set_global_quantity", RejectReason.POUR_IN_PROGRESS)
        if not _is_number(value):
            return self._reject("set_global_quantity", RejectReason.INVALID_VALUE)
        self._global_quantity = self.settings.clamp_quantity(value)
        self._move(self._state, "set_global_quantity")
        return self._accept()

    def set_temperature(self, value: float) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("set_temperature", RejectReason.POUR_IN_PROGRESS)
        if not _is_number(value):
            return self._reject("set_temperature", RejectReason.INVALID_VALUE)
        self._conditions = replace(self._conditions,
                                   temperature=self.settings.clamp_temperature(value))
        self._after_change("set_temperature")
        return self._accept()

    def set_pressure(self, value: float) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("set_pressure", RejectReason.POUR_IN_PROGRESS)
        if not _is_number(value):
            return self._reject("set_pressure", RejectReason.INVALID_VALUE)
        self._conditions = replace(self._conditions,
                                   pressure=self.settings.clamp_pressure(value))
        self._after_change("set_pressure")
        return self._accept()

    # ── Reaction lifecycle ───────────────────────────────────────────────────

    def start_reaction(self) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("start_reaction", RejectReason.POUR_IN_PROGRESS)
        if len(self._charges) < MIN_REACTANTS:
            return self._reject("start_reaction", RejectReason.NOT_ENOUGH_CHEMICALS)
        if self._state is not SessionState.LOADED:
            return self._reject("start_reaction", RejectReason.INVALID_STATE)

        self._result = resolve(self._charges, self._conditions)
        log.info("[SESSION] Reaction started: %s intensity=%.2f",
                 ",".join(self._result.reactions) or "no reaction", self._result.intensity)
        self._move(SessionState.REACTING, "start_reaction")
        self._check_break()
        return self._accept()

    def stop_reaction(self) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("stop_reaction", RejectReason.POUR_IN_PROGRESS)
        if self._state is not SessionState.REACTING:
            return self._reject("stop_reaction", RejectReason.INVALID_STATE)
        self._result = None
        self._move(SessionState.LOADED, "stop_reaction")
        return self._accept()

    def clear_test_tube(self) -> CommandResult:
        if self._state is SessionState.POURING:
            return self._reject("clear_test_tube", RejectReason.POUR_IN_PROGRESS)
        self._charges.clear()
        self._conditions = self._default_conditions()
        self._result = None
        self._snapshot = None
        self._move(SessionState.IDLE, "clear_test_tube")
        return self._accept()

    def restore_test_tube(self) -> CommandResult:
        """Mend the broken tube; the chemicals stay, the reaction stays stopped."""
        if self._state is SessionState.POURING:
            return self._reject("restore_test_tube", RejectReason.POUR_IN_PROGRESS)
        if self._state is not SessionState.BROKEN:
            return self._reject("restore_test_tube", RejectReason.INVALID_STATE)
        self._result = None
        self._move(SessionState.LOADED, "restore_test_tube")
        return self._accept()

    def restore_chemicals(self) -> CommandResult:
        """Refill the tube with what was in it when it broke."""
        if self._state is SessionState.POURING:
            return self._reject("restore_chemicals", RejectReason.POUR_IN_PROGRESS)
        if self._state not in (SessionState.BROKEN, SessionState.LOADED, SessionState.IDLE):
            return self._reject("restore_chemicals", RejectReason.INVALID_STATE)
        if not self._snapshot:
            return self._reject("restore_chemicals", RejectReason.NO_SNAPSHOT)

        snapshot, self._snapshot = self._snapshot, None
        self._result = None
        self._charges.clear()
        self._move(SessionState.RESTORING, "restore_chemicals")
        for charge in snapshot:
            self._add_charge(charge.chemical_id, charge.color, charge.quantity)
        self._move(SessionState.LOADED, "restore_chemicals")
        log.info("[SESSION] Restored %d charge(s) from snapshot", len(self._charges))
        return self._accept()

    # ── Internals ────────────────────────────────────────────────────────────

    def _default_conditions(self) -> AmbientConditions:
        return AmbientConditions(temperature=self.settings.default_temperature,
                                 pressure=self.settings.default_pressure)

    def _resting_state(self) -> SessionState:
        return SessionState.LOADED if self._charges else SessionState.IDLE

    def _add_charge(self, chemical_id: str, color: str, quantity: float) -> None:
        if get_chemical_by_id(chemical_id) is None:
            log.warning("[SESSION] Skipping unknown chemical %r", chemical_id)
            return
        quantity = self.settings.clamp_quantity(quantity)
        for i, charge in enumerate(self._charges):
            if charge.key == (chemical_id, color):
                self._charges[i] = replace(
                    charge, quantity=self.settings.clamp_quantity(charge.quantity + quantity))
                log.debug("[SESSION] Merged %s into existing charge", chemical_id)
                return
        self._charges.append(ChemicalCharge(chemical_id, color, quantity))
        log.debug("[SESSION] Added %s %.2fml", chemical_id, quantity)

    def _after_change(self, event: str) -> None:
        """Republish, recomputing first when the change lands mid-reaction."""
        if self._state is SessionState.REACTING:
            self._result = resolve(self._charges, self._conditions)
            self._move(SessionState.REACTING, event)
            self._check_break()
        else:
            self._move(self._state, event)

    def _check_break(self) -> None:
        if self._state is not SessionState.REACTING:
            return
        if not breaks_tube(self._result, self.settings):
            return
        log.warning("[SESSION] Test tube broke: intensity=%.2f explosion=%s",
                    self._result.intensity, self._result.has_explosion)
        self._snapshot = tuple(self._charges)
        self._result = None
        self._move(SessionState.BROKEN, "break")

    def _move(self, new_state: SessionState, event: str) -> None:
        transition = Transition(self._state, new_state, event, self._result)
        self._state = new_state
        if transition.previous is not new_state:
            log.debug("[SESSION] %s: %s → %s", event, transition.previous.value, new_state.value)
        for listener in list(self._listeners):
            try:
                listener(transition)
            except Exception:
                log.exception("[SESSION] Listener failed on %s", event)

    def _accept(self) -> CommandResult:
        return CommandResult(True, self._state)

    def _reject(self, command: str, reason: RejectReason) -> CommandResult:
        log.warning("[SESSION] %s rejected in %s: %s", command, self._state.value, reason.value)
        return CommandResult(False, self._state, reason)
