"""Tests for the effect orchestrator: pour timers and phenomenon cues."""

import pytest

from lab_engine.effects import PROGRESS, START, STOP, effect_registry_payload
from lab_engine.session import SessionState


def cues(signals, action=None) -> list[str]:
    return [s.category for s in signals if action is None or s.action == action]


def progress(signals) -> list[float]:
    return [s.progress for s in signals if s.action == PROGRESS]


# ---------------------------------------------------------------------------
# Pour timer
# ---------------------------------------------------------------------------

class TestPour:
    def test_pour_plays_and_lands(self, session, effects, scheduler, signals):
        session.begin_select_chemical()
        session.select_chemical("HCl")
        assert effects.is_pouring
        assert signals[0].category == "pouring"
        assert signals[0].action == START
        assert signals[0].volume == 0.5

        scheduler.advance(1.05)
        assert session.state is SessionState.POURING
        assert progress(signals) == pytest.approx([5.0 * i for i in range(1, 11)])
        assert effects.pour_progress == pytest.approx(50.0)

        scheduler.advance(1.0)
        assert session.state is SessionState.LOADED
        assert [c.chemical_id for c in session.charges] == ["HCl"]
        assert cues(signals, STOP) == ["pouring"]
        assert not effects.is_pouring
        assert effects.pour_progress == 0.0
        assert scheduler.pending == []

    def test_progress_never_passes_100(self, lab, session, effects, scheduler, signals):
        session.begin_select_chemical()
        session.select_chemical("HCl")
        scheduler.advance(lab.pour_duration + 1.0)
        assert max(progress(signals)) <= 100.0
        assert progress(signals) == sorted(progress(signals))

    def test_pour_ends_on_a_full_bar(self, lab, session, effects, scheduler, signals):
        session.begin_select_chemical()
        session.select_chemical("HCl")
        scheduler.advance(lab.pour_duration + 0.05)

        assert session.state is SessionState.LOADED
        assert progress(signals)[-1] == 100.0
        assert progress(signals).count(100.0) == 1
        # the last progress cue lands before the pour stops
        last_progress = max(i for i, s in enumerate(signals) if s.action == PROGRESS)
        assert signals.index(next(s for s in signals if s.action == STOP)) > last_progress

    def test_cancel_pour_cancels_timers(self, session, effects, scheduler, signals):
        session.begin_select_chemical()
        session.select_chemical("HCl")
        scheduler.advance(0.5)

        session.cancel_pour()
        assert scheduler.pending == []
        assert effects.pour_progress == 0.0
        assert cues(signals, STOP) == ["pouring"]

        emitted = len(signals)
        scheduler.advance(5.0)
        assert len(signals) == emitted
        assert session.state is SessionState.IDLE
        assert session.charges == ()

    def test_new_pour_ignores_the_cancelled_one(self, session, effects, scheduler):
        session.begin_select_chemical()
        session.select_chemical("HCl")
        scheduler.advance(1.5)
        session.cancel_pour()

        session.begin_select_chemical()
        session.select_chemical("NaOH")
        # the cancelled pour would have landed at t=2.0
        scheduler.advance(1.0)
        assert session.state is SessionState.POURING
        scheduler.advance(1.1)
        assert [c.chemical_id for c in session.charges] == ["NaOH"]
        assert scheduler.pending == []

    def test_pours_never_stack(self, session, effects, scheduler, signals):
        session.begin_select_chemical()
        session.select_chemical("HCl")
        session.begin_select_chemical()  # rejected mid-pour
        scheduler.advance(3.0)
        assert cues(signals, START) == ["pouring"]
        assert len(session.charges) == 1

    def test_teardown_cancels_everything(self, session, effects, scheduler, signals):
        session.begin_select_chemical()
        session.select_chemical("HCl")
        scheduler.advance(0.3)

        effects.teardown()
        assert scheduler.pending == []
        assert effects.active_effects == frozenset()

        emitted = len(signals)
        scheduler.advance(5.0)
        assert len(signals) == emitted
        assert session.state is SessionState.POURING

    def test_teardown_unsubscribes(self, session, effects, load, signals):
        effects.teardown()
        signals.clear()
        load("HCl", "NaHCO3")
        session.start_reaction()
        assert signals == []


# ---------------------------------------------------------------------------
# Phenomena
# ---------------------------------------------------------------------------

class TestPhenomena:
    def test_bubbles_start_and_stop_with_the_reaction(self, session, effects, load, signals):
        load("HCl", "NaHCO3")
        signals.clear()

        session.start_reaction()
        assert cues(signals, START) == ["bubbling"]
        assert signals[0].loop and signals[0].volume == 0.3
        assert effects.active_effects == {"bubbling"}

        session.stop_reaction()
        assert cues(signals, STOP) == ["bubbling"]
        assert effects.active_effects == frozenset()

    def test_no_duplicate_cues_on_recompute(self, session, effects, load, signals):
        load("HCl", "NaHCO3")
        session.start_reaction()
        session.set_temperature(30.0)
        session.set_temperature(35.0)
        assert cues(signals, START).count("bubbling") == 1

    def test_cues_follow_the_result(self, session, effects, load, signals):
        load("Na", "Water")
        session.start_reaction()
        assert {"bubbling", "smoke", "fire", "danger"} <= effects.active_effects
        assert "explosion" not in effects.active_effects

        session.set_temperature(-50.0)
        # too cold to reach the fire threshold
        assert session.state is SessionState.REACTING
        assert not session.result.has_fire
        assert {"fire", "danger"}.isdisjoint(effects.active_effects)
        assert "fire" in cues(signals, STOP)
        assert "bubbling" in effects.active_effects

    def test_clear_silences_everything(self, session, effects, load):
        load("Na", "Water")
        session.start_reaction()
        session.clear_test_tube()
        assert effects.active_effects == frozenset()


class TestBreak:
    def test_glass_breaks_once(self, session, effects, load, signals):
        load("Na", "Water")
        session.set_temperature(95.0)
        signals.clear()

        session.start_reaction()
        assert session.state is SessionState.BROKEN
        breaks = [s for s in signals if s.category == "glass_break"]
        assert len(breaks) == 1
        assert breaks[0].action == START
        assert breaks[0].volume == 0.7
        assert not breaks[0].loop
        assert effects.active_effects == {"glass_break"}

    def test_phenomena_stop_before_the_break(self, session, effects, load, signals):
        load("Na", "Water")
        session.set_temperature(95.0)
        signals.clear()
        session.start_reaction()

        started = set(cues(signals, START)) - {"glass_break"}
        stopped = set(cues(signals, STOP))
        assert started and started == stopped
        assert signals[-1].category == "glass_break"


def test_registry_lists_every_cue():
    categories = [row["category"] for row in effect_registry_payload()]
    assert categories == [
        "bubbling", "smoke", "fire", "explosion", "danger", "pouring", "glass_break",
    ]
