"""
LabConsumer — WebSocket consumer for the virtual test-tube lab.

Each connection owns its own ``LabSession`` and ``EffectOrchestrator``;
nothing about a running lab lives in module-level state, so two browser
tabs never see each other's tube.

Protocol (JSON text frames only)
--------------------------------
Frontend → consumer:
    {"type": "begin_select"}
    {"type": "select_chemical", "chemical_id": "HCl", "color": null}
    {"type": "update_quantity", "index": 0, "delta": 0.5}
    {"type": "set_temperature", "value": 95}
    {"type": "start_reaction"}            ... see COMMANDS
    {"type": "get_state"}
Consumer → frontend:
    {"type": "state", ...}                on every session transition
    {"type": "effect", "category": "bubbling", "action": "start", ...}
    {"type": "command_result", "command": "...", "ok": false, "reason": "..."}

Session listeners and effect timers are synchronous, so outgoing frames go
through a single queue drained by one writer task; frames leave in exactly
the order the transitions happened.
"""

import asyncio
import contextlib
import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

from lab_engine.effects import EffectOrchestrator, EffectSignal
from lab_engine.session import LabSession, Transition
from lab_engine.timers import AsyncioScheduler

from .conf import lab_settings
from .serializers import session_payload

log = logging.getLogger(__name__)

# message type → (LabSession method, payload keys passed positionally)
COMMANDS: dict[str, tuple[str, tuple[str, ...]]] = {
    "begin_select":        ("begin_select_chemical", ()),
    "cancel_selection":    ("cancel_selection",      ()),
    "select_chemical":     ("select_chemical",       ("chemical_id", "color")),
    "cancel_pour":         ("cancel_pour",           ()),
    "update_quantity":     ("update_quantity",       ("index", "delta")),
    "set_global_quantity": ("set_global_quantity",   ("value",)),
    "set_temperature":     ("set_temperature",       ("value",)),
    "set_pressure":        ("set_pressure",          ("value",)),
    "start_reaction":      ("start_reaction",        ()),
    "stop_reaction":       ("stop_reaction",         ()),
    "clear_test_tube":     ("clear_test_tube",       ()),
    "restore_test_tube":   ("restore_test_tube",     ()),
    "restore_chemicals":   ("restore_chemicals",     ()),
}


class LabConsumer(AsyncWebsocketConsumer):

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self):
        await self.accept()

        self._outbox: asyncio.Queue = asyncio.Queue()
        self._writer = asyncio.create_task(self._drain_outbox())

        lab = lab_settings()
        self.session = LabSession(lab)
        # Subscribe before the orchestrator so each state frame precedes its effects.
        self.session.subscribe(self._on_transition)
        self.effects = EffectOrchestrator(self.session, AsyncioScheduler(),
                                          self._on_effect, lab)

        log.info("[CONNECT] client=%s  break_intensity=%.2f",
                 self.scope.get("client"), lab.break_intensity)
        self._push(session_payload(self.session))

    async def disconnect(self, close_code):
        session = getattr(self, "session", None)
        log.info(
            "[DISCONNECT] code=%s  state=%s  charges=%s",
            close_code,
            session.state.value if session else "?",
            len(session.charges) if session else "?",
        )
        effects = getattr(self, "effects", None)
        if effects is not None:
            effects.teardown()
        writer = getattr(self, "_writer", None)
        if writer is not None:
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer

    # ── Message routing ───────────────────────────────────────────────────────

    async def receive(self, text_data=None, bytes_data=None):
        if text_data is not None:
            await self._handle_text_message(text_data)
            return
        log.debug("[RECEIVE] Ignoring %d binary bytes", len(bytes_data or b""))

    async def _handle_text_message(self, text_data: str) -> None:
        try:
            msg = json.loads(text_data)
        except (json.JSONDecodeError, ValueError):
            log.warning("[TEXT] Bad JSON: %r", text_data[:120])
            return
        if not isinstance(msg, dict):
            log.warning("[TEXT] Expected an object, got %r", text_data[:120])
            return

        msg_type = msg.get("type")

        if msg_type == "get_state":
            self._push(session_payload(self.session, self.effects.pour_progress))
            return

        if not isinstance(msg_type, str):
            log.debug("[TEXT] Non-string message type: %r", msg_type)
            return

        command = COMMANDS.get(msg_type)
        if command is None:
            log.debug("[TEXT] Unknown message type: %r", msg_type)
            return

        method, keys = command
        result = getattr(self.session, method)(*(msg.get(k) for k in keys))
        log.info("[TEXT] %s → ok=%s state=%s", msg_type, result.ok, result.state.value)
        self._push({
            "type":    "command_result",
            "command": msg_type,
            "ok":      result.ok,
            "reason":  result.reason.value if result.reason else None,
            "state":   result.state.value,
        })

    # ── Outgoing frames ───────────────────────────────────────────────────────

    def _on_transition(self, transition: Transition) -> None:
        self._push(session_payload(self.session, self.effects.pour_progress))

    def _on_effect(self, signal: EffectSignal) -> None:
        self._push({
            "type":     "effect",
            "category": signal.category,
            "action":   signal.action,
            "volume":   signal.volume,
            "loop":     signal.loop,
            "progress": signal.progress,
        })

    def _push(self, payload: dict) -> None:
        self._outbox.put_nowait(payload)

    async def _drain_outbox(self) -> None:
        while True:
            payload = await self._outbox.get()
            await self.send(text_data=json.dumps(payload))
