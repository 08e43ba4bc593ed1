# backend/reactions/serializers.py
"""
serializers.py — Wire format for the lab, in both directions.

Inbound: the stateless ``/resolve/`` preview validates its body here.
Outbound: the consumer and the views render charges, conditions and
reaction results through the same serializers, so the REST and WebSocket
payloads never drift apart.
"""

import math

from rest_framework import serializers

from lab_engine.catalog import chemical_color, get_chemical_by_id
from lab_engine.reaction_engine import AmbientConditions, ChemicalCharge

from .conf import lab_settings


# ── Inbound ───────────────────────────────────────────────────────────────────

class ChargeInputSerializer(serializers.Serializer):
    chemical_id = serializers.CharField()
    quantity    = serializers.FloatField(required=False)
    color       = serializers.CharField(required=False, allow_null=True, default=None)

    def validate_chemical_id(self, value):
        if get_chemical_by_id(value) is None:
            raise serializers.ValidationError("Unknown chemical.")
        return value

    def validate_quantity(self, value):
        if not math.isfinite(value):
            raise serializers.ValidationError("Quantity must be a finite number.")
        return value

    def validate(self, attrs):
        color = chemical_color(attrs["chemical_id"], attrs.get("color"))
        if color is None:
            raise serializers.ValidationError({"color": "Unknown colour variant."})
        attrs["color"] = color
        return attrs


class ResolveRequestSerializer(serializers.Serializer):
    charges     = ChargeInputSerializer(many=True, allow_empty=True)
    temperature = serializers.FloatField(required=False)
    pressure    = serializers.FloatField(required=False)

    def validate(self, attrs):
        for key in ("temperature", "pressure"):
            value = attrs.get(key)
            if value is not None and not math.isfinite(value):
                raise serializers.ValidationError({key: "Must be a finite number."})
        return attrs

    def to_charges(self) -> list[ChemicalCharge]:
        lab = lab_settings()
        return [
            ChemicalCharge(
                chemical_id=c["chemical_id"],
                color=c["color"],
                quantity=lab.clamp_quantity(c.get("quantity", lab.default_quantity)),
            )
            for c in self.validated_data["charges"]
        ]

    def to_conditions(self) -> AmbientConditions:
        lab  = lab_settings()
        data = self.validated_data
        return AmbientConditions(
            temperature=lab.clamp_temperature(data.get("temperature", lab.default_temperature)),
            pressure=lab.clamp_pressure(data.get("pressure", lab.default_pressure)),
        )


# ── Outbound ──────────────────────────────────────────────────────────────────

class ChargeSerializer(serializers.Serializer):
    chemical_id = serializers.CharField()
    color       = serializers.CharField()
    quantity    = serializers.FloatField()
    label       = serializers.SerializerMethodField()
    label_ar    = serializers.SerializerMethodField()

    def get_label(self, obj):
        chem = get_chemical_by_id(obj.chemical_id)
        return chem["label"] if chem else obj.chemical_id

    def get_label_ar(self, obj):
        chem = get_chemical_by_id(obj.chemical_id)
        return chem["label_ar"] if chem else obj.chemical_id


class ConditionsSerializer(serializers.Serializer):
    temperature = serializers.FloatField()
    pressure    = serializers.FloatField()


class ReactionResultSerializer(serializers.Serializer):
    has_gas            = serializers.BooleanField()
    has_bubbles        = serializers.BooleanField()
    has_precipitate    = serializers.BooleanField()
    has_ice            = serializers.BooleanField()
    has_fire           = serializers.BooleanField()
    has_explosion      = serializers.BooleanField()
    has_glow           = serializers.BooleanField()
    has_smoke          = serializers.BooleanField()
    color              = serializers.CharField()
    glow_color         = serializers.CharField(allow_null=True)
    temperature        = serializers.FloatField()
    intensity          = serializers.FloatField()
    reactions          = serializers.ListField(child=serializers.CharField())
    total_quantity     = serializers.FloatField()
    quantity_effect    = serializers.CharField()
    temperature_effect = serializers.CharField()
    is_dangerous       = serializers.BooleanField()
    is_exothermic      = serializers.BooleanField()
    phase              = serializers.SerializerMethodField()
    explanation_keys   = serializers.SerializerMethodField()

    def get_phase(self, obj):
        return obj.phase.value

    def get_explanation_keys(self, obj):
        return list(obj.explanation_keys())


def session_payload(session, pour_progress: float = 0.0) -> dict:
    """Everything the UI renders from, as one JSON-ready dict."""
    pending = session.pending
    result  = session.result
    return {
        "type":            "state",
        "state":           session.state.value,
        "charges":         ChargeSerializer(session.charges, many=True).data,
        "conditions":      ConditionsSerializer(session.conditions).data,
        "global_quantity": session.global_quantity,
        "result":          ReactionResultSerializer(result).data if result else None,
        "is_dangerous":    session.is_dangerous_reaction,
        "pouring": (
            {"chemical_id": pending.chemical_id, "color": pending.color,
             "progress": pour_progress}
            if pending else None
        ),
        "snapshot": (
            ChargeSerializer(session.snapshot, many=True).data
            if session.snapshot else None
        ),
    }
