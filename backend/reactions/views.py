# backend/reactions/views.py

import logging

from rest_framework.decorators import api_view
from rest_framework.response import Response

from lab_engine.catalog import catalog_payload
from lab_engine.effects import effect_registry_payload
from lab_engine.reaction_engine import breaks_tube, resolve
from lab_engine.session import MIN_REACTANTS

from .conf import lab_settings
from .serializers import ReactionResultSerializer, ResolveRequestSerializer

log = logging.getLogger(__name__)


@api_view(['GET'])
def chemicals_view(request):
    """
    Return the full chemical catalogue.

    Colours and variants are included so the picker can render bottles
    without a second round-trip.
    """
    return Response({"chemicals": catalog_payload()})


@api_view(['GET'])
def defaults_view(request):
    """Default conditions, slider ranges, pour timing and the effect table."""
    return Response({
        "settings":      lab_settings().to_dict(),
        "effects":       effect_registry_payload(),
        "min_reactants": MIN_REACTANTS,
    })


@api_view(['POST'])
def resolve_view(request):
    """
    Stateless preview of what a mixture would do.

    The live lab runs over the WebSocket; this endpoint lets the UI (or a
    worksheet) ask "what happens if..." without touching a session.
    """
    serializer = ResolveRequestSerializer(data=request.data)
    if not serializer.is_valid():
        log.info("[resolve] invalid request: %s", serializer.errors)
        return Response({"error": "Invalid request.", "details": serializer.errors},
                        status=400)

    result = resolve(serializer.to_charges(), serializer.to_conditions())
    return Response({
        "result":       ReactionResultSerializer(result).data,
        "is_dangerous": result.is_dangerous,
        "breaks_tube":  breaks_tube(result, lab_settings()),
    })
