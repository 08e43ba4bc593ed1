# backend/reactions/conf.py
"""Bridge between Django settings and the framework-free lab engine."""

from django.conf import settings

from lab_engine.config import LabSettings


def lab_settings() -> LabSettings:
    """Current ``LAB_ENGINE`` overrides on top of the engine defaults."""
    return LabSettings.from_mapping(getattr(settings, "LAB_ENGINE", None))
