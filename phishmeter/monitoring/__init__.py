"""Health and metrics endpoints for PhishMeter."""

from .health import HealthServer

__all__ = ["HealthServer"]
