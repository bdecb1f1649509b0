"""Shared helpers for PhishMeter."""
