"""Operator dashboard for the OSH vacuum motor controller."""

__all__ = ["link", "telemetry", "io", "gui"]
__version__ = "0.1.0"
