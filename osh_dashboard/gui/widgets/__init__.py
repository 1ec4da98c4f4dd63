"""Reusable Qt widgets."""

from .live_chart import LiveChart

__all__ = ["LiveChart"]
