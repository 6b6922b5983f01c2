"""
SDK for Tip Tracker.

Provides the text-generation client used for coaching messages.
"""

from .generation import InsightGenerator

__all__ = ["InsightGenerator"]
