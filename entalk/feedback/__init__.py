"""Participant feedback intake and per-event statistics."""

from .recorder import FeedbackRecorder

__all__ = ["FeedbackRecorder"]
