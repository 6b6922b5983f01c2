"""
Core modules for Tip Tracker.

This package contains temporal bucketing, derived metrics, the event
buffer, prompt construction and the tracker facade.
"""
