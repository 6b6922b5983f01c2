"""
Command-line interface for Tip Tracker.
"""
