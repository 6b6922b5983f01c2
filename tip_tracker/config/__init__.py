"""
Configuration loading for Tip Tracker.
"""
