"""
Storage layer for Tip Tracker.

SQLite tip ledger and the async event store adapter built on it.
"""
