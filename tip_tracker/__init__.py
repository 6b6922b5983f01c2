"""
Tip Tracker.

Personal earnings tracker for gig-economy drivers.
"""

__version__ = "0.1.0"
