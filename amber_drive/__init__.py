"""
Amber Drive Admin
=================
Back-office API for a luxury car rental business: car catalog, quotes and
AI-assisted car search.
"""

__version__ = "1.0.0"
