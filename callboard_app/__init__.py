"""
Callboard - Indicator Signal State Board

Ingests indicator webhook events for a fixed universe of symbols, tracks
per-symbol signal state (direction, repeat counts, first-mover timing),
persists it and pushes every change to live WebSocket viewers.
"""

__version__ = "0.1.0"
__author__ = "Callboard Team"
