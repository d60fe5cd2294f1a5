"""
Signal state module.

Holds the per-symbol state store, the channel family table, the merge rules
and the runtime that sequences commit, broadcast and persistence.
"""
