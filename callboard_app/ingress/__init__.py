"""
Ingress validation module.

Parses webhook payloads into typed commands and rejects malformed events,
unknown symbols and unknown indicator codes before the engine runs.
"""
