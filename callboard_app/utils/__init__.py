"""
Utility functions module.

Time semantics:
- Event ``time`` values come from the indicator and are stored as supplied
- Wall-clock time (epoch milliseconds) marks when the board observed a change
- Persistence expiry is expressed in epoch seconds
"""
