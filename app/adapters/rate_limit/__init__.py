"""Rate limit window stores.

The database store shares counters between workers; the in-memory store is
a per-process stand-in for local runs and tests. Both satisfy the same
contract so the limiter never knows which one it talks to.
"""
