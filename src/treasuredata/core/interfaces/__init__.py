"""Core interfaces/abstractions.

Why:
- Defines contracts (Protocol) implemented by concrete adapters.
- Services depend on the abstraction, not on httpx directly.
"""
