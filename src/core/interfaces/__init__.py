"""Core interfaces/abstractions.

Why:
- Defines the contracts (Protocol) that concrete adapters implement.
- Inverts dependencies: the Core depends on abstractions, not on httpx.
"""
