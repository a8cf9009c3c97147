"""Domain models and entities.

Why:
- Pure, strict data structures (Pydantic v2) and the time-window rules.
- The domain knows nothing about HTTP, the CLI or templates.
"""
