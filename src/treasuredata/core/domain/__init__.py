"""Domain models and entities.

Why:
- Pure, strict data structures (pydantic v2) live here.
- The domain knows nothing about HTTP or the CLI; only concepts of the
  platform and how its JSON is shaped.
"""
