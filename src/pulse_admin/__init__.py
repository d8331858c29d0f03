"""
# Pulse Admin Service

Async backend for the Pulse admin console's content and access tooling:

- **Daily reflections**: dated prompts, one `general` entry per day plus one per challenge,
  addressed by the stable `MM-DD-YYYY-{context}` identifier.
- **Programming access**: moderation of third-party access requests, deduplicated per email,
  with a `requested -> active -> deactivated` lifecycle.
- **Challenge cache**: a Redis-persisted copy of the challenge catalog used for admin search.

Storage is MongoDB (via Motor) modelled as a hierarchical document store; the API is FastAPI.
"""

__version__ = "1.0.0"
__description__ = "Admin content & access service for the Pulse fitness community"
