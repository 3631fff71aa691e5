"""Repository contracts and the in-memory store."""

from .memory import InMemoryStore

__all__ = ["InMemoryStore"]
