"""Repository implementations."""

from src.persistence.repositories.keyed_store import InMemoryKeyedStore

__all__ = ["InMemoryKeyedStore"]
