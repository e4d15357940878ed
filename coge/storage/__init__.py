"""Persistence for per-user JSON documents."""

from .json_store import DocumentStore, InMemoryStore, JsonDocumentStore, store_location

__all__ = ["DocumentStore", "JsonDocumentStore", "InMemoryStore", "store_location"]
