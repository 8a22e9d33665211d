"""Crewspace storage layer."""

from crewspace.storage.metadata_store import MetadataStore

__all__ = ["MetadataStore"]
