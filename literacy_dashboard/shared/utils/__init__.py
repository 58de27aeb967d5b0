"""Shared utilities for the literacy dashboard."""
from .pii import hash_identifier, configure_identifier_salt

__all__ = ["hash_identifier", "configure_identifier_salt"]
