"""Namespaced key-value persistence for sessions, indices and configuration."""

from .base import KeyValueStore
from .factory import create_key_value_store

__all__ = [
    "KeyValueStore",
    "create_key_value_store",
]
