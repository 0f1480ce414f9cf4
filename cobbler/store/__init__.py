"""
Store package for the Cobbler Workshop API.

A store exposes ``transaction()``, a context manager yielding a session
with typed read/write methods (``get_enquiry``, ``insert_pickup``,
``update_service_type``, ``insert_billing`` ...). Everything done through
one session commits or rolls back together.
"""

import logging
from typing import Optional, Union

from cobbler.utils.config import settings

from .memory import MemorySession, MemoryStore
from .postgres import PostgresSession, PostgresStore

logger = logging.getLogger(__name__)

Store = Union[PostgresStore, MemoryStore]
Session = Union[PostgresSession, MemorySession]

_store: Optional[Store] = None


def get_store() -> Store:
    """Get or create the global store for the configured backend"""
    global _store
    if _store is None:
        backend = settings.STORE_BACKEND.lower()
        if backend == "memory":
            _store = MemoryStore()
        elif backend == "postgres":
            _store = PostgresStore()
        else:
            raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")
        logger.info(f"Using {backend} store")
    return _store


def reset_store():
    """Close and forget the global store"""
    global _store
    if _store is not None:
        _store.close()
    _store = None


__all__ = [
    "Store",
    "Session",
    "MemoryStore",
    "MemorySession",
    "PostgresStore",
    "PostgresSession",
    "get_store",
    "reset_store",
]
