"""
App-flow state: the three persisted fields and their single owner.

This package defines the enums and immutable snapshot, the key-value store
contract with its memory and file backends, and `AppStateManager`, which
loads, mutates, persists, and broadcasts the state.
"""

from .manager import AppStateManager
from .models import AppState, FlowSnapshot, PaymentStatus
from .store import JsonFileStore, KeyValueStore, MemoryKeyValueStore, StoreError

__all__ = [
    "AppState",
    "AppStateManager",
    "FlowSnapshot",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "PaymentStatus",
    "StoreError",
]
