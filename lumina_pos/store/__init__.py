from .base import COLLECTIONS, MOVEMENTS, PRODUCTS, SHIFTS, TRANSACTIONS, Store
from .memory import MemoryStore

__all__ = [
    "COLLECTIONS",
    "MOVEMENTS",
    "PRODUCTS",
    "SHIFTS",
    "TRANSACTIONS",
    "Store",
    "MemoryStore",
]
