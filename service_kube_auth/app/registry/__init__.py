"""
Identity registry package.

Holds the single piece of mutable shared state in the service: the map from
issued token to the service account it represents, guarded by a
reader-writer lock.
"""

from .identity_registry import IdentityRegistry, ReadWriteLock, ServiceAccount

__all__ = ["IdentityRegistry", "ReadWriteLock", "ServiceAccount"]
