"""
Registry reset, used by test suites to start from a clean slate.
"""

from typing import Optional, Sequence

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..registry import IdentityRegistry


class ResetService:
    """Clears the registry, wholly or by key.

    Keys are matched against registry keys, which are tokens. Callers that
    pass service account UIDs remove nothing unless a UID happens to equal an
    issued token.
    """

    def __init__(self, registry: IdentityRegistry, metrics: Optional[MetricsCollector] = None):
        self.registry = registry
        self.metrics = metrics
        self.logger = get_logger("kube_auth.reset")

    def reset(self, keys: Optional[Sequence[str]] = None) -> int:
        """Remove every entry when ``keys`` is empty, else only those keys.

        Returns the number of entries removed.
        """
        if not keys:
            removed = self.registry.delete_all()
            scope = "all"
        else:
            removed = self.registry.delete_keys(keys)
            scope = "keys"
            if removed < len(set(keys)):
                self.logger.debug(
                    "Reset keys did not all match registered tokens",
                    requested=len(set(keys)),
                    removed=removed,
                )

        if self.metrics:
            self.metrics.increment_counter("registry_resets_total", scope=scope)
            self.metrics.set_gauge("registry_entries", len(self.registry))

        self.logger.info("Registry reset", scope=scope, removed=removed)
        return removed
