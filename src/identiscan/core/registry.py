"""
Source Registry - Name to adapter table.

The registry is shared by every scan an engine runs. Mutation is rare, so a
plain lock guards the table and readers always receive a snapshot list that
later registrations cannot disturb.
"""

import threading
from typing import Dict, Iterable, List, Optional

import structlog

from ..adapters.base_adapter import BaseAdapter


class SourceRegistry:
    """
    Registry of source adapters keyed by name.

    Example:
        >>> registry = SourceRegistry()
        >>> registry.register(GitHubAdapter())
        >>> registry.resolve(["github", "unknown"])  # unknown names are ignored
        [GitHubAdapter(name=github, priority=1, searches=0)]
    """

    def __init__(self, adapters: Optional[Iterable[BaseAdapter]] = None):
        self._adapters: Dict[str, BaseAdapter] = {}
        self._lock = threading.Lock()

        self.logger = structlog.get_logger(__name__)

        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: BaseAdapter):
        """Insert an adapter, replacing any adapter with the same name."""
        with self._lock:
            replaced = adapter.name in self._adapters
            self._adapters[adapter.name] = adapter

        self.logger.info(
            "adapter_registered",
            adapter=adapter.name,
            priority=adapter.priority,
            replaced=replaced,
        )

    def unregister(self, name: str) -> bool:
        """
        Remove an adapter by name.

        Returns:
            True if an adapter was removed
        """
        with self._lock:
            removed = self._adapters.pop(name, None) is not None

        if removed:
            self.logger.info("adapter_unregistered", adapter=name)
        return removed

    def get(self, name: str) -> Optional[BaseAdapter]:
        with self._lock:
            return self._adapters.get(name)

    def list(self) -> List[BaseAdapter]:
        """All adapters by ascending priority, ties in registration order."""
        with self._lock:
            adapters = list(self._adapters.values())
        return sorted(adapters, key=lambda a: a.priority)

    def resolve(self, names: Optional[Iterable[str]] = None) -> List[BaseAdapter]:
        """
        Select the adapters for a scan.

        Args:
            names: Allow-list of adapter names (None selects every adapter,
                a single string selects one)

        Returns:
            Matching adapters in priority order. Unknown names are ignored.
        """
        adapters = self.list()
        if names is None:
            return adapters
        if isinstance(names, str):
            names = [names]

        wanted = set(names)
        selected = [a for a in adapters if a.name in wanted]

        unknown = wanted - {a.name for a in selected}
        if unknown:
            self.logger.debug("unknown_adapters_ignored", names=sorted(unknown))

        return selected

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._adapters

    def __len__(self) -> int:
        with self._lock:
            return len(self._adapters)
