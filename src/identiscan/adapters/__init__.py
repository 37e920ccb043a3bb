"""
Source adapters module.

This package contains all information sources. Each adapter inherits from
BaseAdapter and implements the search() method.

Available adapters:
- GitHubAdapter, GitLabAdapter: Code hosting profiles
- RedditAdapter, KeybaseAdapter, HackerNewsAdapter: Community profiles
- TwitterAdapter, InstagramAdapter, LinkedInAdapter: Social networks
- ShodanAdapter, HunterAdapter: Keyed infrastructure / email intelligence
- DirectPlatformAdapter: Profile URL probes on ~50 platforms
- SearchEngineAdapter: DuckDuckGo instant answers
"""

from typing import List, Optional

from .base_adapter import (
    BaseAdapter,
    ConfidenceLevel,
    Finding,
    FindingKind,
    HttpResponse,
)
from .code_hosts import GitHubAdapter, GitLabAdapter
from .communities import HackerNewsAdapter, KeybaseAdapter, RedditAdapter
from .social import InstagramAdapter, LinkedInAdapter, TwitterAdapter
from .intel import HunterAdapter, ShodanAdapter
from .platforms import PLATFORMS, DirectPlatformAdapter, Platform
from .search_engine import SearchEngineAdapter
from ..core.config import AggregatorConfig


BUILTIN_ADAPTERS = (
    GitHubAdapter,
    RedditAdapter,
    GitLabAdapter,
    KeybaseAdapter,
    HackerNewsAdapter,
    TwitterAdapter,
    InstagramAdapter,
    LinkedInAdapter,
    ShodanAdapter,
    HunterAdapter,
    DirectPlatformAdapter,
    SearchEngineAdapter,
)


def default_adapters(config: Optional[AggregatorConfig] = None) -> List[BaseAdapter]:
    """Instantiate every built-in adapter with a shared configuration."""
    config = config or AggregatorConfig()
    return [adapter_cls(config) for adapter_cls in BUILTIN_ADAPTERS]


__all__ = [
    # Base classes
    "BaseAdapter",
    "Finding",
    "FindingKind",
    "ConfidenceLevel",
    "HttpResponse",
    # Adapters
    "GitHubAdapter",
    "GitLabAdapter",
    "RedditAdapter",
    "KeybaseAdapter",
    "HackerNewsAdapter",
    "TwitterAdapter",
    "InstagramAdapter",
    "LinkedInAdapter",
    "ShodanAdapter",
    "HunterAdapter",
    "DirectPlatformAdapter",
    "SearchEngineAdapter",
    "Platform",
    "PLATFORMS",
    "BUILTIN_ADAPTERS",
    "default_adapters",
]
