"""
Shared fixtures: stub adapters and fast engine configuration.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from identiscan.adapters import BaseAdapter, FindingKind
from identiscan.core import AggregatorConfig


class StubAdapter(BaseAdapter):
    """Adapter returning canned findings after an optional delay."""

    def __init__(
        self,
        name: str,
        findings: Optional[List[Dict[str, Any]]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        priority: int = 5,
        config: Optional[AggregatorConfig] = None,
    ):
        super().__init__(config=config, name=name, priority=priority)
        self.finding_specs = findings or []
        self.delay = delay
        self.error = error
        self.calls = 0
        self.cancelled = False

    async def search(self, query, options=None):
        self.calls += 1
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise

        if self.error is not None:
            raise self.error

        findings = []
        for fields in self.finding_specs:
            fields = dict(fields)
            kind = fields.pop("kind", FindingKind.PROFILE)
            findings.append(self.make_finding(kind, **fields))
        return findings


@pytest.fixture
def stub_adapter():
    """Factory for StubAdapter instances"""
    return StubAdapter


@pytest.fixture
def fast_config():
    """Short timeouts, no cache, no retries, no credentials"""
    return AggregatorConfig(
        default_timeout=1.0,
        total_timeout=5.0,
        enable_cache=False,
        max_retries=0,
        retry_delay=0.0,
        min_confidence_threshold=0.0,
        github_token=None,
        twitter_bearer_token=None,
        shodan_api_key=None,
        hunter_api_key=None,
    )
