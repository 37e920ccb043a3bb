"""
Base Adapter - Abstract base class for all information sources.

This module defines the normalized ``Finding`` record every source returns,
and the common interface and HTTP plumbing shared by all source adapters
(GitHub, Reddit, Shodan, ...).

Design Pattern: Strategy Pattern
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

import aiohttp
import structlog

from ..core.config import AggregatorConfig
from ..core.rate_limiter import RateGovernor, RateLimitPolicy
from ..exceptions import AdapterError
from ..utils import classify_query, generate_id


DEFAULT_USER_AGENT = "identiscan/1.0 (+federated identity reconnaissance)"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Client errors that mean "the source refused us", not "not found"
SURFACED_STATUSES = frozenset({401, 403, 429})


class FindingKind(Enum):
    """Kinds of observations a source can report"""
    PROFILE = "profile"
    REPOSITORY = "repository"
    INFRASTRUCTURE = "infrastructure"
    DOMAIN = "domain"
    EMAIL = "email"
    SEARCH = "search"
    POTENTIAL = "potential"  # Reachable URL, existence unverified


class ConfidenceLevel(Enum):
    """Discrete confidence buckets assigned during fusion"""
    HIGH = "high"      # >= 0.8
    MEDIUM = "medium"  # >= 0.5
    LOW = "low"


@dataclass
class Finding:
    """
    A single observation returned by a source.

    Adapters create findings at search time. Only result fusion mutates
    them afterwards (confidence, confidence_level, base_confidence).
    """

    source: str
    kind: FindingKind
    confidence: float = 0.5  # 0.0 to 1.0

    # Identity fields (used as dedupe keys)
    url: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None

    # Richness fields (used by confidence scoring)
    display_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[str] = None

    verified: bool = False

    # Source-specific data
    payload: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    # Set by fusion
    confidence_level: Optional[ConfidenceLevel] = None
    base_confidence: Optional[float] = None

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if not self.id:
            self.id = generate_id(self.source)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "source": self.source,
            "type": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "confidence": self.confidence,
            "confidence_level": self.confidence_level.value if self.confidence_level else None,
            "url": self.url,
            "username": self.username,
            "email": self.email,
            "display_name": self.display_name,
            "bio": self.bio,
            "location": self.location,
            "avatar": self.avatar,
            "verified": self.verified,
            **self.extra,
            "raw": self.payload,
        }


class HttpResponse(NamedTuple):
    status: int
    data: Any = None


class BaseAdapter(ABC):
    """
    Abstract base class for all source adapters.

    Every source (GitHub, Keybase, Shodan, ...) inherits from this class and
    implements search(). A search must not raise for "not found": absence is
    an empty list. Network failures and 5xx responses raise AdapterError,
    which the dispatcher records without affecting other sources.

    Example:
        >>> class GitHubAdapter(BaseAdapter):
        ...     name = "github"
        ...     async def search(self, query, options=None):
        ...         return [self.make_finding(FindingKind.PROFILE, username=query)]

        >>> adapter = GitHubAdapter()
        >>> findings = await adapter.search("octocat")
    """

    name: str = "base"
    priority: int = 5
    rate_limit: RateLimitPolicy = RateLimitPolicy()
    supported_kinds: tuple = ("username", "email", "domain", "ip")

    def __init__(
        self,
        config: Optional[AggregatorConfig] = None,
        name: Optional[str] = None,
        priority: Optional[int] = None,
        rate_limit: Optional[RateLimitPolicy] = None,
    ):
        """
        Initialize the base adapter.

        Args:
            config: Aggregator configuration (credentials, retry policy)
            name: Override the class-level source name
            priority: Override the class-level priority (lower = first)
            rate_limit: Override the class-level request budget
        """
        self.config = config or AggregatorConfig()
        if name is not None:
            self.name = name
        if priority is not None:
            self.priority = priority
        if rate_limit is not None:
            self.rate_limit = rate_limit

        self.rate_governor = RateGovernor(self.rate_limit, name=self.name)

        # Statistics
        self.search_count = 0
        self.finding_count = 0

        self.logger = structlog.get_logger(__name__, adapter=self.name)

    @abstractmethod
    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        """
        Look the query up in this source.

        Args:
            query: Username, email, IP address or domain
            options: Scan options (platform/category filters, ...)

        Returns:
            List of findings (empty if nothing was found)

        Raises:
            AdapterError: If the source failed
        """
        pass

    async def run(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        """Acquire a request slot from the governor, then search."""
        await self.rate_governor.acquire()
        findings = await self.search(query, options or {})

        self.search_count += 1
        self.finding_count += len(findings)
        return findings

    def supports(self, query: str) -> bool:
        return classify_query(query) in self.supported_kinds

    def make_finding(self, kind: FindingKind, payload: Optional[Dict[str, Any]] = None, **fields) -> Finding:
        """Create a finding attributed to this source."""
        return Finding(source=self.name, kind=kind, payload=payload or {}, **fields)

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
    ) -> HttpResponse:
        """GET a JSON document. Bodies of 4xx responses are not parsed."""
        return await self._request("GET", url, params=params, headers=headers, timeout=timeout)

    async def _head(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 5.0,
        retries: Optional[int] = None,
    ) -> int:
        """HEAD a URL, following redirects, and return the final status."""
        response = await self._request("HEAD", url, headers=headers, timeout=timeout, retries=retries)
        return response.status

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        retries: Optional[int] = None,
    ) -> HttpResponse:
        """
        Issue an HTTP request with retries and exponential backoff.

        Connection errors and client-side timeouts are retried. A 5xx status,
        an auth/rate-limit refusal or exhausted retries raise AdapterError.
        """
        max_retries = self.config.max_retries if retries is None else retries
        request_headers = {"User-Agent": DEFAULT_USER_AGENT}
        request_headers.update(headers or {})
        client_timeout = aiohttp.ClientTimeout(total=timeout)

        last_error: Optional[BaseException] = None
        for attempt in range(max_retries + 1):
            try:
                async with aiohttp.ClientSession(timeout=client_timeout) as session:
                    async with session.request(
                        method,
                        url,
                        params=params,
                        headers=request_headers,
                        allow_redirects=True,
                        max_redirects=3,
                    ) as resp:
                        if resp.status >= 500 or resp.status in SURFACED_STATUSES:
                            raise AdapterError(self.name, f"HTTP {resp.status} from {url}")

                        data = None
                        if method != "HEAD" and resp.status < 400:
                            try:
                                data = await resp.json(content_type=None)
                            except ValueError as e:
                                raise AdapterError(self.name, f"Invalid JSON from {url}") from e

                        return HttpResponse(resp.status, data)

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = e
                if attempt < max_retries:
                    delay = self.config.retry_delay * (self.config.retry_backoff ** attempt)
                    self.logger.debug(
                        "request_retry",
                        url=url,
                        attempt=attempt + 1,
                        delay=f"{delay:.2f}s",
                        error=str(e) or type(e).__name__,
                    )
                    await asyncio.sleep(delay)

        reason = (str(last_error) or type(last_error).__name__) if last_error else "unknown error"
        raise AdapterError(self.name, f"Request to {url} failed: {reason}")

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get adapter statistics.

        Returns:
            Dictionary with search count, finding count and governor state
        """
        return {
            "searches": self.search_count,
            "findings": self.finding_count,
            "rate_limit": self.rate_governor.get_stats(),
        }

    def __repr__(self) -> str:
        """String representation"""
        return (
            f"{type(self).__name__}("
            f"name={self.name}, "
            f"priority={self.priority}, "
            f"searches={self.search_count})"
        )
