"""
Keyed intelligence sources: Shodan host data and Hunter email intelligence.

Both need an API key and return nothing when it is not configured.
"""

from typing import Any, Dict, List, Optional

from .base_adapter import BaseAdapter, Finding, FindingKind
from ..utils import classify_query


class ShodanAdapter(BaseAdapter):
    """Shodan host lookup for IP address queries."""

    name = "shodan"
    priority = 6
    supported_kinds = ("ip",)

    base_url = "https://api.shodan.io"

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.config.shodan_api_key or not self.supports(query):
            return []

        response = await self._get_json(
            f"{self.base_url}/shodan/host/{query}",
            params={"key": self.config.shodan_api_key},
            timeout=15.0,
        )
        if response.status != 200 or not response.data:
            return []

        host = response.data
        return [
            self.make_finding(
                FindingKind.INFRASTRUCTURE,
                payload=host,
                confidence=0.95,
                verified=True,
                location=", ".join(filter(None, [host.get("city"), host.get("country_name")])) or None,
                extra={
                    "ip": host.get("ip_str"),
                    "hostnames": host.get("hostnames"),
                    "country": host.get("country_name"),
                    "city": host.get("city"),
                    "org": host.get("org"),
                    "isp": host.get("isp"),
                    "ports": host.get("ports"),
                    "vulns": host.get("vulns"),
                    "last_update": host.get("last_update"),
                },
            )
        ]


class HunterAdapter(BaseAdapter):
    """
    Hunter.io domain search (emails known for a domain) and email
    verification (deliverability score for an address).
    """

    name = "hunter"
    priority = 5
    supported_kinds = ("domain", "email")

    base_url = "https://api.hunter.io/v2"

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.config.hunter_api_key or not self.supports(query):
            return []

        if classify_query(query) == "domain":
            return await self._domain_search(query)
        return await self._verify_email(query)

    async def _domain_search(self, domain: str) -> List[Finding]:
        response = await self._get_json(
            f"{self.base_url}/domain-search",
            params={"domain": domain, "api_key": self.config.hunter_api_key},
            timeout=15.0,
        )
        data = (response.data or {}).get("data") if response.status == 200 else None
        if not data:
            return []

        return [
            self.make_finding(
                FindingKind.DOMAIN,
                payload=data,
                confidence=0.8,
                verified=True,
                extra={
                    "domain": data.get("domain"),
                    "organization": data.get("organization"),
                    "emails": (data.get("emails") or [])[:10],
                    "pattern": data.get("pattern"),
                },
            )
        ]

    async def _verify_email(self, email: str) -> List[Finding]:
        response = await self._get_json(
            f"{self.base_url}/email-verifier",
            params={"email": email, "api_key": self.config.hunter_api_key},
            timeout=15.0,
        )
        data = (response.data or {}).get("data") if response.status == 200 else None
        if not data:
            return []

        score = data.get("score") or 0
        return [
            self.make_finding(
                FindingKind.EMAIL,
                payload=data,
                email=data.get("email"),
                confidence=max(0.0, min(1.0, score / 100)),
                verified=True,
                extra={
                    "status": data.get("status"),
                    "score": data.get("score"),
                    "regexp": data.get("regexp"),
                    "gibberish": data.get("gibberish"),
                    "disposable": data.get("disposable"),
                    "webmail": data.get("webmail"),
                },
            )
        ]
