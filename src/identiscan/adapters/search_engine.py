"""
Search engine source: DuckDuckGo Instant Answer API.
"""

from typing import Any, Dict, List, Optional

from .base_adapter import BaseAdapter, Finding, FindingKind


class SearchEngineAdapter(BaseAdapter):
    """Abstract text plus up to five related topics as search snippets."""

    name = "searchengine"
    priority = 8

    api_url = "https://api.duckduckgo.com/"
    max_related = 5

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        response = await self._get_json(
            self.api_url,
            params={"q": query, "format": "json", "no_html": 1},
        )
        data = response.data if response.status == 200 else None
        if not isinstance(data, dict):
            return []

        findings = []

        if data.get("AbstractText"):
            findings.append(
                self.make_finding(
                    FindingKind.SEARCH,
                    payload=data,
                    url=data.get("AbstractURL") or None,
                    confidence=0.5,
                    extra={
                        "title": data.get("Heading"),
                        "description": data.get("AbstractText"),
                        "image_url": data.get("Image") or None,
                        "engine": "duckduckgo",
                    },
                )
            )

        # Topic groups nest their entries under "Topics" and carry no Text
        related = [t for t in data.get("RelatedTopics") or [] if t.get("Text")]
        for topic in related[:self.max_related]:
            findings.append(
                self.make_finding(
                    FindingKind.SEARCH,
                    payload=topic,
                    url=topic.get("FirstURL") or None,
                    confidence=0.3,
                    extra={
                        "title": topic["Text"][:100],
                        "engine": "duckduckgo",
                    },
                )
            )

        return findings
