"""
Community sources: Reddit, Keybase and Hacker News public user endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .base_adapter import BaseAdapter, Finding, FindingKind


def _from_epoch(value) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc).isoformat()


class RedditAdapter(BaseAdapter):
    """Reddit ``/user/<name>/about.json``."""

    name = "reddit"
    priority = 2
    supported_kinds = ("username", "domain")

    base_url = "https://www.reddit.com"

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.supports(query):
            return []

        response = await self._get_json(f"{self.base_url}/user/{query}/about.json")
        user = (response.data or {}).get("data") if response.status == 200 else None
        if not user:
            return []

        link_karma = user.get("link_karma") or 0
        comment_karma = user.get("comment_karma") or 0
        avatar = user.get("icon_img")

        return [
            self.make_finding(
                FindingKind.PROFILE,
                payload=user,
                username=user.get("name"),
                url=f"https://reddit.com/user/{user.get('name')}",
                avatar=avatar.split("?")[0] if avatar else None,
                confidence=0.9,
                verified=True,
                extra={
                    "karma": user.get("total_karma") or link_karma + comment_karma,
                    "link_karma": link_karma,
                    "comment_karma": comment_karma,
                    "created_at": _from_epoch(user.get("created_utc")),
                    "is_gold": user.get("is_gold"),
                    "is_mod": user.get("is_mod"),
                },
            )
        ]


class KeybaseAdapter(BaseAdapter):
    """Keybase user lookup, including the summary of linked proofs."""

    name = "keybase"
    priority = 4
    supported_kinds = ("username", "domain")

    base_url = "https://keybase.io/_/api/1.0"

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.supports(query):
            return []

        response = await self._get_json(
            f"{self.base_url}/user/lookup.json", params={"usernames": query}
        )
        them = (response.data or {}).get("them") if response.status == 200 else None
        if not them or not them[0]:
            return []

        user = them[0]
        basics = user.get("basics") or {}
        profile = user.get("profile") or {}
        pictures = user.get("pictures") or {}

        return [
            self.make_finding(
                FindingKind.PROFILE,
                payload=user,
                username=basics.get("username"),
                display_name=profile.get("full_name"),
                bio=profile.get("bio"),
                location=profile.get("location"),
                avatar=(pictures.get("primary") or {}).get("url"),
                url=f"https://keybase.io/{basics.get('username')}",
                confidence=0.85,
                verified=True,
                extra={
                    "proofs": (user.get("proofs_summary") or {}).get("all", []),
                    "devices": user.get("devices"),
                },
            )
        ]


class HackerNewsAdapter(BaseAdapter):
    """Hacker News user record from the Firebase API."""

    name = "hackernews"
    priority = 5
    supported_kinds = ("username", "domain")

    base_url = "https://hacker-news.firebaseio.com/v0"

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.supports(query):
            return []

        # Unknown users come back as 200 with a JSON null body
        response = await self._get_json(f"{self.base_url}/user/{query}.json")
        if response.status != 200 or not response.data:
            return []

        user = response.data
        return [
            self.make_finding(
                FindingKind.PROFILE,
                payload=user,
                username=user.get("id"),
                bio=user.get("about"),
                url=f"https://news.ycombinator.com/user?id={user.get('id')}",
                confidence=0.85,
                verified=True,
                extra={
                    "karma": user.get("karma"),
                    "created_at": _from_epoch(user.get("created")),
                    "submitted_count": len(user.get("submitted") or []),
                },
            )
        ]
