"""
Direct Platform Adapter - Probe profile URLs on dozens of sites.

For platforms without a lookup API, the conventional profile URL is
requested with HEAD. A 200 means the profile most likely exists; anything
else (404, blocking, timeouts) is treated as "not found" for that platform.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .base_adapter import BROWSER_USER_AGENT, BaseAdapter, Finding, FindingKind
from ..core.rate_limiter import RateLimitPolicy
from ..exceptions import AdapterError


@dataclass(frozen=True)
class Platform:
    name: str
    url: str       # Contains a {username} placeholder
    category: str

    def profile_url(self, username: str) -> str:
        return self.url.format(username=username)


PLATFORMS = [
    Platform("Twitter/X", "https://twitter.com/{username}", "social"),
    Platform("Facebook", "https://facebook.com/{username}", "social"),
    Platform("TikTok", "https://tiktok.com/@{username}", "social"),
    Platform("Pinterest", "https://pinterest.com/{username}", "social"),
    Platform("Tumblr", "https://{username}.tumblr.com", "social"),
    Platform("Medium", "https://medium.com/@{username}", "social"),
    Platform("Dev.to", "https://dev.to/{username}", "development"),
    Platform("CodePen", "https://codepen.io/{username}", "development"),
    Platform("Replit", "https://replit.com/@{username}", "development"),
    Platform("NPM", "https://npmjs.com/~{username}", "development"),
    Platform("PyPI", "https://pypi.org/user/{username}", "development"),
    Platform("Kaggle", "https://kaggle.com/{username}", "development"),
    Platform("LeetCode", "https://leetcode.com/{username}", "development"),
    Platform("HackerRank", "https://hackerrank.com/{username}", "development"),
    Platform("Twitch", "https://twitch.tv/{username}", "gaming"),
    Platform("Steam", "https://steamcommunity.com/id/{username}", "gaming"),
    Platform("Spotify", "https://open.spotify.com/user/{username}", "entertainment"),
    Platform("SoundCloud", "https://soundcloud.com/{username}", "entertainment"),
    Platform("Behance", "https://behance.net/{username}", "creative"),
    Platform("Dribbble", "https://dribbble.com/{username}", "creative"),
    Platform("Flickr", "https://flickr.com/people/{username}", "creative"),
    Platform("Vimeo", "https://vimeo.com/{username}", "creative"),
    Platform("HackerOne", "https://hackerone.com/{username}", "security"),
    Platform("TryHackMe", "https://tryhackme.com/p/{username}", "security"),
    Platform("About.me", "https://about.me/{username}", "professional"),
    Platform("Linktree", "https://linktr.ee/{username}", "professional"),
    Platform("ProductHunt", "https://producthunt.com/@{username}", "professional"),
    Platform("AngelList", "https://angel.co/u/{username}", "professional"),
    Platform("Mastodon", "https://mastodon.social/@{username}", "social"),
    Platform("Threads", "https://threads.net/@{username}", "social"),
    Platform("Bluesky", "https://bsky.app/profile/{username}", "social"),
    Platform("Quora", "https://quora.com/profile/{username}", "social"),
    Platform("Gravatar", "https://gravatar.com/{username}", "professional"),
    Platform("Telegram", "https://t.me/{username}", "messaging"),
    Platform("Patreon", "https://patreon.com/{username}", "creative"),
    Platform("Ko-fi", "https://ko-fi.com/{username}", "creative"),
    Platform("BuyMeACoffee", "https://buymeacoffee.com/{username}", "creative"),
    Platform("GitBook", "https://{username}.gitbook.io", "development"),
    Platform("Hashnode", "https://hashnode.com/@{username}", "development"),
    Platform("Substack", "https://{username}.substack.com", "professional"),
    Platform("Notion", "https://notion.so/{username}", "professional"),
    Platform("Figma", "https://figma.com/@{username}", "creative"),
    Platform("Calendly", "https://calendly.com/{username}", "professional"),
    Platform("Gumroad", "https://gumroad.com/{username}", "creative"),
    Platform("Etsy", "https://etsy.com/shop/{username}", "creative"),
    Platform("Fiverr", "https://fiverr.com/{username}", "professional"),
    Platform("Upwork", "https://upwork.com/freelancers/~{username}", "professional"),
    Platform("VK", "https://vk.com/{username}", "social"),
    Platform("OK.ru", "https://ok.ru/{username}", "social"),
    Platform("Weibo", "https://weibo.com/{username}", "social"),
]


class DirectPlatformAdapter(BaseAdapter):
    """
    HEAD-probe profile URLs on ~50 platforms, in batches.

    Options:
        platforms: Lower-case platform names to restrict the probe to
        categories: Platform categories to restrict the probe to
    """

    name = "direct"
    priority = 10
    rate_limit = RateLimitPolicy(requests=20, window=60.0)
    supported_kinds = ("username", "domain")

    batch_size = 10
    batch_pause = 0.5  # Seconds between batches

    def __init__(self, config=None, platforms: Optional[List[Platform]] = None, **kwargs):
        super().__init__(config, **kwargs)
        self.platforms = list(platforms if platforms is not None else PLATFORMS)

    def select_platforms(self, options: Dict[str, Any]) -> List[Platform]:
        selected = self.platforms

        names = options.get("platforms")
        if names:
            wanted = {n.lower() for n in names}
            selected = [p for p in selected if p.name.lower() in wanted]

        categories = options.get("categories")
        if categories:
            wanted = {c.lower() for c in categories}
            selected = [p for p in selected if p.category in wanted]

        return selected

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.supports(query):
            return []

        selected = self.select_platforms(options or {})
        findings: List[Finding] = []

        for i in range(0, len(selected), self.batch_size):
            batch = selected[i:i + self.batch_size]
            results = await asyncio.gather(*(self._probe(p, query) for p in batch))
            findings.extend(f for f in results if f is not None)

            if i + self.batch_size < len(selected):
                await asyncio.sleep(self.batch_pause)

        self.logger.debug("platform_probe_complete", probed=len(selected), found=len(findings))
        return findings

    async def _probe(self, platform: Platform, username: str) -> Optional[Finding]:
        url = platform.profile_url(username)
        try:
            status = await self._head(
                url,
                headers={"User-Agent": BROWSER_USER_AGENT},
                timeout=5.0,
                retries=0,
            )
        except AdapterError as e:
            # Blocked, unreachable or timed out: the profile cannot be confirmed
            self.logger.debug("platform_probe_failed", platform=platform.name, error=str(e))
            return None

        if status != 200:
            return None

        return self.make_finding(
            FindingKind.POTENTIAL,
            username=username,
            url=url,
            confidence=0.6,
            verified=False,
            extra={
                "platform": platform.name,
                "category": platform.category,
                "note": "URL accessible - profile likely exists",
            },
        )
