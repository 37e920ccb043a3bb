"""
Social network sources.

Instagram and LinkedIn expose no public lookup API, and Twitter needs a
bearer token; without one these sources report a low-confidence
"potential" profile URL instead of failing.
"""

from typing import Any, Dict, List, Optional

from .base_adapter import BaseAdapter, Finding, FindingKind


class PotentialProfileAdapter(BaseAdapter):
    """Reports the conventional profile URL for the query, unverified."""

    supported_kinds = ("username", "domain")
    profile_url: str = ""
    note = "No public API - profile may exist"

    def potential_finding(self, query: str) -> Finding:
        return self.make_finding(
            FindingKind.POTENTIAL,
            username=query,
            url=self.profile_url.format(username=query),
            confidence=0.3,
            verified=False,
            extra={"note": self.note},
        )

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.supports(query):
            return []
        return [self.potential_finding(query)]


class TwitterAdapter(PotentialProfileAdapter):
    """Twitter/X API v2 user lookup."""

    name = "twitter"
    priority = 1
    profile_url = "https://twitter.com/{username}"
    note = "API not configured - URL may exist"

    api_url = "https://api.twitter.com/2/users/by/username"
    user_fields = "description,location,profile_image_url,public_metrics,created_at,verified"

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.supports(query):
            return []
        if not self.config.twitter_bearer_token:
            return [self.potential_finding(query)]

        response = await self._get_json(
            f"{self.api_url}/{query}",
            params={"user.fields": self.user_fields},
            headers={"Authorization": f"Bearer {self.config.twitter_bearer_token}"},
        )
        user = (response.data or {}).get("data") if response.status == 200 else None
        if not user:
            return []

        metrics = user.get("public_metrics") or {}
        avatar = user.get("profile_image_url")

        return [
            self.make_finding(
                FindingKind.PROFILE,
                payload=user,
                username=user.get("username"),
                display_name=user.get("name"),
                bio=user.get("description"),
                location=user.get("location"),
                avatar=avatar.replace("_normal", "_400x400") if avatar else None,
                url=f"https://twitter.com/{user.get('username')}",
                confidence=0.95,
                verified=True,
                extra={
                    "followers": metrics.get("followers_count"),
                    "following": metrics.get("following_count"),
                    "tweet_count": metrics.get("tweet_count"),
                    "created_at": user.get("created_at"),
                    "is_verified": user.get("verified"),
                },
            )
        ]


class InstagramAdapter(PotentialProfileAdapter):
    name = "instagram"
    priority = 2
    profile_url = "https://instagram.com/{username}"


class LinkedInAdapter(PotentialProfileAdapter):
    name = "linkedin"
    priority = 2
    profile_url = "https://linkedin.com/in/{username}"
