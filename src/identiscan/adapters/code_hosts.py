"""
Code hosting sources: GitHub and GitLab public user APIs.
"""

from typing import Any, Dict, List, Optional

from .base_adapter import BaseAdapter, Finding, FindingKind


class GitHubAdapter(BaseAdapter):
    """
    GitHub user profile plus the five most recently updated repositories.

    Uses ``config.github_token`` when set to lift the anonymous rate limit.
    """

    name = "github"
    priority = 1
    supported_kinds = ("username", "domain")

    base_url = "https://api.github.com"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.config.github_token:
            headers["Authorization"] = f"token {self.config.github_token}"
        return headers

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.supports(query):
            return []

        headers = self._headers()
        response = await self._get_json(f"{self.base_url}/users/{query}", headers=headers)
        if response.status != 200 or not response.data:
            return []

        user = response.data
        findings = [
            self.make_finding(
                FindingKind.PROFILE,
                payload=user,
                username=user.get("login"),
                display_name=user.get("name"),
                bio=user.get("bio"),
                location=user.get("location"),
                avatar=user.get("avatar_url"),
                url=user.get("html_url"),
                email=user.get("email"),
                confidence=0.95,
                verified=True,
                extra={
                    "company": user.get("company"),
                    "followers": user.get("followers"),
                    "following": user.get("following"),
                    "public_repos": user.get("public_repos"),
                    "created_at": user.get("created_at"),
                },
            )
        ]

        repos = await self._get_json(
            f"{self.base_url}/users/{query}/repos",
            params={"sort": "updated", "per_page": 5},
            headers=headers,
        )
        if repos.status != 200 or not isinstance(repos.data, list):
            return findings

        for repo in repos.data:
            findings.append(
                self.make_finding(
                    FindingKind.REPOSITORY,
                    payload=repo,
                    url=repo.get("html_url"),
                    confidence=0.9,
                    extra={
                        "name": repo.get("name"),
                        "description": repo.get("description"),
                        "language": repo.get("language"),
                        "stars": repo.get("stargazers_count"),
                        "forks": repo.get("forks_count"),
                        "parent_username": query,
                    },
                )
            )

        return findings


class GitLabAdapter(BaseAdapter):
    """GitLab.com user lookup by exact username."""

    name = "gitlab"
    priority = 3
    supported_kinds = ("username", "domain")

    base_url = "https://gitlab.com/api/v4"

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> List[Finding]:
        if not self.supports(query):
            return []

        response = await self._get_json(f"{self.base_url}/users", params={"username": query})
        if response.status != 200 or not isinstance(response.data, list) or not response.data:
            return []

        user = response.data[0]
        return [
            self.make_finding(
                FindingKind.PROFILE,
                payload=user,
                username=user.get("username"),
                display_name=user.get("name"),
                bio=user.get("bio"),
                location=user.get("location"),
                avatar=user.get("avatar_url"),
                url=user.get("web_url"),
                confidence=0.9,
                verified=True,
                extra={"state": user.get("state")},
            )
        ]
